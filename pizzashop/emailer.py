# pizzashop/emailer.py
from __future__ import annotations

import logging
import smtplib
from email.message import EmailMessage
from html import escape
from typing import Callable

from .config import Settings

logger = logging.getLogger(__name__)


class Mailer:
    """SMTP sender. Without SMTP_HOST configured, messages are only logged."""

    def __init__(self, settings: Settings) -> None:
        self.host = settings.smtp_host
        self.port = settings.smtp_port
        self.user = settings.smtp_user
        self.password = settings.smtp_password
        self.sender = settings.email_from

    def send(self, to_email: str, subject: str, html: str) -> None:
        if not self.host:
            logger.info("Email (not sent, no SMTP_HOST) to=%s subject=%r\n%s", to_email, subject, html)
            return

        msg = EmailMessage()
        msg["From"] = self.sender
        msg["To"] = to_email
        msg["Subject"] = subject
        msg.set_content("This message requires an HTML capable mail client.")
        msg.add_alternative(html, subtype="html")

        with smtplib.SMTP(self.host, self.port, timeout=10) as smtp:
            smtp.starttls()
            if self.user:
                smtp.login(self.user, self.password)
            smtp.send_message(msg)
        logger.info("Email sent to=%s subject=%r", to_email, subject)


def notify(send: Callable[[], None], what: str) -> bool:
    """Best-effort delivery: a failed email is logged, never raised to the caller."""
    try:
        send()
        return True
    except Exception:
        logger.exception("Failed to send %s email", what)
        return False


def send_verification_email(mailer: Mailer, base_url: str, email: str, token: str) -> None:
    url = f"{base_url}/api/v1/users/verify-email?token={token}"
    mailer.send(
        to_email=email,
        subject="Verify Your Email",
        html=f'<p>Click <a href="{url}">here</a> to verify your email address.</p>',
    )


def send_password_reset_email(mailer: Mailer, base_url: str, email: str, token: str) -> None:
    url = f"{base_url}/reset-password?token={token}"
    mailer.send(
        to_email=email,
        subject="Password Reset Request",
        html=f'<p>Click <a href="{url}">here</a> to reset your password.</p>',
    )


def send_order_confirmation(mailer: Mailer, email: str, order_id: int, total: float, lines: list[str]) -> None:
    items = "".join(f"<li>{escape(line)}</li>" for line in lines)
    mailer.send(
        to_email=email,
        subject=f"Your pizza order #{order_id}",
        html=f"<p>Thanks for your order!</p><ul>{items}</ul><p>Total: {total:.2f}</p>",
    )
