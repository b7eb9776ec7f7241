# pizzashop/config.py
from __future__ import annotations

import os
from typing import List

from dotenv import load_dotenv
from pydantic import BaseModel

# Load .env locally (safe in prod too)
load_dotenv()


def _flag(name: str, default: str = "0") -> bool:
    return os.getenv(name, default).strip().lower() not in {"0", "false", "no", ""}


# -------------------
# Config (env-driven)
# -------------------
class Settings(BaseModel):
    app_env: str = os.getenv("APP_ENV", "development").strip().lower()
    database_url: str = os.getenv("DATABASE_URL", "sqlite:///./pizzashop.db")
    log_level: str = os.getenv("LOG_LEVEL", "INFO").strip().upper()
    base_url: str = os.getenv("BASE_URL", "http://localhost:8000").rstrip("/")
    cors_origins: List[str] = [
        o.strip() for o in os.getenv("CORS_ORIGINS", "http://localhost:3000").split(",") if o.strip()
    ]

    # "client" trusts the unit price sent with each line, "catalog" re-prices from pizzas.price
    order_pricing: str = os.getenv("ORDER_PRICING", "client").strip().lower()
    empty_history_not_found: bool = _flag("EMPTY_HISTORY_NOT_FOUND")

    # failed logins allowed per client address inside the window; 0 disables the limit
    login_max_attempts: int = int(os.getenv("LOGIN_MAX_ATTEMPTS", "5"))
    login_window_seconds: int = int(os.getenv("LOGIN_WINDOW_SEC", "900"))

    smtp_host: str = os.getenv("SMTP_HOST", "").strip()
    smtp_port: int = int(os.getenv("SMTP_PORT", "587"))
    smtp_user: str = os.getenv("SMTP_USER", "").strip()
    smtp_password: str = os.getenv("SMTP_PASSWORD", "")
    email_from: str = os.getenv("EMAIL_FROM", "no-reply@pizzashop.local")

    @property
    def is_production(self) -> bool:
        return self.app_env == "production"
