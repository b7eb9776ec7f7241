# pizzashop/accounts.py
from __future__ import annotations

import logging
from typing import Optional, Tuple

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from .auth import (
    REFRESH,
    RESET,
    VERIFY,
    create_access_token,
    create_refresh_token,
    create_reset_token,
    create_verification_token,
    decode_token,
    hash_password,
    token_user_id,
    verify_password,
)
from .db import transaction
from .errors import (
    AuthenticationFailure,
    AuthorizationFailure,
    Conflict,
    NotFound,
    ValidationFailure,
    is_unique_violation,
)
from .models import Order, User
from .roles import Role
from .schemas import ProfileUpdateIn, RegisterIn

logger = logging.getLogger(__name__)


def _by_email(db: Session, email: str) -> Optional[User]:
    return db.scalar(select(User).where(func.lower(User.email) == email.lower()))


def register(db: Session, payload: RegisterIn) -> User:
    """Create an unverified customer and store its email-verification token."""
    if _by_email(db, payload.email):
        raise Conflict("Email already registered")

    user = User(
        name=payload.name,
        email=payload.email,
        phone=payload.phone,
        password_hash=hash_password(payload.password),
        role=Role.customer,
        is_verified=False,
        verification_token=create_verification_token(payload.email),
    )
    try:
        with transaction(db):
            db.add(user)
    except IntegrityError as exc:
        if is_unique_violation(exc):
            raise Conflict("Email already registered") from exc
        raise

    logger.info("User %s registered", user.id)
    return user


def verify_email(db: Session, token: str) -> User:
    claims = decode_token(token, VERIFY)
    user = _by_email(db, str(claims.get("email") or "")) if claims else None
    if user is None or not user.verification_token or user.verification_token != token:
        raise ValidationFailure("Invalid or expired verification token")

    with transaction(db):
        user.is_verified = True
        user.verification_token = None
    return user


def login(db: Session, email: str, password: str) -> Tuple[User, str, str]:
    """(user, access token, refresh token). The refresh token replaces any earlier one."""
    user = _by_email(db, email)
    if user is None:
        raise AuthenticationFailure("Invalid credentials")

    # unverified accounts are refused before the password is even looked at
    if not user.is_verified:
        raise AuthorizationFailure("Please verify your email before logging in")

    if not verify_password(password, user.password_hash):
        raise AuthenticationFailure("Invalid credentials")

    access = create_access_token(user.id, user.role.value)
    refresh = create_refresh_token(user.id)
    with transaction(db):
        user.refresh_token = refresh

    logger.info("User %s logged in", user.id)
    return user, access, refresh


def refresh_access(db: Session, refresh_token: Optional[str]) -> str:
    if not refresh_token:
        raise AuthenticationFailure("Refresh token required")

    uid = token_user_id(decode_token(refresh_token, REFRESH))
    user = db.get(User, uid) if uid else None
    if user is None or user.refresh_token != refresh_token:
        raise AuthorizationFailure("Invalid refresh token")

    return create_access_token(user.id, user.role.value)


def logout(db: Session, user: User) -> None:
    with transaction(db):
        user.refresh_token = None


def forgot_password(db: Session, email: str) -> Optional[Tuple[User, str]]:
    """Store a fresh reset token. Returns None for unknown emails so callers stay silent."""
    user = _by_email(db, email)
    if user is None:
        return None

    token = create_reset_token(user.id)
    with transaction(db):
        user.reset_token = token
    return user, token


def reset_password(db: Session, token: str, new_password: str) -> None:
    uid = token_user_id(decode_token(token, RESET))
    user = db.get(User, uid) if uid else None
    if user is None or not user.reset_token or user.reset_token != token:
        raise ValidationFailure("Invalid or expired reset token")

    with transaction(db):
        user.password_hash = hash_password(new_password)
        user.reset_token = None
        # a new password ends every existing session
        user.refresh_token = None

    logger.info("Password reset for user %s", user.id)


def update_profile(db: Session, user: User, payload: ProfileUpdateIn) -> User:
    with transaction(db):
        if payload.name is not None:
            name = payload.name.strip()
            if not name:
                raise ValidationFailure("Name must not be empty")
            user.name = name
        if payload.phone is not None:
            user.phone = payload.phone.strip() or None
    return user


def delete_user(db: Session, user_id: int) -> None:
    with transaction(db):
        user = db.get(User, user_id)
        if user is None:
            raise NotFound("User not found")
        if db.scalar(select(func.count(Order.id)).where(Order.user_id == user_id)):
            raise Conflict("User has existing orders")
        db.delete(user)

    logger.info("User %s deleted", user_id)
