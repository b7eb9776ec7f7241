# pizzashop/deps.py
from __future__ import annotations

from typing import Callable

from fastapi import Depends, Header, Request
from sqlalchemy.orm import Session

from .auth import ACCESS, decode_token, token_user_id
from .config import Settings
from .db import get_db
from .emailer import Mailer
from .errors import AuthenticationFailure, AuthorizationFailure
from .models import User
from .ratelimit import LoginLimiter
from .roles import Capability, has_capability


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_mailer(request: Request) -> Mailer:
    return request.app.state.mailer


def get_login_limiter(request: Request) -> LoginLimiter:
    return request.app.state.login_limiter


def require_user(
    authorization: str | None = Header(default=None),
    db: Session = Depends(get_db),
) -> User:
    if not authorization or not authorization.lower().startswith("bearer "):
        raise AuthenticationFailure("Authentication required: No token provided.")

    token = authorization.split(" ", 1)[1].strip()
    uid = token_user_id(decode_token(token, ACCESS))
    if not uid:
        raise AuthenticationFailure("Authentication failed: Invalid token.")

    user = db.get(User, uid)
    if not user:
        raise AuthenticationFailure("Authentication failed: User not found or invalid token.")
    return user


def require_capability(cap: Capability) -> Callable[..., User]:
    def _check(user: User = Depends(require_user)) -> User:
        if not has_capability(user.role, cap):
            raise AuthorizationFailure("Authorization failed: Unauthorized access.")
        return user

    return _check
