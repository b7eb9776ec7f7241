# pizzashop/auth.py
from __future__ import annotations

import os
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional
from uuid import uuid4

from jose import JWTError, jwt
from passlib.context import CryptContext


pwd = CryptContext(schemes=["argon2"], deprecated="auto")

ACCESS = "access"
REFRESH = "refresh"
VERIFY = "verify"
RESET = "reset"


def _jwt_secret() -> str:
    return os.getenv("JWT_SECRET", "dev-secret-change-me")


def _jwt_refresh_secret() -> str:
    return os.getenv("JWT_REFRESH_SECRET", "dev-refresh-secret-change-me")


def _jwt_alg() -> str:
    return os.getenv("JWT_ALG", "HS256")


def _minutes(name: str, default: int) -> int:
    raw = os.getenv(name, str(default))
    try:
        return int(raw)
    except ValueError:
        return default


_LIFETIMES = {
    ACCESS: ("JWT_EXPIRE_MIN", 15),
    REFRESH: ("JWT_REFRESH_EXPIRE_MIN", 60 * 24 * 7),
    VERIFY: ("JWT_VERIFY_EXPIRE_MIN", 60),
    RESET: ("JWT_RESET_EXPIRE_MIN", 15),
}


def refresh_max_age_seconds() -> int:
    env, default = _LIFETIMES[REFRESH]
    return _minutes(env, default) * 60


def hash_password(p: str) -> str:
    return pwd.hash(p)


def verify_password(p: str, h: str) -> bool:
    try:
        return pwd.verify(p, h)
    except (ValueError, TypeError):
        return False


def _secret_for(kind: str) -> str:
    return _jwt_refresh_secret() if kind == REFRESH else _jwt_secret()


def _encode(kind: str, claims: Dict[str, Any]) -> str:
    env, default = _LIFETIMES[kind]
    exp = datetime.now(timezone.utc) + timedelta(minutes=_minutes(env, default))
    # jti keeps two tokens minted in the same second distinct
    payload = {**claims, "type": kind, "jti": uuid4().hex, "exp": exp}
    return jwt.encode(payload, _secret_for(kind), algorithm=_jwt_alg())


def create_access_token(user_id: int, role: str) -> str:
    return _encode(ACCESS, {"sub": str(user_id), "role": role})


def create_refresh_token(user_id: int) -> str:
    return _encode(REFRESH, {"sub": str(user_id)})


def create_verification_token(email: str) -> str:
    return _encode(VERIFY, {"email": email})


def create_reset_token(user_id: int) -> str:
    return _encode(RESET, {"sub": str(user_id)})


def decode_token(token: str, kind: str) -> Optional[Dict[str, Any]]:
    """Claims of a valid, unexpired token of the given kind, else None."""
    if not token:
        return None
    try:
        data = jwt.decode(token, _secret_for(kind), algorithms=[_jwt_alg()])
    except JWTError:
        return None
    if data.get("type") != kind:
        return None
    return data


def token_user_id(claims: Optional[Dict[str, Any]]) -> Optional[int]:
    if not claims:
        return None
    try:
        return int(claims.get("sub"))
    except (TypeError, ValueError):
        return None
