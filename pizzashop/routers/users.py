# pizzashop/routers/users.py
from __future__ import annotations

from fastapi import APIRouter, BackgroundTasks, Cookie, Depends, Query, Request, Response
from sqlalchemy.orm import Session

from .. import accounts
from ..auth import refresh_max_age_seconds
from ..config import Settings
from ..db import get_db
from ..deps import get_login_limiter, get_mailer, get_settings, require_capability, require_user
from ..emailer import Mailer, notify, send_password_reset_email, send_verification_email
from ..errors import ApiError
from ..models import User
from ..ratelimit import LoginLimiter
from ..roles import Capability
from ..schemas import ForgotPasswordIn, LoginIn, ProfileUpdateIn, RegisterIn, ResetPasswordIn, UserOut

router = APIRouter(prefix="/api/v1/users", tags=["users"])

REFRESH_COOKIE = "refresh_token"


def _user(u: User) -> dict:
    return UserOut.model_validate(u).model_dump(mode="json")


# -------------------
# Public
# -------------------
@router.post("/register", status_code=201)
def register(
    payload: RegisterIn,
    tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
    mailer: Mailer = Depends(get_mailer),
):
    user = accounts.register(db, payload)
    tasks.add_task(
        notify,
        lambda: send_verification_email(mailer, settings.base_url, user.email, user.verification_token),
        "verification",
    )
    return {
        "success": True,
        "message": "Registration successful. Please check your email to verify your account.",
        "user": _user(user),
    }


@router.get("/verify-email")
def verify_email(token: str = Query(default=""), db: Session = Depends(get_db)):
    accounts.verify_email(db, token)
    return {"success": True, "message": "Email verified successfully"}


@router.post("/login")
def login(
    payload: LoginIn,
    request: Request,
    response: Response,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
    limiter: LoginLimiter = Depends(get_login_limiter),
):
    client_key = request.client.host if request.client else "unknown"
    limiter.check(client_key)
    try:
        user, access, refresh = accounts.login(db, payload.email, payload.password)
    except ApiError:
        limiter.record_failure(client_key)
        raise

    response.set_cookie(
        key=REFRESH_COOKIE,
        value=refresh,
        httponly=True,
        secure=settings.is_production,
        samesite="lax",
        max_age=refresh_max_age_seconds(),
    )
    return {"success": True, "accessToken": access, "user": _user(user)}


@router.get("/token/refresh")
def refresh_token(
    db: Session = Depends(get_db),
    refresh: str | None = Cookie(default=None, alias=REFRESH_COOKIE),
):
    return {"success": True, "accessToken": accounts.refresh_access(db, refresh)}


@router.post("/forgot-password")
def forgot_password(
    payload: ForgotPasswordIn,
    tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
    mailer: Mailer = Depends(get_mailer),
):
    found = accounts.forgot_password(db, payload.email)
    if found:
        user, token = found
        tasks.add_task(
            notify,
            lambda: send_password_reset_email(mailer, settings.base_url, user.email, token),
            "password reset",
        )
    # same answer whether or not the account exists
    return {"success": True, "message": "If the email exists, a reset link will be sent"}


@router.post("/reset-password")
def reset_password(payload: ResetPasswordIn, db: Session = Depends(get_db)):
    accounts.reset_password(db, payload.token, payload.new_password)
    return {"success": True, "message": "Password reset successfully"}


# -------------------
# Authenticated
# -------------------
@router.get("/profile")
def get_profile(user: User = Depends(require_user)):
    return {"success": True, "user": _user(user)}


@router.put("/profile")
def update_profile(payload: ProfileUpdateIn, user: User = Depends(require_user), db: Session = Depends(get_db)):
    return {"success": True, "user": _user(accounts.update_profile(db, user, payload))}


@router.post("/logout")
def logout(response: Response, user: User = Depends(require_user), db: Session = Depends(get_db)):
    accounts.logout(db, user)
    response.delete_cookie(REFRESH_COOKIE, httponly=True)
    return {"success": True, "message": "Logged out successfully"}


# -------------------
# Admin
# -------------------
@router.delete("/{user_id}")
def delete_user(
    user_id: int,
    _admin: User = Depends(require_capability(Capability.manage_users)),
    db: Session = Depends(get_db),
):
    accounts.delete_user(db, user_id)
    return {"success": True, "message": "User deleted successfully"}
