# pizzashop/errors.py
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from jose import JWTError
from pydantic import ValidationError
from sqlalchemy.exc import IntegrityError
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)

GENERIC_MESSAGE = "An unexpected error occurred"


class ApiError(Exception):
    status_code = 500

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class ValidationFailure(ApiError):
    status_code = 400


class AuthenticationFailure(ApiError):
    status_code = 401


class AuthorizationFailure(ApiError):
    status_code = 403


class NotFound(ApiError):
    status_code = 404


class Conflict(ApiError):
    status_code = 409


class TooManyRequests(ApiError):
    status_code = 429


class UnexpectedFailure(ApiError):
    status_code = 500


def is_unique_violation(exc: IntegrityError) -> bool:
    orig = getattr(exc, "orig", None)
    # postgres reports SQLSTATE 23505, sqlite only has the message
    if getattr(orig, "pgcode", None) == "23505" or getattr(orig, "sqlstate", None) == "23505":
        return True
    text = str(orig or exc).lower()
    return "unique constraint" in text or "duplicate key" in text or "duplicate entry" in text


def error_response(
    request: Request,
    status_code: int,
    message: str,
    exc: Optional[BaseException] = None,
    errors: Optional[List[str]] = None,
) -> JSONResponse:
    server_side = status_code >= 500
    logger.log(
        logging.ERROR if server_side else logging.WARNING,
        "%s %s -> %s: %s",
        request.method,
        request.url.path,
        status_code,
        message,
        exc_info=(type(exc), exc, exc.__traceback__) if exc is not None else None,
    )

    settings = getattr(request.app.state, "settings", None)
    if server_side and settings is not None and settings.is_production:
        message = GENERIC_MESSAGE

    body: Dict[str, Any] = {"success": False, "error": message}
    if errors:
        body["errors"] = errors
    return JSONResponse(status_code=status_code, content=body)


def _validation_messages(errs: List[Dict[str, Any]]) -> List[str]:
    out: List[str] = []
    for e in errs:
        loc = ".".join(str(p) for p in e.get("loc", ()) if p not in {"body", "query", "path"})
        msg = str(e.get("msg", "Invalid value"))
        out.append(f"{loc}: {msg}" if loc else msg)
    return out


def register_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(ApiError)
    async def _api_error(request: Request, exc: ApiError):
        cause = exc.__cause__ if exc.__cause__ is not None else exc
        return error_response(request, exc.status_code, exc.message, cause)

    @app.exception_handler(RequestValidationError)
    async def _request_validation(request: Request, exc: RequestValidationError):
        return error_response(request, 422, "Validation failed", exc, _validation_messages(exc.errors()))

    @app.exception_handler(ValidationError)
    async def _model_validation(request: Request, exc: ValidationError):
        return error_response(request, 422, "Validation failed", exc, _validation_messages(exc.errors()))

    @app.exception_handler(StarletteHTTPException)
    async def _http_error(request: Request, exc: StarletteHTTPException):
        return error_response(request, exc.status_code, str(exc.detail), exc)

    @app.exception_handler(IntegrityError)
    async def _integrity(request: Request, exc: IntegrityError):
        if is_unique_violation(exc):
            return error_response(request, 409, "Duplicate entry detected", exc)
        return error_response(request, 500, str(exc.orig or exc), exc)

    @app.exception_handler(JWTError)
    async def _jwt(request: Request, exc: JWTError):
        return error_response(request, 401, "Invalid token", exc)

    @app.exception_handler(Exception)
    async def _unhandled(request: Request, exc: Exception):
        return error_response(request, 500, str(exc) or exc.__class__.__name__, exc)
