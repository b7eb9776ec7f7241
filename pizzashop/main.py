# pizzashop/main.py
"""Pizza ordering API.

Run with:  uvicorn pizzashop.main:create_app --factory
"""
from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .config import Settings
from .db import Database
from .emailer import Mailer
from .errors import register_error_handlers
from .ratelimit import LoginLimiter
from .routers import ingredients, orders, pizzas, users

logger = logging.getLogger(__name__)


def create_app(settings: Optional[Settings] = None, mailer: Optional[Mailer] = None) -> FastAPI:
    settings = settings or Settings()

    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    # process-scoped resources: built here, torn down when the app stops
    db = Database(settings.database_url)
    db.create_all()
    mailer = mailer or Mailer(settings)

    @asynccontextmanager
    async def lifespan(_app: FastAPI):
        logger.info("Pizza API starting (env=%s)", settings.app_env)
        yield
        db.dispose()
        logger.info("Pizza API stopped")

    app = FastAPI(title="Pizza Ordering API", version="1.0.0", lifespan=lifespan)
    app.state.settings = settings
    app.state.db = db
    app.state.mailer = mailer
    app.state.login_limiter = LoginLimiter(settings.login_max_attempts, settings.login_window_seconds)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE"],
        allow_headers=["*"],
    )

    register_error_handlers(app)

    app.include_router(users.router)
    app.include_router(orders.router)
    app.include_router(pizzas.router)
    app.include_router(ingredients.router)

    @app.get("/")
    def root():
        return {"ok": True, "service": "pizza-api"}

    return app
