"""
Entry point for the Fortress backend.

This module creates the FastAPI application, includes all API routers and
starts the background outbox worker when enabled. Run with:

    uvicorn fortress.main:app --reload

"""

from __future__ import annotations

import logging
import os
import threading

from fastapi import FastAPI

from .api import api_router
from .core.config import get_app_env, settings
from .core.db import SessionLocal, engine
from .core.errors import log_exception
from .logging_config import setup_logging
from .models import Base
from .services.auth_seed import seed_admin_user
from .services.notification_outbox import run_notification_worker


def _flag(name: str, default: bool) -> bool:
    return os.getenv(name, "true" if default else "false").lower() in {"1", "true", "yes"}


def create_app() -> FastAPI:
    setup_logging(os.getenv("LOG_LEVEL") or settings.log_level)
    app = FastAPI(title="Fortress Backend", version="0.1.0")
    app.include_router(api_router)
    app.state.notification_worker = None
    app.state.notification_worker_stop = None

    @app.on_event("startup")
    def _init_db() -> None:
        logger = logging.getLogger("startup")
        env = get_app_env()
        if _flag("AUTO_CREATE_DB", settings.auto_create_db):
            try:
                Base.metadata.create_all(bind=engine)
            except Exception as exc:
                log_exception(logger, "DB create_all failed", exc=exc)
                if env == "prod":
                    raise
        if _flag("AUTO_SEED_ADMIN_USER", settings.auto_seed_admin_user):
            try:
                with SessionLocal() as db:
                    seed_admin_user(db)
            except Exception as exc:
                log_exception(logger, "Seed admin user failed", exc=exc)
                if env == "prod":
                    raise
        if _flag("ENABLE_NOTIFICATION_WORKER", settings.enable_notification_worker):
            stop_event = threading.Event()
            thread = threading.Thread(
                target=run_notification_worker,
                args=(stop_event, settings.notification_worker_interval_sec),
                daemon=True,
                name="notification-outbox",
            )
            thread.start()
            app.state.notification_worker_stop = stop_event
            app.state.notification_worker = thread

    @app.on_event("shutdown")
    def _shutdown() -> None:
        stop_event = getattr(app.state, "notification_worker_stop", None)
        if stop_event:
            stop_event.set()
        thread = getattr(app.state, "notification_worker", None)
        if thread:
            thread.join(timeout=5)

    return app


app = create_app()
