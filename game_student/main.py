import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from game_student.config import Settings
from game_student.database import make_engine, make_session_factory
from game_student.errors import (
    DuplicateEmailError,
    GatewayError,
    NotFoundError,
    NotificationError,
    StoreError,
)
from game_student.logging_config import setup_logging
from game_student.notifications import EmailSender
from game_student.observability import instrument
from game_student.routes import router
from game_student.store import SqlStore, Store
from game_student.stripe_service import StripeGateway
from game_student.webhooks import router as webhook_router

logger = logging.getLogger(__name__)


def _error(status_code: int):
    async def handler(request: Request, exc: Exception):
        if status_code >= 500:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc)
        return JSONResponse(status_code=status_code, content={"detail": str(exc)})
    return handler


async def validation_error(request: Request, exc: RequestValidationError):
    return JSONResponse(status_code=400, content={"detail": str(exc)})


def create_app(
    settings: Optional[Settings] = None,
    store: Optional[Store] = None,
    gateway: Optional[StripeGateway] = None,
    sender: Optional[EmailSender] = None,
) -> FastAPI:
    """
    Build the application with explicit collaborators.

    Anything not passed in is built from ``settings`` (or the environment).
    """
    settings = settings or Settings.from_env()
    engine = None

    if store is None:
        engine = make_engine(settings.database_url, pool_pre_ping=True)
        store = SqlStore(make_session_factory(engine))
    if gateway is None:
        gateway = StripeGateway(
            settings.stripe_secret_key,
            api_version=settings.stripe_api_version,
            fee_percent=settings.platform_fee_percent,
            fee_destination=settings.platform_fee_destination,
        )
    if sender is None:
        sender = EmailSender(settings.sendgrid_api_key, settings.mail_from, settings.mail_from_name)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("starting %s", settings.app_name)
        yield
        if engine is not None:
            engine.dispose()
        logger.info("%s stopped", settings.app_name)

    app = FastAPI(title=settings.app_name, lifespan=lifespan)
    app.state.settings = settings
    app.state.store = store
    app.state.gateway = gateway
    app.state.sender = sender

    app.add_exception_handler(RequestValidationError, validation_error)
    app.add_exception_handler(NotFoundError, _error(404))
    app.add_exception_handler(DuplicateEmailError, _error(400))
    app.add_exception_handler(StoreError, _error(500))
    app.add_exception_handler(GatewayError, _error(500))
    app.add_exception_handler(NotificationError, _error(500))

    app.include_router(router)
    app.include_router(webhook_router)

    @app.get("/health", tags=["Health"])
    def health():
        return {"status": "ok"}

    return app


def create_app_from_env():
    """Entry point for `uvicorn --factory`; wrapped by New Relic when licensed."""
    settings = Settings.from_env()
    setup_logging(settings.log_level)
    return instrument(create_app(settings), settings)
