"""FastAPI application initialization and configuration."""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from .core.config import Settings, settings as default_settings
from .core.database import close_db, engine, init_db, ping_db
from .core.exceptions import (
    ProblemDetailsException,
    generic_exception_handler,
    problem_details_handler,
)
from .core.middleware import setup_middleware
from .core.observability import (
    SERVICE_NAME,
    instrument_fastapi,
    instrument_sqlalchemy,
    setup_metrics,
    setup_structured_logging,
    setup_tracing,
)
from .routers import availability, inquiry, metrics, owner_action, payments
from .services.checkout import PaymentProvider, StripePaymentProvider
from .services.email_transport import EmailSender, PreviewEmailSender, SmtpEmailSender
from .services.notifications import Notifier, RoutingConfig
from .services.signing import ActionLinkSigner

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Application lifespan context manager.

    Handles startup and shutdown events for the FastAPI application.
    """
    config: Settings = app.state.settings
    logger.info("Starting villa inquiry service", extra={"environment": config.environment})

    try:
        setup_tracing(config)
        setup_metrics(config)
        instrument_sqlalchemy(engine)
        logger.info("Observability setup completed")

        await init_db()
        logger.info("Database initialized successfully")
    except Exception:
        logger.exception("Failed to initialize application")
        raise

    yield

    logger.info("Shutting down villa inquiry service")
    try:
        await close_db()
        logger.info("Database connections closed")
    except SQLAlchemyError:
        logger.exception("Error during application cleanup")


def build_email_sender(config: Settings) -> EmailSender:
    if config.smtp_configured:
        return SmtpEmailSender(
            host=config.smtp_host,
            port=config.smtp_port,
            username=config.smtp_user,
            password=config.smtp_password,
            timeout=config.smtp_timeout_seconds,
        )
    logger.warning("SMTP is not configured; emails will only be logged")
    return PreviewEmailSender()


def build_payment_provider(config: Settings) -> Optional[PaymentProvider]:
    if not config.stripe_secret_key:
        logger.warning("STRIPE_SECRET_KEY is not set; checkout and webhooks are disabled")
        return None
    return StripePaymentProvider(config.stripe_secret_key, config.stripe_webhook_secret)


def create_app(
    settings: Optional[Settings] = None,
    email_sender: Optional[EmailSender] = None,
    payment_provider: Optional[PaymentProvider] = None,
) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Collaborators not passed in are built from ``settings``.

    Raises:
        ConfigurationError: If no owner action secret is configured
    """
    config = settings or default_settings
    setup_structured_logging(config)

    app = FastAPI(
        title="Villa Inquiry API",
        description="Guest inquiries, owner approval through signed links, hosted checkout and booking records",
        version="1.0.0",
        debug=config.debug,
        lifespan=lifespan,
        docs_url="/docs" if config.debug else None,
        redoc_url="/redoc" if config.debug else None,
    )

    app.state.settings = config
    app.state.signer = ActionLinkSigner(config.require_signing_secret())
    app.state.notifier = Notifier(email_sender or build_email_sender(config), RoutingConfig.from_settings(config))
    app.state.payment_provider = payment_provider or build_payment_provider(config)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID"],
    )

    setup_middleware(app, enable_logging=True)

    instrument_fastapi(app)

    app.add_exception_handler(ProblemDetailsException, problem_details_handler)
    app.add_exception_handler(Exception, generic_exception_handler)

    @app.get(
        "/health",
        status_code=status.HTTP_200_OK,
        tags=["Health"],
        summary="Health Check",
        description="Check if the service is healthy and responsive",
        response_model=dict,
    )
    async def health_check():
        return {
            "status": "healthy",
            "service": SERVICE_NAME,
            "version": "1.0.0",
            "environment": config.environment,
        }

    @app.get(
        "/ready",
        tags=["Health"],
        summary="Readiness Check",
        description="Check that the database answers and report which providers are configured",
        response_model=dict,
    )
    async def readiness_check():
        try:
            await ping_db()
            database = "ok"
        except (SQLAlchemyError, OSError):
            logger.warning("Readiness database check failed", exc_info=True)
            database = "unavailable"
        body = {
            "status": "ready" if database == "ok" else "not_ready",
            "service": SERVICE_NAME,
            "checks": {
                "database": database,
                "payments": "configured" if app.state.payment_provider else "disabled",
                "smtp": "configured" if config.smtp_configured else "preview",
            },
        }
        code = status.HTTP_200_OK if database == "ok" else status.HTTP_503_SERVICE_UNAVAILABLE
        return JSONResponse(body, status_code=code)

    app.include_router(inquiry.router)
    app.include_router(owner_action.router)
    app.include_router(availability.router)
    app.include_router(payments.router)
    app.include_router(metrics.router)

    logger.info("FastAPI application created and configured")

    return app


# Create the application instance
app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "villa_inquiries.main:app",
        host=default_settings.host,
        port=default_settings.port,
        reload=default_settings.debug,
        log_level=default_settings.log_level.lower(),
        access_log=True,
    )
