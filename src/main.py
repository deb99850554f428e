"""FastAPI application initialization."""

from contextlib import asynccontextmanager
from pathlib import Path

import logfire
import sentry_sdk
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from sentry_sdk.integrations.fastapi import FastApiIntegration

from src.api import health, webhook
from src.config import Settings, get_settings
from src.constants import GRACEFUL_SHUTDOWN_TIMEOUT_SECONDS
from src.logging_config import mask_pii, setup_logfire
from src.services.dispatcher import build_dispatcher
from src.services.messaging_protocol import MessagingService
from src.services.scheduler import TaskScheduler
from src.services.search_service import SearchBackend
from src.services.signature import SignatureVerificationError

APP_TITLE = "Messenger Painting Bot"
APP_VERSION = "0.1.0"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager with graceful shutdown support."""
    settings: Settings = app.state.settings

    # Initialize Logfire for observability
    setup_logfire(app, settings)

    # Initialize Sentry if DSN is provided
    if settings.sentry_dsn:
        sentry_sdk.init(
            dsn=settings.sentry_dsn,
            traces_sample_rate=settings.sentry_traces_sample_rate,
            environment=settings.env,
            integrations=[FastApiIntegration()],
        )

    logfire.info(
        "Application startup complete",
        environment=settings.env,
        mock_mode=settings.messenger_mock_mode,
        path_prefix=settings.path_prefix,
        page_access_token=mask_pii(settings.facebook_page_access_token),
    )

    yield

    # In-flight searches and delayed replies get a chance to finish
    scheduler: TaskScheduler = app.state.scheduler
    logfire.info(
        "Application shutdown initiated", pending_tasks=scheduler.pending_count
    )
    if scheduler.pending_count:
        await scheduler.shutdown(GRACEFUL_SHUTDOWN_TIMEOUT_SECONDS)
    logfire.info("Application shutdown complete")


async def signature_error_handler(
    request: Request, exc: SignatureVerificationError
) -> JSONResponse:
    """Reject requests whose signature does not match; nothing is dispatched."""
    logfire.error(
        "Webhook signature verification failed",
        path=request.url.path,
        error=str(exc),
    )
    return JSONResponse({"status": "forbidden"}, status_code=403)


def create_app(
    settings: Settings | None = None,
    *,
    messaging: MessagingService | None = None,
    search: SearchBackend | None = None,
    scheduler: TaskScheduler | None = None,
) -> FastAPI:
    """
    Build the FastAPI application.

    Settings are loaded once here and injected into every component via
    ``app.state``. Collaborators can be passed in for tests.

    Args:
        settings: Application settings (default: loaded from file/environment)
        messaging: Outbound messaging service (default: MessengerClient)
        search: Search backend (default: WikidataSearchBackend)
        scheduler: Background task scheduler
    """
    settings = settings or get_settings()
    scheduler = scheduler or TaskScheduler()

    app = FastAPI(
        title=APP_TITLE,
        description="Facebook Messenger bot that finds paintings and monuments on Wikidata",
        version=APP_VERSION,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.scheduler = scheduler
    app.state.dispatcher = build_dispatcher(
        settings, scheduler, messaging=messaging, search=search
    )

    app.add_exception_handler(SignatureVerificationError, signature_error_handler)

    prefix = settings.path_prefix
    app.include_router(health.router, tags=["health"])
    app.include_router(webhook.router, prefix=f"{prefix}/webhook", tags=["webhook"])

    @app.get("/")
    def root():
        """Root endpoint."""
        return {"message": f"{APP_TITLE} API", "version": APP_VERSION}

    # Static assets (images referenced by relative URL) live under the prefix
    if Path(settings.static_dir).is_dir():
        app.mount(
            prefix or "/",
            StaticFiles(directory=settings.static_dir),
            name="static",
        )

    return app


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "src.main:create_app",
        factory=True,
        host="0.0.0.0",
        port=get_settings().port,
        reload=get_settings().env == "local",
    )
