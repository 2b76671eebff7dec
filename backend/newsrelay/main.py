"""FastAPI entry point for the news relay backend."""

from __future__ import annotations

from contextlib import asynccontextmanager
from datetime import datetime, timezone
import logging
import time

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import ValidationError as SettingsValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException
import uvicorn

from newsrelay.config import Settings, get_settings
from newsrelay.errors import NewsRelayError, RemoteServiceError, StoreError, ValidationError
from newsrelay.models.schemas import CacheSummary, HealthResponse
from newsrelay.routers.chat import router as chat_router
from newsrelay.routers.monitoring import router as monitoring_router
from newsrelay.services.container import ServiceContainer, build_services

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)


def load_settings_or_exit() -> Settings:
    """Validate configuration; missing required values stop the process."""
    try:
        return get_settings()
    except SettingsValidationError as exc:
        for error in exc.errors():
            logger.error("Configuration error: %s", error.get("msg"))
        raise SystemExit(1) from exc


def create_app(services: ServiceContainer | None = None) -> FastAPI:
    """Build the application; pass `services` to skip settings-driven wiring."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        owned = services is None
        if owned:
            settings = load_settings_or_exit()
            logging.getLogger().setLevel(settings.log_level.upper())
            container = build_services(settings)
            await container.start()
        else:
            container = services
        app.state.services = container
        logger.info("News relay started; store connected=%s", container.store.is_connected)
        yield
        if owned:
            await container.close()
        logger.info("News relay shutdown complete")

    app = FastAPI(
        title="News Relay Backend",
        description="Retrieval-augmented news chat relay",
        version="0.1.0",
        lifespan=lifespan,
    )
    if services is not None:
        app.state.services = services

    app.add_middleware(
        CORSMiddleware,
        allow_origins=_cors_origins(),
        allow_methods=["GET", "POST"],
        allow_headers=["Content-Type"],
    )

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        started = time.perf_counter()
        response = await call_next(request)
        logger.info(
            "%s %s -> %s (%sms)",
            request.method,
            request.url.path,
            response.status_code,
            int((time.perf_counter() - started) * 1000),
        )
        return response

    _register_exception_handlers(app)

    app.include_router(chat_router, tags=["chat"])
    app.include_router(monitoring_router, prefix="/metrics", tags=["metrics"])

    @app.get("/health", summary="Health check", response_model=HealthResponse)
    async def health_check(request: Request) -> HealthResponse:
        """Return store connectivity and store-level cache counters."""
        container: ServiceContainer = request.app.state.services
        store_metrics = container.store.metrics
        return HealthResponse(
            status="ok",
            store="connected" if container.store.is_connected else "disconnected",
            cache=CacheSummary(
                hits=store_metrics.hits,
                misses=store_metrics.misses,
                hitRate=store_metrics.hit_rate,
            ),
            timestamp=datetime.now(tz=timezone.utc),
        )

    return app


def _cors_origins() -> list[str]:
    try:
        return get_settings().cors_origin_list
    except SettingsValidationError:
        return ["*"]


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


def _register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(ValidationError)
    async def handle_validation_error(request: Request, exc: ValidationError) -> JSONResponse:
        logger.info("Rejected %s %s: %s", request.method, request.url.path, exc.public_message)
        return _error(400, exc.public_message)

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation(request: Request, exc: RequestValidationError) -> JSONResponse:
        logger.info("Malformed request to %s: %s", request.url.path, exc.errors())
        return _error(400, "Invalid request payload")

    @app.exception_handler(RemoteServiceError)
    async def handle_remote_error(request: Request, exc: RemoteServiceError) -> JSONResponse:
        logger.error("Upstream failure on %s: %s", request.url.path, exc)
        return _error(500, "Failed to generate a response. Please try again.")

    @app.exception_handler(StoreError)
    async def handle_store_error(request: Request, exc: StoreError) -> JSONResponse:
        logger.error("Store failure on %s: %s", request.url.path, exc)
        return _error(500, "Chat history is temporarily unavailable.")

    @app.exception_handler(NewsRelayError)
    async def handle_relay_error(request: Request, exc: NewsRelayError) -> JSONResponse:
        logger.error("Request failed on %s: %s", request.url.path, exc)
        return _error(exc.status_code, exc.public_message)

    @app.exception_handler(StarletteHTTPException)
    async def handle_http_error(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        return _error(exc.status_code, str(exc.detail))

    @app.exception_handler(Exception)
    async def handle_unexpected(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return _error(500, "Internal server error")


app = create_app()


def run() -> None:
    """Console entry point: validate config and serve on PORT."""
    settings = load_settings_or_exit()
    uvicorn.run(app, host="0.0.0.0", port=settings.port or 3000, log_level=settings.log_level.lower())


if __name__ == "__main__":
    run()
