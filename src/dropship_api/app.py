from contextlib import asynccontextmanager

from fastapi import FastAPI
from loguru import logger

from dropship_api.core.settings import settings
from .api.errors import register_exception_handlers
from .api.routes import api_router
from .core.logging import configure_logging
from .observability.tracing import configure_tracing
from .services.dropshipping import DropshippingService


APP_VERSION = "0.1.0"


@asynccontextmanager
async def lifespan(app: FastAPI):
    service: DropshippingService | None = getattr(app.state, "dropshipping_service", None)
    owns_service = service is None
    if owns_service:
        service = DropshippingService.from_settings(settings)
        app.state.dropshipping_service = service

    logger.info(
        "Dropshipping service ready",
        providers=list(service.providers),
        enabled=[descriptor.name for descriptor in service.get_enabled_providers()],
        injected=not owns_service,
    )

    try:
        yield
    finally:
        if owns_service:
            await service.aclose()
            app.state.dropshipping_service = None


def create_app(service: DropshippingService | None = None) -> FastAPI:
    """Application factory for the dropshipping API."""
    configure_logging(
        service_name="dropship-api",
        environment=settings.environment,
        version=APP_VERSION,
    )

    app = FastAPI(
        title="Dropship API",
        version=APP_VERSION,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )
    app.state.dropshipping_service = service

    if settings.tracing_enabled:
        configure_tracing(
            app,
            service_name="dropship-api",
            service_version=APP_VERSION,
            environment=settings.environment,
        )

    register_exception_handlers(app)
    app.include_router(api_router)

    @app.get("/healthz", tags=["Health"])
    async def health_check() -> dict[str, str]:
        return {
            "status": "ok",
            "environment": settings.environment,
            "version": APP_VERSION,
        }

    return app
