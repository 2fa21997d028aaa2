"""FastAPI application entry point for the integration features service."""

from __future__ import annotations

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from integration_features.api.routes import router
from integration_features.config.settings import ServiceConfig
from integration_features.telemetry.log_context import configure_logging

SERVICE_NAME = "integration-features"
VERSION = "0.1.0"


def create_app(config: ServiceConfig | None = None) -> FastAPI:
    """Factory function for creating the FastAPI application."""
    config = config or ServiceConfig()
    configure_logging(config.log_level)

    app = FastAPI(
        title="Integration Features",
        description="Feature catalog extracted from integration pages",
        version=VERSION,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.api.allowed_origins,
        allow_credentials=config.api.cors_allow_credentials,
        allow_methods=["GET"],
        allow_headers=["*"],
    )

    app.include_router(router, prefix="/api/v1", tags=["integration-features"])

    @app.get("/health")
    async def health_check() -> dict[str, str]:
        return {"status": "healthy", "service": SERVICE_NAME, "version": VERSION}

    return app


app = create_app()
