"""
AssetDesk application factory.

WHAT: Builds the FastAPI app: logging, the shared storage and OpenAI
clients, error envelope, request context, CORS and the API routers.

WHY: Services never construct external clients themselves; they receive
them through ``app.state`` so tests can swap in fakes via dependency
overrides.
"""

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from openai import AsyncOpenAI

from assetdesk.api import assets, hierarchy, organizations, suggestions, tasks
from assetdesk.core.config import settings
from assetdesk.core.exception_handlers import register_exception_handlers
from assetdesk.core.logging_config import configure_logging
from assetdesk.middleware import RequestContextMiddleware
from assetdesk.services.storage_service import AttachmentStorage

logger = logging.getLogger(__name__)

API_ROUTERS = (
    organizations.router,
    organizations.invitations_router,
    assets.router,
    hierarchy.categories_router,
    hierarchy.spaces_router,
    tasks.router,
    suggestions.router,
)


def _build_ai_client() -> AsyncOpenAI | None:
    if not settings.ai_enabled:
        logger.warning("OpenAI API key not configured - AI suggestions disabled")
        return None
    return AsyncOpenAI(api_key=settings.OPENAI_API_KEY)


def create_app() -> FastAPI:
    """
    Create and configure the application.

    Returns:
        Configured FastAPI application instance
    """
    configure_logging()

    app = FastAPI(
        title=settings.PROJECT_NAME,
        description="Multi-tenant asset and maintenance management API",
        version=settings.VERSION,
        docs_url="/api/docs",
        redoc_url="/api/redoc",
        openapi_url="/api/openapi.json",
    )

    app.state.storage = AttachmentStorage.from_settings()
    app.state.ai_client = _build_ai_client()

    register_exception_handlers(app)

    app.add_middleware(RequestContextMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/health", tags=["health"])
    async def health_check() -> dict:
        """Liveness check; touches neither the database nor external services."""
        return {
            "status": "healthy",
            "version": settings.VERSION,
            "ai_enabled": app.state.ai_client is not None,
        }

    @app.on_event("shutdown")
    async def close_ai_client():
        if app.state.ai_client is not None:
            await app.state.ai_client.close()

    for router in API_ROUTERS:
        app.include_router(router, prefix=settings.API_V1_PREFIX)

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("assetdesk.main:app", host="0.0.0.0", port=8000, reload=settings.DEBUG)
