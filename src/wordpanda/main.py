"""FastAPI application factory."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from wordpanda.config import get_settings
from wordpanda.database import close_db, init_db
from wordpanda.dispatch.router import router as dispatch_router
from wordpanda.health.router import router as health_router
from wordpanda.learning.router import router as learning_router
from wordpanda.middleware import setup_middleware
from wordpanda.subscribers.router import router as settings_router


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup and shutdown lifecycle."""
    settings = get_settings()
    await init_db(settings.database_url)
    yield
    await close_db()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="WordPanda API",
        description="Backend API for WordPanda: daily vocabulary lessons over email, Telegram and Google Chat",
        version=settings.app_version,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        lifespan=lifespan,
    )

    setup_middleware(app, settings)
    app.include_router(health_router, tags=["Health"])
    app.include_router(dispatch_router)
    app.include_router(learning_router)
    app.include_router(settings_router)

    return app


app = create_app()
