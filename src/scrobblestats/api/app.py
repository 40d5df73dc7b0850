"""FastAPI application factory."""

from fastapi import FastAPI

from scrobblestats import __version__
from scrobblestats.api.routers import health, listening_stats, now_playing
from scrobblestats.config import Settings
from scrobblestats.infrastructure.lifecycle import lifespan


def create_app(settings: Settings | None = None) -> FastAPI:
    """
    Build the app. All routes live under /api.

    Args:
        settings: Explicit settings (tests); defaults to the environment
    """
    app = FastAPI(title="scrobblestats", version=__version__, lifespan=lifespan)
    if settings is not None:
        app.state.settings = settings

    app.include_router(health.router, prefix="/api", tags=["health"])
    app.include_router(listening_stats.router, prefix="/api", tags=["stats"])
    app.include_router(now_playing.router, prefix="/api", tags=["now-playing"])
    return app
