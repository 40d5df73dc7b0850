"""FastAPI lifespan: open store and Last.fm clients at startup, close them at shutdown."""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from scrobblestats.config import Settings, get_settings
from scrobblestats.domain.ports import IQueryExecutor, IScrobbleSource
from scrobblestats.infrastructure.integrations import LastfmClient
from scrobblestats.infrastructure.observability import configure_logging
from scrobblestats.infrastructure.persistence import create_query_executor

logger = logging.getLogger(__name__)


# Hey future me - a missing store or Last.fm config does NOT stop the app from
# starting. The healthz probe must keep answering; the stats endpoint reports
# "Database not configured" and now-playing falls back to its fixed lines.
@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager."""
    settings: Settings = getattr(app.state, "settings", None) or get_settings()
    app.state.settings = settings
    configure_logging(settings.log_level, settings.log_json)

    executor: IQueryExecutor | None = None
    missing_store = settings.store.missing_names()
    if missing_store:
        logger.warning(f"Store not configured, missing: {', '.join(missing_store)}")
    else:
        executor = create_query_executor(settings.store)
    app.state.executor = executor

    source: IScrobbleSource | None = None
    missing_lastfm = settings.lastfm.missing_names()
    if missing_lastfm:
        logger.warning(f"Last.fm not configured, missing: {', '.join(missing_lastfm)}")
    else:
        source = LastfmClient(settings.lastfm)
    app.state.scrobble_source = source

    logger.info("Application started")
    try:
        yield
    finally:
        if source is not None:
            await source.close()
        if executor is not None:
            await executor.close()
        logger.info("Application stopped")
