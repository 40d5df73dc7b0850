"""Domain ports (interfaces) for dependency inversion."""

from abc import ABC, abstractmethod
from collections.abc import Mapping, Sequence
from typing import Any

from scrobblestats.domain.dtos import RecentTracksPage

Row = Mapping[str, Any]


class IQueryExecutor(ABC):
    """Port for the SQL-executing scrobble store.

    Hey future me - THIS is the only way anything talks to the store!
    Parameters are positional (`?` placeholders), never string-formatted.
    Remote (D1 over HTTP) and local (SQLAlchemy) stores both implement it.
    """

    @abstractmethod
    async def execute(self, sql: str, params: Sequence[Any] = ()) -> list[Row]:
        """
        Execute one parameterized statement.

        Args:
            sql: SQL text with `?` placeholders
            params: Positional parameters

        Returns:
            Result rows as column-name → value mappings (empty for writes
            without RETURNING)

        Raises:
            StoreQueryError: If the store rejects or fails the query
        """
        pass

    async def close(self) -> None:
        """Release connections. Default: nothing to release."""
        return None


class IScrobbleSource(ABC):
    """Port for the paginated, rate-limited scrobble history source."""

    @abstractmethod
    async def get_recent_tracks(self, page: int = 1, limit: int = 200) -> RecentTracksPage:
        """
        Fetch one page of play events, newest first.

        Args:
            page: 1-based page number
            limit: Events per page

        Returns:
            Deserialized page with paging totals

        Raises:
            ExternalServiceError: On any non-success response
        """
        pass

    async def close(self) -> None:
        """Release connections. Default: nothing to release."""
        return None


__all__ = ["IQueryExecutor", "IScrobbleSource", "Row"]
