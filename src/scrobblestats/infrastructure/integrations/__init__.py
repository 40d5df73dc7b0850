"""External service integrations."""

from scrobblestats.infrastructure.integrations.lastfm_client import LastfmClient

__all__ = ["LastfmClient"]
