"""Scrobble ingestion, Last.fm sync and listening statistics."""

__version__ = "0.1.0"
