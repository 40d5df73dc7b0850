"""HTTP API for the listening statistics."""

from scrobblestats.api.app import create_app

__all__ = ["create_app"]
