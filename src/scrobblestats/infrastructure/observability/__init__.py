"""Logging setup shared by the CLI and the HTTP service."""

from scrobblestats.infrastructure.observability.logging import (
    configure_logging,
    get_run_id,
    set_run_id,
)

__all__ = ["configure_logging", "get_run_id", "set_run_id"]
