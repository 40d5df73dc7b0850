"""Structured logging configuration with JSON formatting and run IDs."""

import contextvars
import logging
import sys
import traceback
import uuid
from pathlib import Path
from typing import Any

from pythonjsonlogger import jsonlogger

# Hey future me - one run id per sync/import/request. It lives in a contextvar so
# asyncio.gather() fan-out inherits it and every log line of one run can be grepped
# together. Default "" covers startup logs that belong to no run.
run_id_var: contextvars.ContextVar[str] = contextvars.ContextVar("run_id", default="")


def get_run_id() -> str:
    """Get the current run ID, or "" outside of a run."""
    return run_id_var.get()


def set_run_id(run_id: str | None = None) -> str:
    """Set the run ID in context.

    Args:
        run_id: ID to set. If None, generates a short random one

    Returns:
        The run ID that was set
    """
    if run_id is None:
        run_id = uuid.uuid4().hex[:12]
    run_id_var.set(run_id)
    return run_id


class RunIdFilter(logging.Filter):
    """Add run_id to log records."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.run_id = get_run_id()
        return True


class CompactExceptionFormatter(logging.Formatter):
    """Text formatter that prints exception chains root-cause first, our frames only.

    Example output:
    12:00:01 │ ERROR   │ scrobblestats...orchestrator:120 │ [a1b2c3] Sync failed
    ╰─► ConnectError: All connection attempts failed
    ╰─► ExternalServiceError: Last.fm request failed: All connection attempts failed
        File "lastfm_client.py", line 118, in _make_request
          raise ExternalServiceError("Last.fm", str(e) or type(e).__name__) from e
    """

    def format(self, record: logging.LogRecord) -> str:
        run_id = getattr(record, "run_id", "")
        record.run_prefix = f"[{run_id}] " if run_id else ""
        return super().format(record)

    def formatException(self, ei: Any) -> str:
        _, exc_value, _ = ei
        if exc_value is None:
            return ""

        chain: list[BaseException] = []
        current: BaseException | None = exc_value
        while current is not None and current not in chain:
            chain.append(current)
            current = current.__cause__ or current.__context__
        chain.reverse()

        lines: list[str] = []
        for exc in chain:
            lines.append(f"╰─► {exc.__class__.__name__}: {exc}")
            if exc.__traceback__ is None:
                continue
            for frame in traceback.extract_tb(exc.__traceback__):
                if "/site-packages/" in frame.filename or "scrobblestats" not in frame.filename:
                    continue
                lines.append(
                    f'    File "{Path(frame.filename).name}", line {frame.lineno}, in {frame.name}'
                )
                if frame.line:
                    lines.append(f"      {frame.line.strip()}")
        return "\n".join(lines)


class CustomJsonFormatter(jsonlogger.JsonFormatter):  # type: ignore[misc]
    """JSON formatter with level, logger, source location and run id fields."""

    def add_fields(
        self,
        log_record: dict[str, Any],
        record: logging.LogRecord,
        message_dict: dict[str, Any],
    ) -> None:
        super().add_fields(log_record, record, message_dict)

        log_record["timestamp"] = self.formatTime(record, self.datefmt)
        log_record["level"] = record.levelname
        log_record["logger"] = record.name
        log_record["function"] = record.funcName
        log_record["line"] = record.lineno

        run_id = getattr(record, "run_id", "")
        if run_id:
            log_record["run_id"] = run_id

        if record.exc_info:
            log_record["exc_info"] = self.formatException(record.exc_info)


def configure_logging(log_level: str = "INFO", json_format: bool = False) -> None:
    """Configure root logging. Call once per process (CLI main or app startup).

    Logs go to stderr so CLI commands like export-sql can stream to stdout.

    Args:
        log_level: Logging level name (DEBUG, INFO, WARNING, ERROR)
        json_format: Emit one JSON object per line instead of text
    """
    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    level = getattr(logging, log_level.upper(), logging.INFO)
    root_logger.setLevel(level)

    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)
    handler.addFilter(RunIdFilter())

    formatter: logging.Formatter
    if json_format:
        formatter = CustomJsonFormatter(
            "%(timestamp)s %(level)s %(name)s %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    else:
        formatter = CompactExceptionFormatter(
            fmt="%(asctime)s │ %(levelname)-7s │ %(name)s:%(lineno)d │ %(run_prefix)s%(message)s",
            datefmt="%H:%M:%S",
        )
    handler.setFormatter(formatter)
    root_logger.addHandler(handler)

    # HTTP libraries log every request at INFO; a 10-page sync would drown in them.
    for noisy in ("httpx", "httpcore", "aiosqlite", "asyncio", "uvicorn.access"):
        logging.getLogger(noisy).setLevel(logging.WARNING)

    logging.getLogger(__name__).debug(
        "Logging configured", extra={"log_level": log_level, "json_format": json_format}
    )
