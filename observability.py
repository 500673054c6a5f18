"""Structured JSON logging for the plan pipeline.

Every request flow (workout, nutrition, download, email) is wrapped in
``log_workflow`` so a single ``.jsonl`` line records how it started and how
it ended. Raw model output that fails to parse is dumped through
``log_data_structure`` with truncation.
"""

import json
import logging
import logging.handlers
import os
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Iterator

LOG_DIR = Path(os.getenv("LOG_DIR", "/tmp/brosplit_logs"))
LOG_RETENTION_DAYS = int(os.getenv("LOG_RETENTION_DAYS", "7"))
STRUCTURED_LOG_LEVEL = os.getenv("STRUCTURED_LOG_LEVEL", "INFO").upper()

# Payloads longer than this are truncated in log records
MAX_LOGGED_PAYLOAD_CHARS = 5000


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class JSONFormatter(logging.Formatter):
    """One JSON object per record; ``extra_fields`` are merged at top level."""

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": _utcnow().isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
        }
        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)
        log_data.update(getattr(record, "extra_fields", None) or {})
        return json.dumps(log_data, default=str)


def setup_structured_logger(name: str) -> logging.Logger:
    """Return ``name`` logging JSON lines to ``LOG_DIR/<name>.jsonl``.

    Files rotate at midnight; ``LOG_RETENTION_DAYS`` rotated files are kept.
    """
    logger = logging.getLogger(name)
    logger.setLevel(getattr(logging, STRUCTURED_LOG_LEVEL, logging.INFO))
    if logger.handlers:
        return logger

    LOG_DIR.mkdir(parents=True, exist_ok=True)
    handler = logging.handlers.TimedRotatingFileHandler(
        filename=LOG_DIR / f"{name}.jsonl",
        when="midnight",
        backupCount=LOG_RETENTION_DAYS,
        encoding="utf-8",
    )
    handler.setFormatter(JSONFormatter())
    logger.addHandler(handler)
    return logger


@contextmanager
def log_workflow(logger: logging.Logger, workflow_name: str, **context) -> Iterator[Dict[str, Any]]:
    """Log the start and the outcome of one request flow.

    The yielded dict collects outcome fields (page count, attempts,
    filename...) that are added to the completion record. Failures log the
    error and its ``kind`` when it is a service error, then re-raise.

    Example:
        with log_workflow(logger, "email_plan", nutrition=True) as outcome:
            outcome["filename"] = send_plan()
    """
    start_time = _utcnow()
    outcome: Dict[str, Any] = {}
    base_fields = {"workflow": workflow_name, **context}

    logger.info(f"Workflow started: {workflow_name}", extra={"extra_fields": {**base_fields, "phase": "start"}})

    try:
        yield outcome
    except Exception as exc:
        logger.error(
            f"Workflow failed: {workflow_name}",
            extra={
                "extra_fields": {
                    **base_fields,
                    **outcome,
                    "phase": "error",
                    "duration_ms": (_utcnow() - start_time).total_seconds() * 1000,
                    "error": str(exc),
                    "error_type": type(exc).__name__,
                    "error_kind": getattr(exc, "kind", None),
                }
            },
            exc_info=True,
        )
        raise

    logger.info(
        f"Workflow completed: {workflow_name}",
        extra={
            "extra_fields": {
                **base_fields,
                **outcome,
                "phase": "complete",
                "duration_ms": (_utcnow() - start_time).total_seconds() * 1000,
            }
        },
    )


def log_data_structure(logger: logging.Logger, name: str, data: Any, level: str = "DEBUG") -> None:
    """Log ``data`` (dict, list or raw text) truncated to ``MAX_LOGGED_PAYLOAD_CHARS``."""
    if isinstance(data, (dict, list)):
        serialized = json.dumps(data, indent=2, default=str)
    else:
        serialized = str(data)

    fields: Dict[str, Any] = {"data_name": name, "truncated": len(serialized) > MAX_LOGGED_PAYLOAD_CHARS}
    if fields["truncated"]:
        fields["data_preview"] = serialized[:MAX_LOGGED_PAYLOAD_CHARS]
        fields["full_size"] = len(serialized)
        name = f"{name} (truncated)"
    else:
        fields["data"] = serialized

    getattr(logger, level.lower())(name, extra={"extra_fields": fields})
