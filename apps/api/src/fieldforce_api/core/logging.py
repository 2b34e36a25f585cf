from __future__ import annotations

import json
import logging
import sys
from logging import LogRecord
from typing import Any, Dict, Iterable, Mapping

from loguru import logger
from opentelemetry import trace


_STDLIB_RECORD_ATTRS = frozenset(vars(logging.makeLogRecord({}))) | {"message", "asctime", "taskName"}

# Mason contact details travel with redemption requests and must not reach log sinks.
DEFAULT_REDACTED_FIELDS = frozenset(
    {"phone_number", "delivery_phone", "delivery_address", "delivery_name"}
)


def mask_value(value: Any) -> str:
    """Keep the last two characters of a contact field so support can still correlate."""

    text = str(value)
    if len(text) <= 2:
        return "*" * len(text)
    return "*" * (len(text) - 2) + text[-2:]


def redact_fields(extra: Mapping[str, Any], redacted: Iterable[str]) -> Dict[str, Any]:
    hidden = set(redacted)
    return {
        key: (mask_value(value) if key in hidden and value is not None else value)
        for key, value in extra.items()
    }


class InterceptHandler(logging.Handler):
    """Forward uvicorn, SQLAlchemy and Alembic records to Loguru."""

    def emit(self, record: LogRecord) -> None:  # pragma: no cover - bridging glue
        try:
            level: str | int = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        try:
            message = record.getMessage()
        except (TypeError, ValueError):  # pragma: no cover - malformed format strings
            message = str(record.msg)

        context = {key: value for key, value in vars(record).items() if key not in _STDLIB_RECORD_ATTRS}
        bound = logger.bind(stdlib_logger=record.name, **context)
        bound.opt(depth=6, exception=record.exc_info).log(level, message.replace("{", "{{").replace("}", "}}"))


def build_payload(record: Mapping[str, Any], metadata: Mapping[str, Any]) -> Dict[str, Any]:
    """Flatten a Loguru record into the JSON line shipped to the log pipeline."""

    payload: Dict[str, Any] = {
        "timestamp": record["time"].isoformat(),
        "level": record["level"].name.lower(),
        "message": record["message"],
        "logger": record["name"],
        "service": metadata.get("service_name", "unknown"),
        "environment": metadata.get("environment", "unknown"),
        "version": metadata.get("version", "unknown"),
    }

    span_context = trace.get_current_span().get_span_context()
    if span_context.is_valid:
        payload["trace_id"] = f"{span_context.trace_id:032x}"
        payload["span_id"] = f"{span_context.span_id:016x}"

    if record["exception"] is not None:
        payload["exception"] = repr(record["exception"].value)

    if record["extra"]:
        payload.update(redact_fields(record["extra"], metadata.get("redacted_fields", DEFAULT_REDACTED_FIELDS)))
    return payload


def configure_logging(
    *,
    service_name: str,
    environment: str,
    version: str,
    level: str = "INFO",
    redacted_fields: Iterable[str] = DEFAULT_REDACTED_FIELDS,
) -> None:
    """Install the JSON Loguru sink and route stdlib logging through it."""

    metadata = {
        "service_name": service_name,
        "environment": environment,
        "version": version,
        "redacted_fields": frozenset(redacted_fields),
    }

    def _sink(message: "logger.Message") -> None:
        sys.stdout.write(json.dumps(build_payload(message.record, metadata), default=str) + "\n")

    logger.remove()
    logger.add(_sink, level=level.upper(), backtrace=False, diagnose=False)

    logging.basicConfig(handlers=[InterceptHandler()], level=0, force=True)
    for noisy in ("uvicorn.access", "sqlalchemy.engine", "aiosqlite"):
        logging.getLogger(noisy).setLevel(logging.WARNING)
