"""
Logging for the social interaction service.

Every module calls get_logger(__name__). Records go to stdout and, when
LOGTAIL_SOURCE_TOKEN is set, to Logtail. Mutations log dict events such as
{"event": "follow_created", "follower_id": ..., "following_id": ...}; the
formatters below render those as JSON (Logtail, LOG_FORMAT=json) or as
`event key=value` lines (console).
"""
import json
import logging
import os
import sys
from typing import Any, Dict

from logtail import LogtailHandler

SERVICE_NAME = "social-core"

_loggers: Dict[str, logging.Logger] = {}


def _event_fields(record: logging.LogRecord) -> Dict[str, Any]:
    fields = dict(record.msg) if isinstance(record.msg, dict) else {"message": record.getMessage()}
    fields.setdefault("event", "log")
    return fields


class StructuredFormatter(logging.Formatter):
    """One JSON object per record; dict messages are merged into the top level."""

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "service": SERVICE_NAME,
            "level": record.levelname,
            "logger": record.name,
            "timestamp": self.formatTime(record, "%Y-%m-%dT%H:%M:%S%z"),
        }
        payload.update(_event_fields(record))
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str)


class ConsoleFormatter(logging.Formatter):
    """Human-readable lines; dict events become `event key=value ...`."""

    def __init__(self):
        super().__init__(fmt="%(asctime)s %(levelname)-7s %(name)s: %(message)s", datefmt="%Y-%m-%d %H:%M:%S")

    def formatMessage(self, record: logging.LogRecord) -> str:
        if isinstance(record.msg, dict):
            fields = _event_fields(record)
            event = fields.pop("event")
            pairs = " ".join(f"{key}={value}" for key, value in fields.items())
            record.message = f"{event} {pairs}".rstrip()
        return super().formatMessage(record)


def _level() -> int:
    return getattr(logging, os.getenv("LOG_LEVEL", "INFO").upper(), logging.INFO)


def get_logger(name: str) -> logging.Logger:
    """
    Return the cached logger for name, attaching handlers on first use.

    LOG_LEVEL sets the threshold, LOG_FORMAT=json switches stdout to JSON lines.
    """
    cached = _loggers.get(name)
    if cached is not None:
        return cached

    logger = logging.getLogger(name)
    logger.setLevel(_level())

    if not logger.handlers:
        stdout = logging.StreamHandler(sys.stdout)
        json_console = os.getenv("LOG_FORMAT", "").lower() == "json"
        stdout.setFormatter(StructuredFormatter() if json_console else ConsoleFormatter())
        logger.addHandler(stdout)

        token = os.getenv("LOGTAIL_SOURCE_TOKEN")
        if token:
            try:
                remote = LogtailHandler(source_token=token, host=os.getenv("LOGTAIL_INGEST_HOST", "in.logtail.com"))
            except Exception as e:
                logger.warning(f"Logtail handler unavailable, logging to stdout only: {e}")
            else:
                remote.setFormatter(StructuredFormatter())
                logger.addHandler(remote)

    _loggers[name] = logger
    return logger
