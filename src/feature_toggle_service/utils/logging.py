"""Utility helpers for structured logging."""

from __future__ import annotations

import logging
from datetime import datetime

from pythonjsonlogger.json import JsonFormatter

SERVICE_NAME = "feature-toggle-service"


def configure_logging(level: str = "INFO", service: str = SERVICE_NAME) -> None:
    """Send every record through one JSON handler tagged with the service name."""

    log_level = getattr(logging, level.upper(), logging.INFO)
    logger = logging.getLogger()
    logger.setLevel(log_level)

    # pytest and uvicorn both install handlers of their own
    while logger.handlers:
        logger.handlers.pop()

    handler = logging.StreamHandler()
    formatter = JsonFormatter(
        "%(asctime)s %(levelname)s %(name)s %(message)s",
        rename_fields={"levelname": "level", "name": "logger"},
        static_fields={"service": service},
        timestamp=True,
        json_default=_json_default,
    )
    handler.setFormatter(formatter)
    logger.addHandler(handler)

    # motor/pymongo are chatty at DEBUG
    logging.getLogger("pymongo").setLevel(max(log_level, logging.INFO))


def _json_default(value: object) -> str:
    if isinstance(value, datetime):
        return value.isoformat()
    return str(value)
