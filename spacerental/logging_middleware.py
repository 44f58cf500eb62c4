"""HTTP audit logging middleware and structured event logging."""
from __future__ import annotations

import logging
from pathlib import Path
from time import time
from typing import Any, Optional

from fastapi import FastAPI, Request

from .config import get_settings

_FORMAT = "%(asctime)s | %(levelname)s | %(message)s"
_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def _build_logger(name: str, service_name: str) -> logging.Logger:
    logger = logging.getLogger(f"{name}.{service_name}")
    if logger.handlers:
        return logger

    log_dir = Path(get_settings().log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)
    logger.setLevel(logging.INFO)
    handler = logging.FileHandler(log_dir / f"{service_name}.log")
    handler.setFormatter(logging.Formatter(_FORMAT, datefmt=_DATE_FORMAT))
    logger.addHandler(handler)
    return logger


def get_event_logger(service_name: str) -> logging.Logger:
    """Logger receiving booking lifecycle events for ``service_name``."""

    return _build_logger("events", service_name)


def log_event(logger: logging.Logger, level: int, message: str, **fields: Any) -> None:
    """Emit ``message | key=value ...``; handler errors are absorbed by logging itself."""

    if fields:
        details = " ".join(f"{key}={value}" for key, value in fields.items())
        logger.log(level, "%s | %s", message, details)
    else:
        logger.log(level, message)


def add_audit_middleware(app: FastAPI, service_name: str) -> None:
    logger = _build_logger("audit", service_name)

    @app.middleware("http")
    async def audit_logger(request: Request, call_next):  # type: ignore[override]
        start = time()
        response = await call_next(request)
        duration_ms = (time() - start) * 1000
        client_ip: Optional[str] = None
        if request.client:
            client_ip = request.client.host
        logger.info(
            "%s %s | status=%s | client=%s | duration=%.2fms",
            request.method,
            request.url.path,
            response.status_code,
            client_ip or "unknown",
            duration_ms,
        )
        return response
