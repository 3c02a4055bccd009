from __future__ import annotations

import json
import logging
import sys
import uuid
from contextvars import ContextVar
from typing import Any

correlation_id: ContextVar[str] = ContextVar("correlation_id", default="")
analysis_context: ContextVar[dict[str, str]] = ContextVar("analysis_context", default={})


def get_correlation_id() -> str:
    cid = correlation_id.get()
    if not cid:
        cid = uuid.uuid4().hex[:12]
        correlation_id.set(cid)
    return cid


def mask_vin(vin: str | None) -> str:
    """Keep only the serial tail of a VIN for log lines."""
    if not vin:
        return "-"
    return f"***{vin[-6:]}"


def bind_analysis(vin: str | None, tier: str) -> None:
    analysis_context.set({"vin": mask_vin(vin), "tier": tier})


class JSONFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "correlation_id": correlation_id.get(""),
        }
        entry.update(analysis_context.get())
        collaborator = getattr(record, "collaborator", None)
        if collaborator:
            entry["collaborator"] = collaborator
        if record.exc_info and record.exc_info[1]:
            entry["exception"] = self.formatException(record.exc_info)
        if hasattr(record, "extra_data"):
            entry["data"] = record.extra_data
        return json.dumps(entry, default=str)


def configure_logging(level: str = "INFO", fmt: str = "json") -> None:
    root = logging.getLogger()
    root.setLevel(getattr(logging, level.upper(), logging.INFO))

    for h in root.handlers[:]:
        root.removeHandler(h)

    handler = logging.StreamHandler(sys.stdout)
    if fmt == "json":
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(logging.Formatter(
            "%(asctime)s %(levelname)-8s [%(name)s] %(message)s"
        ))
    root.addHandler(handler)

    # httpx logs every request line at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)
