"""
Structured logging helpers for checklist save events.

Every save event belongs to one lot, so workflow code logs through a
``LotEventLogger`` that stamps ``lot_id`` on each line instead of passing it
at every call site.
"""

from __future__ import annotations

import json
import logging
from typing import Any


def log_event(
    logger: logging.Logger,
    level: int,
    event: str,
    **fields: Any,
) -> None:
    """
    Emit one structured log line as compact JSON, e.g.
    ``{"event": "autosave_failed", "item_id": "...", "lot_id": "..."}``.
    Fields set to None are left out.
    """

    if not logger.isEnabledFor(level):
        return
    payload = {"event": event, **{key: value for key, value in fields.items() if value is not None}}
    logger.log(level, json.dumps(payload, default=str, sort_keys=True))


class LotEventLogger:
    """Structured event logger bound to one lot (and optionally an inspector)."""

    def __init__(self, logger: logging.Logger, lot_id: str, *, completed_by: str | None = None) -> None:
        self.logger = logger
        self.lot_id = lot_id
        self.completed_by = completed_by

    def emit(self, level: int, event: str, **fields: Any) -> None:
        log_event(
            self.logger,
            level,
            event,
            lot_id=self.lot_id,
            completed_by=self.completed_by,
            **fields,
        )

    def debug(self, event: str, **fields: Any) -> None:
        self.emit(logging.DEBUG, event, **fields)

    def info(self, event: str, **fields: Any) -> None:
        self.emit(logging.INFO, event, **fields)

    def warning(self, event: str, **fields: Any) -> None:
        self.emit(logging.WARNING, event, **fields)
