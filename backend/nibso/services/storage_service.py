# Overview: Durable key-value persistence for ledger state (JSON documents).

from __future__ import annotations

import json
import logging
from typing import Any

from ..extensions import db
from ..models import KeyValueEntry
from .concurrency import run_with_retry

"""
Key-value persistence semantics (authoritative)

- Each ledger owns exactly one key and reads it once when constructed.
- Every ledger mutation rewrites the whole document for its key.
- Keys are independent: there is no transaction spanning two keys, so a
  crash between two saves can leave ledgers out of step with each other.
- Saving None removes the key (next load returns the default).
"""

logger = logging.getLogger(__name__)


class KeyValueStore:
    """SQL-backed key-value store holding JSON-serializable values."""

    def load(self, key: str, default: Any = None) -> Any:
        entry = db.session.get(KeyValueEntry, key)
        if entry is None:
            return default
        try:
            return json.loads(entry.value)
        except (TypeError, ValueError):
            logger.error("Error reading stored key %r; falling back to default", key)
            return default

    def save(self, key: str, value: Any) -> None:
        payload = None if value is None else json.dumps(value)

        def _op():
            entry = db.session.get(KeyValueEntry, key)
            if payload is None:
                if entry is not None:
                    db.session.delete(entry)
            elif entry is None:
                db.session.add(KeyValueEntry(key=key, value=payload))
            else:
                entry.value = payload
            db.session.commit()

        try:
            run_with_retry(_op)
        except Exception:
            logger.exception("Error setting stored key %r", key)
            raise

    def keys(self) -> list[str]:
        return [row.key for row in db.session.query(KeyValueEntry.key).order_by(KeyValueEntry.key).all()]


class MemoryKeyValueStore:
    """Process-local store with the same interface; values are JSON round-tripped."""

    def __init__(self, initial: dict | None = None):
        self._data: dict[str, str] = {}
        for key, value in (initial or {}).items():
            self.save(key, value)

    def load(self, key: str, default: Any = None) -> Any:
        if key not in self._data:
            return default
        return json.loads(self._data[key])

    def save(self, key: str, value: Any) -> None:
        if value is None:
            self._data.pop(key, None)
        else:
            self._data[key] = json.dumps(value)

    def keys(self) -> list[str]:
        return sorted(self._data)
