"""Cache for derived views keyed by the fingerprint of their inputs."""

from __future__ import annotations

import dataclasses
import hashlib
import json
import logging
from typing import Any, Hashable, Iterable
from uuid import UUID

logger = logging.getLogger(__name__)


def fingerprint_records(*groups: Iterable[Any]) -> str:
    """Stable SHA-256 fingerprint of groups of dataclass records."""
    data = [
        sorted(json.dumps(dataclasses.asdict(r), sort_keys=True, default=str) for r in group)
        for group in groups
    ]
    json_str = json.dumps(data, sort_keys=True)
    return hashlib.sha256(json_str.encode()).hexdigest()[:32]


class DerivedViewCache:
    """In-process cache of derived views.

    Entries are keyed by (employee_id, view, range key, inputs fingerprint),
    so a stale entry can only be served if the inputs are unchanged. Writes
    still call ``invalidate_employee`` to release memory eagerly.
    """

    def __init__(self, max_entries: int = 4096):
        self.max_entries = max_entries
        self._entries: dict[tuple[UUID, str, Hashable, str], Any] = {}
        self.hits = 0
        self.misses = 0

    def get(self, employee_id: UUID, view: str, range_key: Hashable, fingerprint: str) -> Any | None:
        key = (employee_id, view, range_key, fingerprint)
        if key in self._entries:
            self.hits += 1
            return self._entries[key]
        self.misses += 1
        return None

    def put(
        self, employee_id: UUID, view: str, range_key: Hashable, fingerprint: str, value: Any
    ) -> None:
        if len(self._entries) >= self.max_entries:
            # Evict oldest insertion
            self._entries.pop(next(iter(self._entries)))
        self._entries[(employee_id, view, range_key, fingerprint)] = value

    def invalidate_employee(self, employee_id: UUID) -> int:
        """Drop every cached view of an employee. Returns entries removed."""
        stale = [k for k in self._entries if k[0] == employee_id]
        for key in stale:
            del self._entries[key]
        if stale:
            logger.debug("Invalidated %d cached views for employee %s", len(stale), employee_id)
        return len(stale)

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)
