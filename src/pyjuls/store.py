"""Single-slot in-memory store for the latest location report.

The UDP listener thread writes and aiohttp handlers read. Reports are
frozen models, so the lock only has to guard a reference swap; readers
get the same immutable object the writer stored and can never observe a
half-written report.
"""

from __future__ import annotations

import threading
from collections.abc import Callable
from datetime import UTC, datetime

from pyjuls.models.location import LocationReport


def _utcnow() -> datetime:
    return datetime.now(UTC)


class LocationStore:
    """Holds at most one :class:`LocationReport`.

    Writes are last-write-wins by arrival order. The embedded
    ``timestamp_value`` is never compared: an older fix that arrives later
    still replaces the stored one. There is no delete.
    """

    def __init__(self, *, clock: Callable[[], datetime] = _utcnow) -> None:
        self._clock = clock
        self._lock = threading.Lock()
        self._report: LocationReport | None = None
        self._updated_at: datetime | None = None

    def set(self, report: LocationReport) -> None:
        """Replace the stored report unconditionally."""
        now = self._clock()
        with self._lock:
            self._report = report
            self._updated_at = now

    def get(self) -> LocationReport | None:
        """Return the current report, or ``None`` when nothing was accepted yet."""
        with self._lock:
            return self._report

    def snapshot(self) -> tuple[LocationReport | None, datetime | None]:
        """Return ``(report, updated_at)`` read under one lock acquisition."""
        with self._lock:
            return self._report, self._updated_at

    @property
    def is_empty(self) -> bool:
        return self.get() is None
