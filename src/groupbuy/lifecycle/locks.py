"""Per-lesson mutual exclusion for lifecycle transitions."""

from __future__ import annotations

import threading
from contextlib import contextmanager
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterator


class LessonLocks:
    """Registry handing out one lock per lesson.

    Every transition that reads or writes a lesson's counter or status runs
    while holding that lesson's lock, so the check and the write form one unit.
    """

    def __init__(self) -> None:
        """Initialize an empty registry."""
        self._guard = threading.Lock()
        self._locks: dict[str, threading.Lock] = {}

    def _lock_for(self, lesson_id: str) -> threading.Lock:
        with self._guard:
            lock = self._locks.get(lesson_id)
            if lock is None:
                lock = threading.Lock()
                self._locks[lesson_id] = lock
            return lock

    @contextmanager
    def hold(self, lesson_id: str) -> Iterator[None]:
        """Hold the lock for ``lesson_id`` for the duration of the block."""
        with self._lock_for(lesson_id):
            yield
