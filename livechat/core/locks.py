"""Per-conversation mutual exclusion for check-then-act commands."""

from __future__ import annotations

import contextlib
import threading
from typing import Dict, Iterator, Optional
from uuid import UUID


class _Entry:
    __slots__ = ("lock", "holders")

    def __init__(self) -> None:
        self.lock = threading.Lock()
        self.holders = 0


class ConversationLocks:
    """
    Hands out one ``threading.Lock`` per conversation id.

    Serializes pin-limit and edit-window checks with their writes inside one
    process. Across processes the row lock taken with ``SELECT ... FOR UPDATE``
    does the same job. A lock is dropped once nobody holds or waits for it.
    """

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: Dict[UUID, _Entry] = {}

    def _acquire_entry(self, key: UUID) -> _Entry:
        with self._guard:
            entry = self._locks.get(key)
            if entry is None:
                entry = _Entry()
                self._locks[key] = entry
            entry.holders += 1
            return entry

    def _release_entry(self, key: UUID, entry: _Entry) -> None:
        with self._guard:
            entry.holders -= 1
            if entry.holders == 0:
                del self._locks[key]

    @contextlib.contextmanager
    def hold(self, key: Optional[UUID]) -> Iterator[None]:
        if key is None:
            yield
            return
        entry = self._acquire_entry(key)
        try:
            with entry.lock:
                yield
        finally:
            self._release_entry(key, entry)

    def __len__(self) -> int:
        return len(self._locks)


conversation_locks = ConversationLocks()
subject_locks = ConversationLocks()
