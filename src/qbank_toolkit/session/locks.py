"""
Module: session.locks

Purpose:
    Registry of per-session mutexes. Mutations of one session are
    serialized; different sessions never contend. An entry lives only
    while some thread holds or waits for it, so the registry stays as
    small as the number of sessions currently being written.

Key Classes:
    - SessionLocks
"""

from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass, field
from threading import Lock
from typing import Dict, Generator


@dataclass
class _Entry:
    lock: Lock = field(default_factory=Lock)
    users: int = 0


class SessionLocks:
    """
    Reference-counted Lock per session id.

    Example:
        >>> locks = SessionLocks()
        >>> with locks.for_session("s-1"):
        ...     pass
        >>> len(locks)
        0
    """

    def __init__(self) -> None:
        self._entries: Dict[str, _Entry] = {}
        self._guard = Lock()

    @contextmanager
    def for_session(self, session_id: str) -> Generator[None, None, None]:
        """Hold the session's lock for the duration of the block."""
        with self._guard:
            entry = self._entries.get(session_id)
            if entry is None:
                entry = self._entries[session_id] = _Entry()
            entry.users += 1

        try:
            with entry.lock:
                yield
        finally:
            with self._guard:
                entry.users -= 1
                if entry.users == 0:
                    del self._entries[session_id]

    def __len__(self) -> int:
        with self._guard:
            return len(self._entries)
