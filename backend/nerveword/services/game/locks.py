import threading
from contextlib import contextmanager
from typing import Dict


class SessionLocks:
    """One re-entrant lock per session id.

    Mutations and the broadcasts they trigger run under the session's lock,
    so multi-step sequences never interleave and events leave in commit
    order. Different sessions never contend.
    """

    def __init__(self):
        self._guard = threading.Lock()
        self._locks: Dict[int, threading.RLock] = {}

    def _lock_for(self, session_id: int) -> threading.RLock:
        with self._guard:
            lock = self._locks.get(session_id)
            if lock is None:
                lock = self._locks[session_id] = threading.RLock()
            return lock

    @contextmanager
    def hold(self, session_id: int):
        lock = self._lock_for(session_id)
        with lock:
            yield
