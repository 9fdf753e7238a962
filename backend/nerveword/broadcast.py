import logging
import threading
from typing import Any, Callable, Dict, Optional, Set

EVENT_TYPES = frozenset({
    'player_joined',
    'player_left',
    'nerve_updated',
    'word_created',
    'word_ownership_updated',
    'word_approved',
    'word_deleted',
    'combat_action',
    'encounter_updated',
    'turn_advanced',
    'prep_turn_advanced',
    'word_defined',
    'stats_modified',
    'stat_adjusted',
    'vowels_updated',
})

Emitter = Callable[[str, Dict[str, Any], str], None]


class SessionBroadcaster:
    """Registry of live sockets per session, and fan-out to them.

    A socket only receives a session's events after it has joined that
    session. Delivery is fire-and-forget: a socket that cannot be reached is
    dropped from the registry and everybody else still gets the event.
    """

    def __init__(self, emit: Emitter, logger: Optional[logging.Logger] = None):
        self._emit = emit
        self._logger = logger or logging.getLogger(__name__)
        self._lock = threading.Lock()
        self._clients: Dict[int, Set[str]] = {}
        self._sessions_by_sid: Dict[str, Set[int]] = {}

    def join(self, session_id: int, sid: str) -> None:
        with self._lock:
            self._clients.setdefault(session_id, set()).add(sid)
            self._sessions_by_sid.setdefault(sid, set()).add(session_id)

    def leave(self, session_id: int, sid: str) -> None:
        with self._lock:
            self._discard(session_id, sid)

    def disconnect(self, sid: str) -> None:
        with self._lock:
            for session_id in list(self._sessions_by_sid.get(sid, ())):
                self._discard(session_id, sid)
            self._sessions_by_sid.pop(sid, None)

    def _discard(self, session_id: int, sid: str) -> None:
        clients = self._clients.get(session_id)
        if clients is not None:
            clients.discard(sid)
            if not clients:
                del self._clients[session_id]
        sessions = self._sessions_by_sid.get(sid)
        if sessions is not None:
            sessions.discard(session_id)
            if not sessions:
                del self._sessions_by_sid[sid]

    def clients(self, session_id: int) -> Set[str]:
        with self._lock:
            return set(self._clients.get(session_id, ()))

    def broadcast(self, session_id: int, event_type: str, data: Dict[str, Any]) -> int:
        """Send ``{type, data}`` to every socket in the session. Returns the delivery count."""
        if event_type not in EVENT_TYPES:
            raise ValueError(f'Unknown event type: {event_type}')
        message = {'type': event_type, 'data': data}
        delivered = 0
        for sid in self.clients(session_id):
            try:
                self._emit(event_type, message, sid)
                delivered += 1
            except Exception as exc:
                self._logger.warning(f"[broadcast-drop] session={session_id} sid={sid} event={event_type} error={exc}")
                self.disconnect(sid)
        return delivered
