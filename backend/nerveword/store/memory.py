import copy
import itertools
import threading
from datetime import datetime, timezone
from typing import Dict, Iterable, List, Optional, Tuple

from nerveword.errors import Conflict, PlayerNotFound, SessionNotFound, WordNotFound
from nerveword.records import CombatLogRecord, PlayerRecord, SessionRecord, WordRecord
from .base import PLAYER_FIELDS, SESSION_FIELDS, WORD_FIELDS, SessionStore, check_fields


def _now():
    return datetime.now(timezone.utc)


def _player_sort_key(p: PlayerRecord):
    return (p.turn_order is None, p.turn_order or 0, p.id)


class MemorySessionStore(SessionStore):
    """Non-durable single-process store.

    Mirrors the relational constraints by hand. Records are copied on the
    way in and out so callers cannot reach the stored objects.
    """

    def __init__(self):
        self._lock = threading.RLock()
        self._sessions: Dict[int, SessionRecord] = {}
        self._players: Dict[Tuple[int, str], PlayerRecord] = {}
        self._words: Dict[int, WordRecord] = {}
        self._log: Dict[int, CombatLogRecord] = {}
        self._session_ids = itertools.count(1)
        self._player_ids = itertools.count(1)
        self._word_ids = itertools.count(1)
        self._log_ids = itertools.count(1)

    def _require_session(self, session_id: int) -> SessionRecord:
        session = self._sessions.get(session_id)
        if session is None:
            raise SessionNotFound()
        return session

    def _require_player(self, session_id: int, user_id: str) -> PlayerRecord:
        player = self._players.get((session_id, user_id))
        if player is None:
            raise PlayerNotFound()
        return player

    def _require_word(self, word_id: int) -> WordRecord:
        word = self._words.get(word_id)
        if word is None:
            raise WordNotFound()
        return word

    # Sessions

    def create_session(self, code, name, gm_id, vowels):
        with self._lock:
            if self.code_exists(code):
                raise Conflict(f'Session code {code} already in use')
            session = SessionRecord(
                id=next(self._session_ids), code=code, name=name, gm_id=gm_id,
                vowels=list(vowels), created_at=_now(),
            )
            self._sessions[session.id] = session
            return copy.deepcopy(session)

    def get_session(self, session_id):
        with self._lock:
            session = self._sessions.get(session_id)
            return copy.deepcopy(session) if session else None

    def get_session_by_code(self, code):
        with self._lock:
            for session in self._sessions.values():
                if session.code == code and session.is_active:
                    return copy.deepcopy(session)
            return None

    def code_exists(self, code):
        with self._lock:
            return any(s.code == code for s in self._sessions.values())

    def update_session(self, session_id, **changes):
        check_fields(changes, SESSION_FIELDS, 'session')
        with self._lock:
            session = self._require_session(session_id)
            for key, value in changes.items():
                setattr(session, key, copy.deepcopy(value))
            return copy.deepcopy(session)

    # Players

    def add_player(self, session_id, user_id, player_name=None, nerve=8, max_nerve=8, turn_order=None):
        with self._lock:
            self._require_session(session_id)
            if (session_id, user_id) in self._players:
                raise Conflict('Player already in session')
            player = PlayerRecord(
                id=next(self._player_ids), session_id=session_id, user_id=user_id,
                player_name=player_name, nerve=nerve, max_nerve=max_nerve,
                turn_order=turn_order, joined_at=_now(),
            )
            self._players[(session_id, user_id)] = player
            return copy.deepcopy(player)

    def get_player(self, session_id, user_id):
        with self._lock:
            player = self._players.get((session_id, user_id))
            return copy.deepcopy(player) if player else None

    def list_players(self, session_id, include_inactive=False):
        with self._lock:
            players = [
                p for p in self._players.values()
                if p.session_id == session_id and (include_inactive or p.is_active)
            ]
            return [copy.deepcopy(p) for p in sorted(players, key=_player_sort_key)]

    def update_player(self, session_id, user_id, **changes):
        check_fields(changes, PLAYER_FIELDS, 'player')
        with self._lock:
            player = self._require_player(session_id, user_id)
            for key, value in changes.items():
                setattr(player, key, value)
            return copy.deepcopy(player)

    def set_turn_orders(self, session_id, orders):
        with self._lock:
            for user_id in orders:
                self._require_player(session_id, user_id)
            for user_id, order in orders.items():
                self._players[(session_id, user_id)].turn_order = order

    def set_active_turn(self, session_id, user_id):
        with self._lock:
            target = self._require_player(session_id, user_id)
            for player in self._players.values():
                if player.session_id == session_id:
                    player.is_active_turn = False
            target.is_active_turn = True

    def clear_active_turn(self, session_id):
        with self._lock:
            for player in self._players.values():
                if player.session_id == session_id:
                    player.is_active_turn = False

    # Words

    def create_word(self, session_id, word, meaning='', category='noun', potency=None,
                    is_approved=False, owner_ids: Iterable[str] = ()):
        with self._lock:
            self._require_session(session_id)
            if self._find_word(session_id, word) is not None:
                raise Conflict(f'Word "{word}" already exists in this session')
            now = _now()
            owners: List[str] = []
            for owner_id in owner_ids:
                if owner_id not in owners:
                    owners.append(owner_id)
            record = WordRecord(
                id=next(self._word_ids), session_id=session_id, word=word, meaning=meaning or '',
                category=category, potency=potency, is_approved=is_approved,
                owner_ids=owners, created_at=now, updated_at=now,
            )
            self._words[record.id] = record
            return copy.deepcopy(record)

    def _find_word(self, session_id, text) -> Optional[WordRecord]:
        for word in self._words.values():
            if word.session_id == session_id and word.word == text:
                return word
        return None

    def get_word(self, word_id):
        with self._lock:
            word = self._words.get(word_id)
            return copy.deepcopy(word) if word else None

    def get_word_by_text(self, session_id, text):
        with self._lock:
            word = self._find_word(session_id, text)
            return copy.deepcopy(word) if word else None

    def list_words(self, session_id):
        with self._lock:
            return [copy.deepcopy(w) for w in sorted(self._words.values(), key=lambda w: w.id)
                    if w.session_id == session_id]

    def update_word(self, word_id, **changes):
        check_fields(changes, WORD_FIELDS, 'word')
        with self._lock:
            word = self._require_word(word_id)
            for key, value in changes.items():
                setattr(word, key, value)
            word.updated_at = _now()
            return copy.deepcopy(word)

    def add_word_owner(self, word_id, owner_id):
        with self._lock:
            word = self._require_word(word_id)
            if owner_id in word.owner_ids:
                return False
            word.owner_ids.append(owner_id)
            return True

    def set_word_owners(self, word_id, owner_ids):
        with self._lock:
            word = self._require_word(word_id)
            owners: List[str] = []
            for owner_id in owner_ids:
                if owner_id not in owners:
                    owners.append(owner_id)
            word.owner_ids = owners
            return copy.deepcopy(word)

    def delete_word(self, word_id):
        with self._lock:
            self._require_word(word_id)
            del self._words[word_id]

    # Combat log

    def add_combat_log_entry(self, session_id, player_id, sentence, used_words, dice_roll,
                             total_potency, final_result, turn_number):
        with self._lock:
            self._require_session(session_id)
            entry = CombatLogRecord(
                id=next(self._log_ids), session_id=session_id, player_id=player_id,
                sentence=sentence, used_words=copy.deepcopy(used_words), dice_roll=dice_roll,
                total_potency=total_potency, final_result=final_result,
                turn_number=turn_number, created_at=_now(),
            )
            self._log[entry.id] = entry
            return copy.deepcopy(entry)

    def list_combat_log(self, session_id):
        with self._lock:
            entries = [e for e in self._log.values() if e.session_id == session_id]
            return [copy.deepcopy(e) for e in sorted(entries, key=lambda e: e.id, reverse=True)]
