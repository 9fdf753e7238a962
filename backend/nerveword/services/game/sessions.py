import random
import string
from dataclasses import dataclass
from typing import List, Optional

from nerveword.errors import Conflict, Forbidden, InvalidInput, PlayerNotFound, PreconditionFailed, SessionNotFound
from nerveword.records import PlayerRecord, SessionRecord
from nerveword.rules import Ruleset
from nerveword.store import SessionStore
from .dice import validate_vowels
from .turns import TurnAdvance, active_player, add_player_to_turn_order, advance_to_next_player, pass_turn


@dataclass
class JoinResult:
    session: SessionRecord
    player: Optional[PlayerRecord]
    is_new: bool
    is_gm: bool = False


@dataclass
class LeaveResult:
    player: PlayerRecord
    turn: Optional[TurnAdvance]


def generate_session_code(store: SessionStore, length: int = 6) -> str:
    """Generate a unique, short join code."""
    while True:
        code = ''.join(random.choices(string.ascii_uppercase + string.digits, k=length))
        if not store.code_exists(code):
            return code


def require_session(store: SessionStore, session_id: int) -> SessionRecord:
    session = store.get_session(session_id)
    if session is None:
        raise SessionNotFound()
    return session


def require_gm(session: SessionRecord, user_id: str) -> None:
    if user_id != session.gm_id:
        raise Forbidden('Only the GM can do that')


def require_player(store: SessionStore, session_id: int, user_id: str) -> PlayerRecord:
    player = store.get_player(session_id, user_id)
    if player is None or not player.is_active:
        raise PlayerNotFound()
    return player


def require_member(store: SessionStore, session: SessionRecord, user_id: str) -> None:
    if user_id == session.gm_id:
        return
    player = store.get_player(session.id, user_id)
    if player is None or not player.is_active:
        raise Forbidden('Not a member of this session')


def require_active_player_or_gm(store: SessionStore, session: SessionRecord, user_id: str) -> None:
    if user_id == session.gm_id:
        return
    player = store.get_player(session.id, user_id)
    if player is None or not player.is_active or not player.is_active_turn:
        raise Forbidden('It is not your turn')


def create_session(store: SessionStore, rules: Ruleset, name: str, gm_id: str, code_length: int = 6) -> SessionRecord:
    if not name or not name.strip():
        raise InvalidInput('Session name is required')
    code = generate_session_code(store, code_length)
    return store.create_session(code=code, name=name.strip(), gm_id=gm_id, vowels=list(rules.default_vowels))


def join_session(store: SessionStore, rules: Ruleset, code: str, user_id: str,
                 player_name: Optional[str] = None) -> JoinResult:
    """Join by code, appending the player to the end of the turn order.

    Joining again returns the existing seat. The first player to sit down
    while nobody holds the turn gets it.
    """
    session = store.get_session_by_code(code.strip().upper())
    if session is None:
        raise SessionNotFound()
    if user_id == session.gm_id:
        return JoinResult(session, None, is_new=False, is_gm=True)

    existing = store.get_player(session.id, user_id)
    if existing is not None and existing.is_active:
        return JoinResult(session, existing, is_new=False)

    players = store.list_players(session.id)
    if len(players) >= rules.max_players:
        raise Conflict('Session is full')

    if existing is None:
        store.add_player(session.id, user_id, player_name=player_name,
                         nerve=rules.starting_nerve, max_nerve=rules.starting_nerve)
    else:
        changes = {'is_active': True, 'is_active_turn': False}
        if player_name:
            changes['player_name'] = player_name
        store.update_player(session.id, user_id, **changes)
    add_player_to_turn_order(store, session.id, user_id)
    if active_player(store, session.id) is None:
        store.set_active_turn(session.id, user_id)
    return JoinResult(session, store.get_player(session.id, user_id), is_new=True)


def leave_session(store: SessionStore, session_id: int, user_id: str, actor_id: str) -> LeaveResult:
    """Soft-delete a player. Their turn passes on; the others keep their seats."""
    session = require_session(store, session_id)
    if actor_id != user_id:
        require_gm(session, actor_id)
    player = require_player(store, session_id, user_id)

    turn = pass_turn(store, session_id, user_id) if player.is_active_turn else None
    store.update_player(session_id, user_id, is_active=False, is_active_turn=False, turn_order=None)

    remaining = store.list_players(session_id)
    store.set_turn_orders(session_id, {p.user_id: index for index, p in enumerate(remaining)})
    return LeaveResult(store.get_player(session_id, user_id), turn)


def next_turn(store: SessionStore, session_id: int, actor_id: str) -> TurnAdvance:
    session = require_session(store, session_id)
    if session.is_prep_turn:
        raise PreconditionFailed('Prep rounds advance through the prep turn, not normal turns')
    require_active_player_or_gm(store, session, actor_id)
    return advance_to_next_player(store, session_id)


def update_player_nerve(store: SessionStore, session_id: int, actor_id: str, target_id: str, nerve: int) -> PlayerRecord:
    session = require_session(store, session_id)
    require_gm(session, actor_id)
    player = require_player(store, session_id, target_id)
    if isinstance(nerve, bool) or not isinstance(nerve, int) or not 0 <= nerve <= player.max_nerve:
        raise InvalidInput(f'Nerve must be between 0 and {player.max_nerve}')
    return store.update_player(session_id, target_id, nerve=nerve)


def set_vowels(store: SessionStore, session_id: int, actor_id: str, vowels: List[str]) -> SessionRecord:
    session = require_session(store, session_id)
    require_gm(session, actor_id)
    return store.update_session(session_id, vowels=validate_vowels(vowels))


def session_state(store: SessionStore, session_id: int) -> dict:
    session = require_session(store, session_id)
    return {
        'session': session.to_dict(),
        'players': [p.to_dict() for p in store.list_players(session_id)],
        'words': [w.to_dict() for w in store.list_words(session_id)],
        'combat_log': [e.to_dict() for e in store.list_combat_log(session_id)],
    }
