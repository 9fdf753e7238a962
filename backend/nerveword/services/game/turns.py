from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from nerveword.errors import NoPlayers, PlayerNotFound, SessionNotFound
from nerveword.store import SessionStore

_EPOCH = datetime.min.replace(tzinfo=timezone.utc)


@dataclass
class TurnAdvance:
    next_player_id: str
    turn_incremented: bool
    current_turn: int

    def to_dict(self):
        return {
            'next_player_id': self.next_player_id,
            'turn_incremented': self.turn_incremented,
            'current_turn': self.current_turn,
        }


def _joined_key(joined_at: Optional[datetime]):
    if joined_at is None:
        return _EPOCH
    if joined_at.tzinfo is None:
        return joined_at.replace(tzinfo=timezone.utc)
    return joined_at


def recalculate_turn_order(store: SessionStore, session_id: int) -> None:
    """Order active players by nerve (highest first), earliest joiner on ties.

    Assigns dense 0-based turn orders. Running it again on unchanged nerve
    and join data assigns the same orders.
    """
    players = store.list_players(session_id)
    ranked = sorted(players, key=lambda p: (-p.nerve, _joined_key(p.joined_at), p.id))
    store.set_turn_orders(session_id, {p.user_id: index for index, p in enumerate(ranked)})


def add_player_to_turn_order(store: SessionStore, session_id: int, user_id: str) -> int:
    """Place a joining player after everyone else without reordering them."""
    orders = [
        p.turn_order for p in store.list_players(session_id)
        if p.user_id != user_id and p.turn_order is not None
    ]
    position = max(orders) + 1 if orders else 0
    store.set_turn_orders(session_id, {user_id: position})
    return position


def set_active_turn(store: SessionStore, session_id: int, user_id: str) -> None:
    player = store.get_player(session_id, user_id)
    if player is None or not player.is_active:
        raise PlayerNotFound()
    store.set_active_turn(session_id, user_id)


def active_player(store: SessionStore, session_id: int):
    for player in store.list_players(session_id):
        if player.is_active_turn:
            return player
    return None


def advance_to_next_player(store: SessionStore, session_id: int) -> TurnAdvance:
    """Hand the turn to the next player in turn order.

    Wrapping past the last player starts over at the first one and bumps the
    session's turn counter.
    """
    session = store.get_session(session_id)
    if session is None:
        raise SessionNotFound()

    players = store.list_players(session_id)
    if not players:
        raise NoPlayers()

    current_index = next((i for i, p in enumerate(players) if p.is_active_turn), -1)
    next_index = current_index + 1
    turn_incremented = False
    current_turn = session.current_turn or 1
    if next_index >= len(players):
        next_index = 0
        turn_incremented = True
        current_turn += 1
        store.update_session(session_id, current_turn=current_turn)

    next_player = players[next_index]
    store.set_active_turn(session_id, next_player.user_id)
    return TurnAdvance(next_player.user_id, turn_incremented, current_turn)


def reset_turns_for_new_encounter(store: SessionStore, session_id: int) -> None:
    if store.get_session(session_id) is None:
        raise SessionNotFound()
    store.update_session(session_id, current_turn=1)
    store.clear_active_turn(session_id)


def activate_first_player(store: SessionStore, session_id: int) -> Optional[str]:
    players = store.list_players(session_id)
    if not players:
        return None
    store.set_active_turn(session_id, players[0].user_id)
    return players[0].user_id


def pass_turn(store: SessionStore, session_id: int, user_id: str) -> Optional[TurnAdvance]:
    """Hand ``user_id``'s turn to the next seat without counting a new turn.

    Used when the turn holder leaves: wrapping to the first seat here does not
    complete a cycle, so ``current_turn`` stays as it is.
    """
    session = store.get_session(session_id)
    if session is None:
        raise SessionNotFound()
    players = store.list_players(session_id)
    index = next((i for i, p in enumerate(players) if p.user_id == user_id), None)
    if index is None:
        raise PlayerNotFound()
    others = players[index + 1:] + players[:index]
    if not others:
        return None
    store.set_active_turn(session_id, others[0].user_id)
    return TurnAdvance(others[0].user_id, False, session.current_turn or 1)
