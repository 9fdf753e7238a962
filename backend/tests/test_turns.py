import pytest

from nerveword.errors import Conflict, Forbidden, NoPlayers, PlayerNotFound, SessionNotFound
from nerveword.services.game import sessions as lobby
from nerveword.services.game.turns import (
    add_player_to_turn_order,
    advance_to_next_player,
    recalculate_turn_order,
    reset_turns_for_new_encounter,
    set_active_turn,
)


def _orders(store, session_id):
    return {p.user_id: p.turn_order for p in store.list_players(session_id)}


def _active(store, session_id):
    return [p.user_id for p in store.list_players(session_id, include_inactive=True) if p.is_active_turn]


def test_join_seats_players_in_order(store, rules, new_session):
    session = new_session()
    result = lobby.join_session(store, rules, session.code, 'p1')
    assert result.is_new
    assert result.player.turn_order == 0
    assert result.player.is_active_turn is True
    assert result.player.nerve == 8

    lobby.join_session(store, rules, session.code, 'p2')
    assert _orders(store, session.id) == {'p1': 0, 'p2': 1}
    assert _active(store, session.id) == ['p1']


def test_rejoin_and_gm_join_do_not_add_seats(store, rules, new_session):
    session = new_session('p1')
    again = lobby.join_session(store, rules, session.code.lower(), 'p1')
    assert again.is_new is False
    gm = lobby.join_session(store, rules, session.code, 'gm')
    assert gm.is_gm and gm.player is None
    assert len(store.list_players(session.id)) == 1


def test_session_is_capped_at_max_players(store, rules, new_session):
    session = new_session('p1', 'p2', 'p3', 'p4', 'p5')
    with pytest.raises(Conflict):
        lobby.join_session(store, rules, session.code, 'p6')


def test_unknown_code(store, rules):
    with pytest.raises(SessionNotFound):
        lobby.join_session(store, rules, 'NOPE00', 'p1')


def test_recalculate_orders_by_nerve_then_join_time(store, new_session):
    session = new_session('p1', 'p2', 'p3', 'p4')
    store.update_player(session.id, 'p1', nerve=5)
    store.update_player(session.id, 'p2', nerve=8)
    store.update_player(session.id, 'p3', nerve=5)
    store.update_player(session.id, 'p4', nerve=7)

    recalculate_turn_order(store, session.id)
    first = _orders(store, session.id)
    assert first == {'p2': 0, 'p4': 1, 'p1': 2, 'p3': 3}

    recalculate_turn_order(store, session.id)
    assert _orders(store, session.id) == first


def test_add_player_to_turn_order_appends(store, new_session):
    session = new_session('p1', 'p2')
    store.set_turn_orders(session.id, {'p1': 1, 'p2': 0})
    store.add_player(session.id, 'late')
    assert add_player_to_turn_order(store, session.id, 'late') == 2
    assert _orders(store, session.id) == {'p2': 0, 'p1': 1, 'late': 2}


def test_add_player_to_empty_turn_order(store, new_session):
    session = new_session()
    store.add_player(session.id, 'first')
    assert add_player_to_turn_order(store, session.id, 'first') == 0


def test_set_active_turn_keeps_a_single_active_player(store, new_session):
    session = new_session('p1', 'p2', 'p3')
    set_active_turn(store, session.id, 'p3')
    assert _active(store, session.id) == ['p3']
    set_active_turn(store, session.id, 'p2')
    assert _active(store, session.id) == ['p2']
    with pytest.raises(PlayerNotFound):
        set_active_turn(store, session.id, 'ghost')
    assert _active(store, session.id) == ['p2']


@pytest.mark.parametrize('start', ['p1', 'p2', 'p3'])
def test_full_cycle_returns_to_start_and_bumps_turn_once(store, new_session, start):
    session = new_session('p1', 'p2', 'p3')
    set_active_turn(store, session.id, start)

    results = [advance_to_next_player(store, session.id) for _ in range(3)]

    assert results[-1].next_player_id == start
    assert sum(r.turn_incremented for r in results) == 1
    assert store.get_session(session.id).current_turn == 2
    assert len(_active(store, session.id)) == 1


def test_advance_wraps_after_last_player(store, new_session):
    session = new_session('p1', 'p2')
    first = advance_to_next_player(store, session.id)
    assert (first.next_player_id, first.turn_incremented) == ('p2', False)
    second = advance_to_next_player(store, session.id)
    assert (second.next_player_id, second.turn_incremented, second.current_turn) == ('p1', True, 2)


def test_advance_without_active_player_seats_first(store, new_session):
    session = new_session('p1', 'p2')
    store.clear_active_turn(session.id)
    result = advance_to_next_player(store, session.id)
    assert result.next_player_id == 'p1'
    assert result.turn_incremented is False


def test_advance_failures(store, new_session):
    with pytest.raises(SessionNotFound):
        advance_to_next_player(store, 999)
    session = new_session()
    with pytest.raises(NoPlayers):
        advance_to_next_player(store, session.id)


def test_reset_turns_for_new_encounter(store, new_session):
    session = new_session('p1', 'p2')
    advance_to_next_player(store, session.id)
    advance_to_next_player(store, session.id)
    reset_turns_for_new_encounter(store, session.id)
    assert store.get_session(session.id).current_turn == 1
    assert _active(store, session.id) == []


def test_leave_passes_the_turn_and_closes_the_gap(store, new_session):
    session = new_session('p1', 'p2', 'p3')
    result = lobby.leave_session(store, session.id, 'p1', 'p1')
    assert result.player.is_active is False
    assert result.turn.next_player_id == 'p2'
    assert _orders(store, session.id) == {'p2': 0, 'p3': 1}
    assert _active(store, session.id) == ['p2']


def test_next_turn_requires_turn_holder_or_gm(store, new_session):
    session = new_session('p1', 'p2')
    with pytest.raises(Forbidden):
        lobby.next_turn(store, session.id, 'p2')
    assert lobby.next_turn(store, session.id, 'p1').next_player_id == 'p2'
    assert lobby.next_turn(store, session.id, 'gm').next_player_id == 'p1'


def test_last_seat_leaving_passes_without_a_new_turn(store, new_session):
    session = new_session('p1', 'p2', 'p3')
    lobby.next_turn(store, session.id, 'gm')
    lobby.next_turn(store, session.id, 'gm')
    assert _active(store, session.id) == ['p3']

    result = lobby.leave_session(store, session.id, 'p3', 'gm')

    assert (result.turn.next_player_id, result.turn.turn_incremented, result.turn.current_turn) == ('p1', False, 1)
    assert store.get_session(session.id).current_turn == 1
    assert _active(store, session.id) == ['p1']
    assert _orders(store, session.id) == {'p1': 0, 'p2': 1}


def test_waiting_player_leaving_keeps_the_turn(store, new_session):
    session = new_session('p1', 'p2')
    result = lobby.leave_session(store, session.id, 'p2', 'p2')
    assert result.turn is None
    assert _active(store, session.id) == ['p1']


def test_only_player_leaving_leaves_nobody_active(store, new_session):
    session = new_session('p1')
    result = lobby.leave_session(store, session.id, 'p1', 'p1')
    assert result.turn is None
    assert _active(store, session.id) == []
