import logging

import pytest

from nerveword.broadcast import EVENT_TYPES, SessionBroadcaster


class RecordingEmitter:
    def __init__(self, failing=()):
        self.sent = []
        self.failing = set(failing)

    def __call__(self, event, payload, sid):
        if sid in self.failing:
            raise ConnectionError(f'{sid} went away')
        self.sent.append((sid, event, payload))


def test_only_joined_sockets_receive_events():
    emitter = RecordingEmitter()
    hub = SessionBroadcaster(emitter)
    hub.join(1, 'sid-a')
    hub.join(2, 'sid-b')

    assert hub.broadcast(1, 'turn_advanced', {'next_player_id': 'p2'}) == 1
    assert emitter.sent == [
        ('sid-a', 'turn_advanced', {'type': 'turn_advanced', 'data': {'next_player_id': 'p2'}}),
    ]


def test_broadcasters_do_not_share_registries():
    first = SessionBroadcaster(RecordingEmitter())
    second = SessionBroadcaster(RecordingEmitter())
    first.join(1, 'sid-a')
    assert second.clients(1) == set()


def test_failing_socket_is_dropped_and_others_still_delivered(caplog):
    emitter = RecordingEmitter(failing={'sid-dead'})
    hub = SessionBroadcaster(emitter, logger=logging.getLogger('test.broadcast'))
    hub.join(7, 'sid-dead')
    hub.join(7, 'sid-live')
    hub.join(8, 'sid-dead')

    with caplog.at_level(logging.WARNING, logger='test.broadcast'):
        delivered = hub.broadcast(7, 'word_created', {'word': 'BaLi'})

    assert delivered == 1
    assert [sid for sid, _, _ in emitter.sent] == ['sid-live']
    assert hub.clients(7) == {'sid-live'}
    assert hub.clients(8) == set()
    assert '[broadcast-drop]' in caplog.text


def test_unknown_event_type():
    hub = SessionBroadcaster(RecordingEmitter())
    with pytest.raises(ValueError):
        hub.broadcast(1, 'game_over', {})


def test_empty_session_is_a_no_op():
    emitter = RecordingEmitter()
    assert SessionBroadcaster(emitter).broadcast(3, 'player_joined', {}) == 0
    assert emitter.sent == []


def test_leave_and_disconnect():
    hub = SessionBroadcaster(RecordingEmitter())
    hub.join(1, 'sid-a')
    hub.join(2, 'sid-a')
    hub.join(1, 'sid-b')

    hub.leave(1, 'sid-b')
    assert hub.clients(1) == {'sid-a'}
    hub.disconnect('sid-a')
    assert hub.clients(1) == set()
    assert hub.clients(2) == set()
    hub.disconnect('never-joined')


def test_events_arrive_in_broadcast_order():
    emitter = RecordingEmitter()
    hub = SessionBroadcaster(emitter)
    hub.join(1, 'sid-a')
    for event in ('word_approved', 'nerve_updated', 'nerve_updated'):
        hub.broadcast(1, event, {})
    assert [event for _, event, _ in emitter.sent] == ['word_approved', 'nerve_updated', 'nerve_updated']


def test_event_catalogue():
    assert {'player_joined', 'nerve_updated', 'word_created', 'word_ownership_updated', 'word_approved',
            'combat_action', 'encounter_updated', 'turn_advanced', 'prep_turn_advanced', 'word_defined',
            'stats_modified', 'stat_adjusted', 'vowels_updated'} <= EVENT_TYPES
