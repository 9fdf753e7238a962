from flask import Blueprint, jsonify, request, current_app
from pydantic import ValidationError

from nerveword.context import get_services
from nerveword.errors import GameError, SessionNotFound, WordNotFound
from nerveword.schemas import (
    Actor,
    AdjustStatRequest,
    ApproveWordRequest,
    CombatActionRequest,
    CreateSessionRequest,
    CreateWordRequest,
    DefineWordRequest,
    EncounterRequest,
    JoinSessionRequest,
    LeaveSessionRequest,
    NerveUpdateRequest,
    SetPotencyRequest,
    VowelsRequest,
)
from nerveword.services.game import combat, prep, sessions as lobby, words
from nerveword.services.game.dice import generate_word


sessions = Blueprint('sessions', __name__)


@sessions.errorhandler(GameError)
def handle_game_error(exc):
    return jsonify(exc.to_dict()), exc.status_code


@sessions.errorhandler(ValidationError)
def handle_validation_error(exc):
    details = exc.errors(include_url=False, include_context=False, include_input=False)
    return jsonify({'error': 'Invalid request payload', 'kind': 'invalid_input', 'details': details}), 400


def _body(schema):
    return schema.model_validate(request.get_json(silent=True) or {})


@sessions.route('', methods=['POST'])
def create_session():
    data = _body(CreateSessionRequest)
    svc = get_services()
    session = lobby.create_session(svc.store, svc.rules, data.name, data.user_id, svc.code_length)
    current_app.logger.info(f"[session-create] session={session.id} code={session.code} gm={session.gm_id}")
    return jsonify(session.to_dict()), 201


@sessions.route('/join', methods=['POST'])
def join_session():
    data = _body(JoinSessionRequest)
    svc = get_services()
    found = svc.store.get_session_by_code(data.code.upper())
    if found is None:
        raise SessionNotFound()
    with svc.locks.hold(found.id):
        result = lobby.join_session(svc.store, svc.rules, data.code, data.user_id, data.player_name)
        if result.is_new:
            current_app.logger.info(
                f"[join] session={found.id} user={data.user_id} turn_order={result.player.turn_order}"
            )
            svc.broadcaster.broadcast(found.id, 'player_joined', {'player': result.player.to_dict()})
    payload = {
        'session': result.session.to_dict(),
        'player': result.player.to_dict() if result.player else None,
        'is_gm': result.is_gm,
    }
    return jsonify(payload), 201 if result.is_new else 200


@sessions.route('/<int:session_id>', methods=['GET'])
def get_session_state(session_id):
    return jsonify(lobby.session_state(get_services().store, session_id))


@sessions.route('/<int:session_id>/players/<string:user_id>/leave', methods=['POST'])
def leave_session(session_id, user_id):
    data = _body(LeaveSessionRequest)
    svc = get_services()
    with svc.locks.hold(session_id):
        result = lobby.leave_session(svc.store, session_id, user_id, data.user_id)
        svc.broadcaster.broadcast(session_id, 'player_left', {'user_id': user_id})
        if result.turn:
            svc.broadcaster.broadcast(session_id, 'turn_advanced', result.turn.to_dict())
    current_app.logger.info(f"[leave] session={session_id} user={user_id}")
    return jsonify(result.player.to_dict())


@sessions.route('/<int:session_id>/players/<string:user_id>/nerve', methods=['PATCH'])
def update_nerve(session_id, user_id):
    data = _body(NerveUpdateRequest)
    svc = get_services()
    with svc.locks.hold(session_id):
        player = lobby.update_player_nerve(svc.store, session_id, data.user_id, user_id, data.nerve)
        svc.broadcaster.broadcast(session_id, 'nerve_updated', {'user_id': user_id, 'nerve': player.nerve})
    return jsonify(player.to_dict())


@sessions.route('/<int:session_id>/players/<string:user_id>/words', methods=['GET'])
def list_player_words(session_id, user_id):
    store = get_services().store
    lobby.require_session(store, session_id)
    return jsonify([w.to_dict() for w in store.list_owned_words(session_id, user_id)])


@sessions.route('/<int:session_id>/vowels', methods=['PATCH'])
def update_vowels(session_id):
    data = _body(VowelsRequest)
    svc = get_services()
    with svc.locks.hold(session_id):
        session = lobby.set_vowels(svc.store, session_id, data.user_id, data.vowels)
        svc.broadcaster.broadcast(session_id, 'vowels_updated', {'vowels': session.vowels})
    return jsonify(session.to_dict())


@sessions.route('/<int:session_id>/words', methods=['GET'])
def list_words(session_id):
    store = get_services().store
    lobby.require_session(store, session_id)
    return jsonify([w.to_dict() for w in store.list_words(session_id)])


@sessions.route('/<int:session_id>/words/pending', methods=['GET'])
def list_pending_words(session_id):
    store = get_services().store
    lobby.require_session(store, session_id)
    return jsonify([w.to_dict() for w in store.list_pending_words(session_id)])


@sessions.route('/<int:session_id>/words', methods=['POST'])
def create_word(session_id):
    data = _body(CreateWordRequest)
    svc = get_services()
    with svc.locks.hold(session_id):
        result = words.create_word(svc.store, session_id, data.user_id, data.word, data.meaning, data.category)
        if not result.is_existing:
            svc.broadcaster.broadcast(session_id, 'word_created', {'word': result.word.to_dict()})
        elif result.owner_added:
            svc.broadcaster.broadcast(session_id, 'word_ownership_updated',
                                      {'word': result.word.to_dict(), 'owner_id': data.user_id})
    return jsonify(result.to_dict()), 200 if result.is_existing else 201


@sessions.route('/<int:session_id>/words/generate', methods=['POST'])
def roll_word(session_id):
    data = _body(Actor)
    store = get_services().store
    session = lobby.require_session(store, session_id)
    lobby.require_member(store, session, data.user_id)
    text, dice = generate_word(session.vowels)
    return jsonify({'word': text, 'dice': dice})


@sessions.route('/<int:session_id>/words/<int:word_id>/approve', methods=['POST'])
def approve_word(session_id, word_id):
    data = _body(ApproveWordRequest)
    svc = get_services()
    _require_word_in_session(session_id, word_id)
    with svc.locks.hold(session_id):
        approval = words.approve_word(svc.store, svc.rules, word_id, data.potency, data.user_id)
        current_app.logger.info(
            f"[approve] session={session_id} word={word_id} potency={data.potency} owners={approval.word.owner_ids}"
        )
        svc.broadcaster.broadcast(session_id, 'word_approved', {'word': approval.word.to_dict()})
        for player in approval.nerve_changes:
            svc.broadcaster.broadcast(session_id, 'nerve_updated', {'user_id': player.user_id, 'nerve': player.nerve})
    return jsonify(approval.word.to_dict())


@sessions.route('/<int:session_id>/words/<int:word_id>', methods=['DELETE'])
def delete_word(session_id, word_id):
    data = _body(Actor)
    svc = get_services()
    _require_word_in_session(session_id, word_id)
    with svc.locks.hold(session_id):
        words.delete_word(svc.store, word_id, data.user_id)
        svc.broadcaster.broadcast(session_id, 'word_deleted', {'word_id': word_id})
    return jsonify({'success': True})


def _require_word_in_session(session_id, word_id):
    word = get_services().store.get_word(word_id)
    if word is None or word.session_id != session_id:
        raise WordNotFound()


@sessions.route('/<int:session_id>/combat', methods=['GET'])
def list_combat_log(session_id):
    store = get_services().store
    lobby.require_session(store, session_id)
    return jsonify([e.to_dict() for e in store.list_combat_log(session_id)])


@sessions.route('/<int:session_id>/combat', methods=['POST'])
def combat_action(session_id):
    data = _body(CombatActionRequest)
    svc = get_services()
    with svc.locks.hold(session_id):
        entry = combat.record_combat_action(svc.store, session_id, data.user_id, data.sentence,
                                            data.word_ids, data.dice)
        svc.broadcaster.broadcast(session_id, 'combat_action', {'entry': entry.to_dict()})
    return jsonify(entry.to_dict()), 201


@sessions.route('/<int:session_id>/encounter', methods=['PATCH'])
def update_encounter(session_id):
    data = _body(EncounterRequest)
    svc = get_services()
    with svc.locks.hold(session_id):
        result = prep.update_encounter(
            svc.store, svc.rules, session_id, data.user_id,
            data.sentence, data.noun, data.verb, data.adjective,
            threat=data.threat, difficulty=data.difficulty, length=data.length,
        )
        if result.started_prep:
            current_app.logger.info(
                f"[prep-start] session={session_id} words={[w.word for w in result.words]} active={result.active_player_id}"
            )
        svc.broadcaster.broadcast(session_id, 'encounter_updated', {
            'session': result.session.to_dict(),
            'started_prep': result.started_prep,
            'words': [w.to_dict() for w in result.words],
            'active_player_id': result.active_player_id,
        })
    return jsonify({'session': result.session.to_dict(), 'started_prep': result.started_prep})


@sessions.route('/<int:session_id>/turn/next', methods=['POST'])
def next_turn(session_id):
    data = _body(Actor)
    svc = get_services()
    with svc.locks.hold(session_id):
        turn = lobby.next_turn(svc.store, session_id, data.user_id)
        if turn.turn_incremented:
            current_app.logger.info(f"[turn-rollover] session={session_id} current_turn={turn.current_turn}")
        svc.broadcaster.broadcast(session_id, 'turn_advanced', turn.to_dict())
    return jsonify(turn.to_dict())


@sessions.route('/<int:session_id>/prep/define-word', methods=['POST'])
def define_prep_word(session_id):
    data = _body(DefineWordRequest)
    svc = get_services()
    with svc.locks.hold(session_id):
        session = prep.define_prep_word(svc.store, session_id, data.user_id, data.meaning)
        word = prep.current_prep_word(svc.store, session)
        svc.broadcaster.broadcast(session_id, 'word_defined', {
            'word': word.word,
            'meaning': session.prep_word_meanings.get(word.word),
            'user_id': data.user_id,
        })
    return jsonify(session.to_dict())


@sessions.route('/<int:session_id>/prep/set-potency', methods=['POST'])
def set_prep_potency(session_id):
    data = _body(SetPotencyRequest)
    svc = get_services()
    with svc.locks.hold(session_id):
        rating = prep.set_prep_potency(svc.store, svc.rules, session_id, data.user_id, data.potency, data.meaning)
        current_app.logger.info(f"[prep-rate] session={session_id} word={rating.word.word} potency={rating.potency}")
        svc.broadcaster.broadcast(session_id, 'word_approved', {'word': rating.word.to_dict(), 'potency': rating.potency})
        for player in rating.nerve_changes:
            svc.broadcaster.broadcast(session_id, 'nerve_updated', {'user_id': player.user_id, 'nerve': player.nerve})
    return jsonify(dict(rating.word.to_dict(), prep_potency=rating.potency))


@sessions.route('/<int:session_id>/prep/adjust-encounter-stat', methods=['POST'])
def adjust_encounter_stat(session_id):
    data = _body(AdjustStatRequest)
    svc = get_services()
    with svc.locks.hold(session_id):
        adjustment = prep.adjust_encounter_stat(svc.store, svc.rules, session_id, data.user_id, data.stat)
        svc.broadcaster.broadcast(session_id, 'stat_adjusted', {
            'stat': adjustment.stat,
            'previous': adjustment.previous,
            'value': adjustment.value,
            'potency': adjustment.potency,
            'word': adjustment.word.to_dict(),
        })
    return jsonify({'stat': adjustment.stat, 'value': adjustment.value, 'session': adjustment.session.to_dict()})


@sessions.route('/<int:session_id>/prep/modify-stats', methods=['POST'])
def modify_encounter_stats(session_id):
    data = _body(Actor)
    svc = get_services()
    with svc.locks.hold(session_id):
        change = prep.modify_encounter_stats(svc.store, svc.rules, session_id, data.user_id)
        current_app.logger.info(f"[prep-stats] session={session_id} potency={change.potency} stats={change.values}")
        svc.broadcaster.broadcast(session_id, 'stats_modified', {
            'potency': change.potency,
            'previous': change.previous,
            'values': change.values,
            'word': change.word.to_dict(),
        })
    return jsonify({'potency': change.potency, 'values': change.values, 'session': change.session.to_dict()})


@sessions.route('/<int:session_id>/prep/next-word', methods=['POST'])
def advance_prep_turn(session_id):
    data = _body(Actor)
    svc = get_services()
    with svc.locks.hold(session_id):
        result = prep.advance_prep_turn(svc.store, session_id, data.user_id)
        current_app.logger.info(
            f"[prep-advance] session={session_id} word_index={result.session.current_prep_word_index} "
            f"turn_count={result.session.current_prep_word_turn_count} complete={result.prep_complete}"
        )
        svc.broadcaster.broadcast(session_id, 'prep_turn_advanced', result.to_dict())
    return jsonify(result.to_dict())
