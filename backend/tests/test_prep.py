import pytest

from nerveword.errors import (
    Conflict,
    Forbidden,
    InvalidInput,
    InvalidPotency,
    MissingMeaning,
    NoPlayers,
    PotencyNotSet,
    PreconditionFailed,
)
from nerveword.services.game import prep
from nerveword.services.game.sessions import leave_session
from nerveword.services.game.words import approve_word, create_word

ENCOUNTER = dict(sentence='The BaSke LiPo runs quickly', noun='BaSke', verb='LiPo', adjective='quickly',
                 threat=3, difficulty=2, length=4)


def _start(store, rules, session_id, **overrides):
    payload = dict(ENCOUNTER, **overrides)
    return prep.update_encounter(store, rules, session_id, 'gm', **payload)


def _active(store, session_id):
    return [p.user_id for p in store.list_players(session_id) if p.is_active_turn]


def test_new_encounter_enters_prep(store, rules, new_session):
    session = new_session('p1', 'p2')
    result = _start(store, rules, session.id)

    assert result.started_prep is True
    session = store.get_session(session.id)
    assert session.is_prep_turn is True
    assert session.current_prep_word_index == 0
    assert session.current_prep_word_turn_count == 0
    assert session.current_turn == 1
    assert (session.encounter_threat, session.encounter_difficulty, session.encounter_length) == (3, 2, 4)

    words = {w.word: w for w in store.list_words(session.id)}
    assert [(w.word, w.category) for w in result.words] == [('BaSke', 'noun'), ('LiPo', 'verb'), ('quickly', 'adjective')]
    for text in ('BaSke', 'LiPo', 'quickly'):
        assert words[text].is_approved is True
        assert words[text].potency is None
        assert words[text].owner_ids == []
    assert _active(store, session.id) == ['p1']


def test_prep_reorders_by_nerve(store, rules, new_session):
    session = new_session('p1', 'p2')
    store.update_player(session.id, 'p1', nerve=3)
    result = _start(store, rules, session.id)
    assert result.active_player_id == 'p2'
    assert {p.user_id: p.turn_order for p in store.list_players(session.id)} == {'p2': 0, 'p1': 1}


def test_same_encounter_only_updates_stats(store, rules, new_session):
    session = new_session('p1')
    _start(store, rules, session.id)
    prep.advance_prep_turn(store, session.id, 'gm')

    result = _start(store, rules, session.id, threat=9)
    assert result.started_prep is False
    session = store.get_session(session.id)
    assert session.encounter_threat == 9
    assert session.current_prep_word_index == 1
    assert len(store.list_words(session.id)) == 3


def test_changing_any_word_restarts_prep(store, rules, new_session):
    session = new_session('p1')
    _start(store, rules, session.id)
    prep.advance_prep_turn(store, session.id, 'gm')
    result = _start(store, rules, session.id, adjective='slowly')
    assert result.started_prep is True
    assert store.get_session(session.id).current_prep_word_index == 0


def test_existing_dictionary_word_is_reused(store, rules, new_session):
    session = new_session('p1')
    create_word(store, session.id, 'p1', 'BaSke', meaning='a beast')
    _start(store, rules, session.id)
    assert [w.word for w in store.list_words(session.id)].count('BaSke') == 1


def test_three_players_take_nine_rounds(store, rules, new_session):
    session = new_session('p1', 'p2', 'p3')
    _start(store, rules, session.id)

    seen = []
    for _ in range(9):
        assert store.get_session(session.id).is_prep_turn is True
        result = prep.advance_prep_turn(store, session.id, 'gm')
        seen.append((result.session.current_prep_word_index, result.session.current_prep_word_turn_count,
                     result.active_player_id))

    assert result.prep_complete is True
    assert seen[:4] == [(0, 1, 'p2'), (0, 2, 'p3'), (1, 0, 'p1'), (1, 1, 'p2')]
    session = store.get_session(session.id)
    assert session.is_prep_turn is False
    assert session.current_prep_word_index == 0
    assert session.current_turn == 1
    assert session.prep_word_meanings == {}
    assert _active(store, session.id) == ['p1']


def test_advance_outside_prep(store, new_session):
    session = new_session('p1')
    with pytest.raises(PreconditionFailed):
        prep.advance_prep_turn(store, session.id, 'gm')


def test_prep_without_players(store, rules, new_session):
    session = new_session()
    result = _start(store, rules, session.id)
    assert result.active_player_id is None
    with pytest.raises(NoPlayers):
        prep.advance_prep_turn(store, session.id, 'gm')


def test_only_turn_holder_or_gm_advances(store, rules, new_session):
    session = new_session('p1', 'p2')
    _start(store, rules, session.id)
    with pytest.raises(Forbidden):
        prep.advance_prep_turn(store, session.id, 'p2')
    prep.advance_prep_turn(store, session.id, 'p1')
    assert _active(store, session.id) == ['p2']


def test_only_gm_sets_encounter(store, rules, new_session):
    session = new_session('p1')
    with pytest.raises(Forbidden):
        prep.update_encounter(store, rules, session.id, 'p1', **ENCOUNTER)


@pytest.mark.parametrize('stat', ['threat', 'difficulty', 'length'])
def test_encounter_stats_bounded(store, rules, new_session, stat):
    session = new_session('p1')
    with pytest.raises(InvalidInput):
        _start(store, rules, session.id, **{stat: 11})
    with pytest.raises(InvalidInput):
        _start(store, rules, session.id, **{stat: 0})


def test_meaning_then_potency_then_stat(store, rules, new_session):
    session = new_session('p1', 'p2')
    _start(store, rules, session.id)

    with pytest.raises(MissingMeaning):
        prep.set_prep_potency(store, rules, session.id, 'gm', 1)
    with pytest.raises(PotencyNotSet):
        prep.adjust_encounter_stat(store, rules, session.id, 'p1', 'threat')
    with pytest.raises(Forbidden):
        prep.define_prep_word(store, session.id, 'p2', 'a hungry wolf')

    session_after = prep.define_prep_word(store, session.id, 'p1', 'a hungry wolf')
    assert session_after.prep_word_meanings == {'BaSke': 'a hungry wolf'}
    assert store.get_word_by_text(session.id, 'BaSke').meaning == ''

    with pytest.raises(Forbidden):
        prep.set_prep_potency(store, rules, session.id, 'p1', 1)
    with pytest.raises(InvalidPotency):
        prep.set_prep_potency(store, rules, session.id, 'gm', 5)
    rating = prep.set_prep_potency(store, rules, session.id, 'gm', 2)
    assert (rating.word.meaning, rating.word.potency, rating.word.is_approved) == ('a hungry wolf', 2, True)
    assert rating.potency == 2

    adjustment = prep.adjust_encounter_stat(store, rules, session.id, 'p1', 'threat')
    assert (adjustment.previous, adjustment.value) == (3, 5)
    assert adjustment.word.owner_ids == ['gm']
    assert store.get_session(session.id).encounter_threat == 5


def test_stat_adjustment_clamps(store, rules, new_session):
    session = new_session('p1')
    _start(store, rules, session.id, threat=10, length=1)
    prep.set_prep_potency(store, rules, session.id, 'gm', 2, meaning='a wall')
    assert prep.adjust_encounter_stat(store, rules, session.id, 'gm', 'threat').value == 10

    prep.advance_prep_turn(store, session.id, 'gm')
    prep.set_prep_potency(store, rules, session.id, 'gm', -2, meaning='to crumble')
    assert prep.adjust_encounter_stat(store, rules, session.id, 'gm', 'length').value == 1


def test_unknown_stat(store, rules, new_session):
    session = new_session('p1')
    _start(store, rules, session.id)
    with pytest.raises(InvalidInput):
        prep.adjust_encounter_stat(store, rules, session.id, 'gm', 'luck')


def test_stat_adjustment_applies_once_per_word(store, rules, new_session):
    session = new_session('p1')
    _start(store, rules, session.id)
    prep.set_prep_potency(store, rules, session.id, 'gm', 2, meaning='a hungry wolf')
    prep.adjust_encounter_stat(store, rules, session.id, 'p1', 'threat')

    with pytest.raises(Conflict):
        prep.adjust_encounter_stat(store, rules, session.id, 'p1', 'threat')
    with pytest.raises(Conflict):
        prep.adjust_encounter_stat(store, rules, session.id, 'gm', 'length')
    with pytest.raises(Conflict):
        prep.modify_encounter_stats(store, rules, session.id, 'gm')
    session = store.get_session(session.id)
    assert (session.encounter_threat, session.encounter_length) == (5, 4)

    prep.advance_prep_turn(store, session.id, 'gm')
    with pytest.raises(PotencyNotSet):
        prep.adjust_encounter_stat(store, rules, session.id, 'p1', 'threat')


def test_prep_word_is_rated_once(store, rules, new_session):
    session = new_session('p1')
    _start(store, rules, session.id)
    prep.set_prep_potency(store, rules, session.id, 'gm', 1, meaning='a beast')
    with pytest.raises(Conflict):
        prep.set_prep_potency(store, rules, session.id, 'gm', -2, meaning='a lamb')
    assert store.get_word_by_text(session.id, 'BaSke').potency == 1


def test_reused_rated_word_is_rated_again_for_the_encounter(store, rules, new_session):
    session = new_session('p1')
    earlier = create_word(store, session.id, 'p1', 'BaSke', meaning='a beast').word
    approve_word(store, rules, earlier.id, -1, 'gm')
    _start(store, rules, session.id)

    with pytest.raises(PotencyNotSet):
        prep.adjust_encounter_stat(store, rules, session.id, 'p1', 'threat')
    with pytest.raises(MissingMeaning):
        prep.set_prep_potency(store, rules, session.id, 'gm', 2)

    prep.define_prep_word(store, session.id, 'p1', 'a hungry wolf')
    rating = prep.set_prep_potency(store, rules, session.id, 'gm', 2)
    assert rating.potency == 2
    word = store.get_word(earlier.id)
    assert (word.potency, word.meaning, word.is_approved) == (-1, 'a beast', True)

    adjustment = prep.adjust_encounter_stat(store, rules, session.id, 'p1', 'threat')
    assert (adjustment.previous, adjustment.value, adjustment.potency) == (3, 5, 2)


def test_pending_word_reused_in_prep_goes_through_approval(store, rules, new_session):
    session = new_session('p1')
    pending = create_word(store, session.id, 'p1', 'BaSke', meaning='a beast').word
    _start(store, rules, session.id)
    assert store.get_word(pending.id).is_pending

    rating = prep.set_prep_potency(store, rules, session.id, 'gm', 2, meaning='a hungry wolf')

    assert (rating.word.is_approved, rating.word.potency, rating.word.meaning) == (True, 2, 'a hungry wolf')
    assert [(p.user_id, p.nerve) for p in rating.nerve_changes] == [('p1', 6)]
    assert store.get_player(session.id, 'p1').nerve == 6


def test_modify_stats_moves_every_stat(store, rules, new_session):
    session = new_session('p1')
    _start(store, rules, session.id)
    with pytest.raises(PotencyNotSet):
        prep.modify_encounter_stats(store, rules, session.id, 'gm')
    prep.set_prep_potency(store, rules, session.id, 'gm', -2, meaning='a small beast')
    with pytest.raises(Forbidden):
        prep.modify_encounter_stats(store, rules, session.id, 'p1')

    change = prep.modify_encounter_stats(store, rules, session.id, 'gm')

    assert change.potency == -2
    assert change.previous == {'threat': 3, 'difficulty': 2, 'length': 4}
    assert change.values == {'threat': 1, 'difficulty': 1, 'length': 2}
    assert change.word.owner_ids == ['gm']
    with pytest.raises(Conflict):
        prep.adjust_encounter_stat(store, rules, session.id, 'p1', 'threat')


def test_ratings_reset_with_each_prep(store, rules, new_session):
    session = new_session('p1')
    _start(store, rules, session.id)
    prep.set_prep_potency(store, rules, session.id, 'gm', 1, meaning='a beast')
    assert store.get_session(session.id).prep_word_ratings == {'BaSke': {'potency': 1, 'stat': None}}

    _start(store, rules, session.id, sentence='The BaSke LiPo runs again')
    assert store.get_session(session.id).prep_word_ratings == {}
    with pytest.raises(PotencyNotSet):
        prep.adjust_encounter_stat(store, rules, session.id, 'gm', 'threat')

    for _ in range(3):
        prep.advance_prep_turn(store, session.id, 'gm')
    assert store.get_session(session.id).prep_word_ratings == {}


def test_prep_survives_a_player_leaving(store, rules, new_session):
    session = new_session('p1', 'p2', 'p3')
    _start(store, rules, session.id)
    prep.advance_prep_turn(store, session.id, 'gm')
    prep.advance_prep_turn(store, session.id, 'gm')

    leave_session(store, session.id, 'p3', 'p3')
    assert _active(store, session.id) == ['p1']

    result = prep.advance_prep_turn(store, session.id, 'gm')
    assert (result.session.current_prep_word_index, result.session.current_prep_word_turn_count) == (1, 0)
    for _ in range(4):
        result = prep.advance_prep_turn(store, session.id, 'gm')
    assert result.prep_complete is True
