"""Prep-turn state machine.

A new encounter puts the session into prep: for each encounter word in turn
(noun, verb, adjective) every player gets one round as the active player.
The active player proposes a meaning, the GM rates it once, and that rating
pushes the encounter stats up or down exactly once. After the adjective's last
round the session drops back to normal combat turns.
"""
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from nerveword.errors import (
    Conflict,
    Forbidden,
    InvalidInput,
    InvalidPotency,
    MissingMeaning,
    NoPlayers,
    PotencyNotSet,
    PreconditionFailed,
    WordNotFound,
)
from nerveword.records import PlayerRecord, SessionRecord, WordRecord
from nerveword.rules import ENCOUNTER_STATS, PREP_CATEGORIES, Ruleset
from nerveword.store import SessionStore
from .sessions import require_active_player_or_gm, require_gm, require_session
from .turns import (
    TurnAdvance,
    activate_first_player,
    advance_to_next_player,
    recalculate_turn_order,
    reset_turns_for_new_encounter,
)
from .words import approve_word


@dataclass
class EncounterUpdate:
    session: SessionRecord
    started_prep: bool
    words: List[WordRecord] = field(default_factory=list)
    active_player_id: Optional[str] = None


@dataclass
class PrepAdvance:
    session: SessionRecord
    prep_complete: bool
    turn: Optional[TurnAdvance] = None
    active_player_id: Optional[str] = None

    def to_dict(self):
        return {
            'is_prep_turn': self.session.is_prep_turn,
            'current_prep_word_index': self.session.current_prep_word_index,
            'current_prep_word_turn_count': self.session.current_prep_word_turn_count,
            'current_turn': self.session.current_turn,
            'prep_complete': self.prep_complete,
            'active_player_id': self.active_player_id,
            'turn_incremented': self.turn.turn_incremented if self.turn else False,
        }


@dataclass
class PrepRating:
    word: WordRecord
    potency: int
    nerve_changes: List[PlayerRecord] = field(default_factory=list)


@dataclass
class StatAdjustment:
    session: SessionRecord
    word: WordRecord
    stat: str
    previous: int
    value: int
    potency: int


@dataclass
class StatsModification:
    session: SessionRecord
    word: WordRecord
    potency: int
    previous: Dict[str, int]
    values: Dict[str, int]


def _check_stat(rules: Ruleset, name: str, value: Optional[int]) -> None:
    if value is None:
        return
    if isinstance(value, bool) or not isinstance(value, int) or not rules.stat_min <= value <= rules.stat_max:
        raise InvalidInput(f'{name} must be between {rules.stat_min} and {rules.stat_max}')


def is_new_encounter(session: SessionRecord, sentence: str, noun: str, verb: str, adjective: str) -> bool:
    return (
        session.encounter_sentence != sentence
        or session.encounter_noun != noun
        or session.encounter_verb != verb
        or session.encounter_adjective != adjective
    )


def update_encounter(store: SessionStore, rules: Ruleset, session_id: int, actor_id: str,
                     sentence: str, noun: str, verb: str, adjective: str,
                     threat: Optional[int] = None, difficulty: Optional[int] = None,
                     length: Optional[int] = None) -> EncounterUpdate:
    session = require_session(store, session_id)
    require_gm(session, actor_id)
    for name, value in (('threat', threat), ('difficulty', difficulty), ('length', length)):
        _check_stat(rules, name, value)
    sentence, noun, verb, adjective = (s.strip() for s in (sentence, noun, verb, adjective))
    if not all((sentence, noun, verb, adjective)):
        raise InvalidInput('Encounter sentence, noun, verb and adjective are required')

    stats = {}
    if threat is not None:
        stats['encounter_threat'] = threat
    if difficulty is not None:
        stats['encounter_difficulty'] = difficulty
    if length is not None:
        stats['encounter_length'] = length

    if not is_new_encounter(session, sentence, noun, verb, adjective):
        if stats:
            session = store.update_session(session_id, **stats)
        return EncounterUpdate(session, started_prep=False)

    reset_turns_for_new_encounter(store, session_id)
    words = []
    # A word already in the dictionary keeps its entry; prep rates it in prep_word_ratings
    for text, category in zip((noun, verb, adjective), PREP_CATEGORIES):
        word = store.get_word_by_text(session_id, text)
        if word is None:
            word = store.create_word(session_id, text, meaning='', category=category,
                                     potency=None, is_approved=True)
        words.append(word)
    session = store.update_session(
        session_id,
        encounter_sentence=sentence,
        encounter_noun=noun,
        encounter_verb=verb,
        encounter_adjective=adjective,
        is_prep_turn=True,
        current_prep_word_index=0,
        current_prep_word_turn_count=0,
        prep_word_meanings={},
        prep_word_ratings={},
        **stats,
    )
    recalculate_turn_order(store, session_id)
    active_id = activate_first_player(store, session_id)
    return EncounterUpdate(session, started_prep=True, words=words, active_player_id=active_id)


def _require_prep(session: SessionRecord) -> None:
    if not session.is_prep_turn:
        raise PreconditionFailed('Session is not in the prep turn')


def current_prep_word(store: SessionStore, session: SessionRecord) -> WordRecord:
    _require_prep(session)
    text = session.encounter_words[session.current_prep_word_index]
    word = store.get_word_by_text(session.id, text) if text else None
    if word is None:
        raise WordNotFound('Current prep word is missing from the dictionary')
    return word


def advance_prep_turn(store: SessionStore, session_id: int, actor_id: str) -> PrepAdvance:
    """Close the current prep round.

    Every player gets one round per encounter word; after the last round of
    the last word the session returns to normal turns from turn order 0.
    """
    session = require_session(store, session_id)
    _require_prep(session)
    require_active_player_or_gm(store, session, actor_id)
    players = store.list_players(session_id)
    if not players:
        raise NoPlayers()

    turn_count = session.current_prep_word_turn_count + 1
    word_index = session.current_prep_word_index
    if turn_count >= len(players):
        turn_count = 0
        word_index += 1

    if word_index >= len(PREP_CATEGORIES):
        store.update_session(
            session_id,
            is_prep_turn=False,
            current_prep_word_index=0,
            current_prep_word_turn_count=0,
            prep_word_meanings={},
            prep_word_ratings={},
        )
        reset_turns_for_new_encounter(store, session_id)
        active_id = activate_first_player(store, session_id)
        return PrepAdvance(store.get_session(session_id), prep_complete=True, active_player_id=active_id)

    store.update_session(session_id, current_prep_word_index=word_index,
                         current_prep_word_turn_count=turn_count)
    turn = advance_to_next_player(store, session_id)
    return PrepAdvance(store.get_session(session_id), prep_complete=False, turn=turn,
                       active_player_id=turn.next_player_id)


def define_prep_word(store: SessionStore, session_id: int, actor_id: str, meaning: str) -> SessionRecord:
    """Record the active player's proposed meaning for the current prep word."""
    session = require_session(store, session_id)
    _require_prep(session)
    require_active_player_or_gm(store, session, actor_id)
    meaning = (meaning or '').strip()
    if not meaning:
        raise InvalidInput('Meaning is required')
    word = current_prep_word(store, session)
    meanings = dict(session.prep_word_meanings)
    meanings[word.word] = meaning
    return store.update_session(session_id, prep_word_meanings=meanings)


def _prep_rating(session: SessionRecord, word: WordRecord) -> dict:
    """This prep's unapplied rating for ``word``."""
    rating = session.prep_word_ratings.get(word.word)
    if rating is None:
        raise PotencyNotSet()
    if rating.get('stat'):
        raise Conflict(f'The potency of "{word.word}" has already been applied to the encounter')
    return rating


def set_prep_potency(store: SessionStore, rules: Ruleset, session_id: int, actor_id: str,
                     potency, meaning: Optional[str] = None) -> PrepRating:
    """GM rates the current prep word once per prep.

    A fresh prep word takes the meaning and potency into the dictionary. A
    player's pending word with the same text goes through normal approval, so
    its owners' nerve moves. A word rated before keeps its dictionary entry;
    the new rating only counts for this encounter.
    """
    session = require_session(store, session_id)
    require_gm(session, actor_id)
    word = current_prep_word(store, session)
    if word.word in session.prep_word_ratings:
        raise Conflict(f'"{word.word}" has already been rated in this prep')
    meaning = (meaning or '').strip() or session.prep_word_meanings.get(word.word)
    if not meaning:
        raise MissingMeaning()
    if not rules.potency_in_range(potency):
        raise InvalidPotency(f'Potency must be an integer from {rules.potency_min} to {rules.potency_max}')

    nerve_changes = []
    if word.is_pending:
        store.update_word(word.id, meaning=meaning)
        approval = approve_word(store, rules, word.id, potency, actor_id)
        word, nerve_changes = approval.word, approval.nerve_changes
    elif word.potency is None:
        word = store.update_word(word.id, meaning=meaning, potency=potency, is_approved=True)

    ratings = dict(session.prep_word_ratings)
    ratings[word.word] = {'potency': potency, 'stat': None}
    store.update_session(session_id, prep_word_ratings=ratings)
    return PrepRating(word, potency, nerve_changes)


def adjust_encounter_stat(store: SessionStore, rules: Ruleset, session_id: int, actor_id: str,
                          stat: str) -> StatAdjustment:
    """Push one encounter stat by the current prep word's rating.

    Each rating is applied once. The GM takes sole ownership of the word once
    it has shaped the encounter.
    """
    session = require_session(store, session_id)
    if stat not in ENCOUNTER_STATS:
        raise InvalidInput(f'Unknown encounter stat: {stat}')
    word = current_prep_word(store, session)
    try:
        require_active_player_or_gm(store, session, actor_id)
    except Forbidden:
        raise Forbidden('Only the GM or the active player can adjust encounter stats') from None
    rating = _prep_rating(session, word)

    field_name = f'encounter_{stat}'
    previous = getattr(session, field_name)
    if previous is None:
        previous = rules.stat_min
    value = rules.clamp_stat(previous + rating['potency'])
    ratings = dict(session.prep_word_ratings)
    ratings[word.word] = dict(rating, stat=stat)
    session = store.update_session(session_id, prep_word_ratings=ratings, **{field_name: value})
    word = store.set_word_owners(word.id, [session.gm_id])
    return StatAdjustment(session, word, stat, previous, value, rating['potency'])


def modify_encounter_stats(store: SessionStore, rules: Ruleset, session_id: int,
                           actor_id: str) -> StatsModification:
    """GM applies the current prep word's rating to all three encounter stats at once.

    Uses up the word's rating the same way a single-stat adjustment does.
    """
    session = require_session(store, session_id)
    require_gm(session, actor_id)
    word = current_prep_word(store, session)
    rating = _prep_rating(session, word)

    previous, values = {}, {}
    for stat in ENCOUNTER_STATS:
        current = getattr(session, f'encounter_{stat}')
        previous[stat] = rules.stat_min if current is None else current
        values[stat] = rules.clamp_stat(previous[stat] + rating['potency'])
    ratings = dict(session.prep_word_ratings)
    ratings[word.word] = dict(rating, stat='all')
    session = store.update_session(
        session_id,
        prep_word_ratings=ratings,
        **{f'encounter_{stat}': value for stat, value in values.items()},
    )
    word = store.set_word_owners(word.id, [session.gm_id])
    return StatsModification(session, word, rating['potency'], previous, values)
