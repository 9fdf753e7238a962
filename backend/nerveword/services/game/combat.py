from typing import List

from nerveword.errors import Forbidden, InvalidInput, PreconditionFailed
from nerveword.records import CombatLogRecord
from nerveword.store import SessionStore
from .sessions import require_player, require_session

MIN_SENTENCE_WORDS = 2
DICE_PER_ACTION = 2


def record_combat_action(store: SessionStore, session_id: int, player_id: str, sentence: str,
                         word_ids: List[int], dice: List[int]) -> CombatLogRecord:
    """Resolve a combat sentence: 2d6 plus the potency of the words it spends.

    Only the player holding the turn may act, and only with approved words
    they own. The log entry is written once and never changed.
    """
    session = require_session(store, session_id)
    if session.is_prep_turn:
        raise PreconditionFailed('Combat actions are not allowed during the prep turn')
    player = require_player(store, session_id, player_id)
    if not player.is_active_turn:
        raise Forbidden('It is not your turn')

    sentence = (sentence or '').strip()
    if len(sentence.split()) < MIN_SENTENCE_WORDS:
        raise InvalidInput(f'A combat sentence needs at least {MIN_SENTENCE_WORDS} words')
    if len(dice) != DICE_PER_ACTION or any(not 1 <= d <= 6 for d in dice):
        raise InvalidInput(f'Exactly {DICE_PER_ACTION} six-sided die results are required')
    if len(set(word_ids)) != len(word_ids):
        raise InvalidInput('A word can only be used once per action')

    used_words = []
    for word_id in word_ids:
        word = store.get_word(word_id)
        if word is None or word.session_id != session_id:
            raise InvalidInput(f'Unknown word id {word_id}')
        if not word.is_approved or word.potency is None:
            raise PreconditionFailed(f'Word "{word.word}" has not been rated yet')
        if player_id not in word.owner_ids:
            raise Forbidden(f'You do not own "{word.word}"')
        used_words.append({'word_id': word.id, 'potency': word.potency})

    dice_roll = sum(dice)
    total_potency = sum(w['potency'] for w in used_words)
    return store.add_combat_log_entry(
        session_id=session_id,
        player_id=player_id,
        sentence=sentence,
        used_words=used_words,
        dice_roll=dice_roll,
        total_potency=total_potency,
        final_result=dice_roll + total_potency,
        turn_number=session.current_turn,
    )
