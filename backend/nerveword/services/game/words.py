from dataclasses import dataclass, field
from typing import List, Optional

from nerveword.errors import Conflict, Forbidden, InvalidInput, InvalidPotency, WordNotFound
from nerveword.records import PlayerRecord, WordRecord
from nerveword.rules import WORD_CATEGORIES, Ruleset
from nerveword.store import SessionStore
from .sessions import require_gm, require_member, require_session


@dataclass
class WordSubmission:
    word: WordRecord
    is_existing: bool
    owner_added: bool

    def to_dict(self):
        data = self.word.to_dict()
        data['is_existing'] = self.is_existing
        return data


@dataclass
class Approval:
    word: WordRecord
    nerve_changes: List[PlayerRecord] = field(default_factory=list)


def apply_potency_to_nerve(nerve: int, max_nerve: int, potency: int) -> int:
    """Nerve after an owned word is rated.

    Positive potency costs nerve but never drops a player below 1; negative
    potency restores nerve up to the player's maximum.
    """
    if potency > 0:
        if nerve <= 1:
            return nerve
        return max(1, nerve - potency)
    if potency < 0:
        if nerve >= max_nerve:
            return nerve
        return min(max_nerve, nerve - potency)
    return nerve


def create_word(store: SessionStore, session_id: int, submitter_id: str, text: str,
                meaning: Optional[str] = None, category: Optional[str] = None) -> WordSubmission:
    """Add a word to the dictionary, or claim it if the text is already there.

    Claiming adds the submitter as another owner and never creates a second
    entry, so a word rolled by several players becomes shared.
    """
    session = require_session(store, session_id)
    require_member(store, session, submitter_id)
    text = (text or '').strip()
    if not text:
        raise InvalidInput('Word text is required')

    existing = store.get_word_by_text(session_id, text)
    if existing is not None:
        added = store.add_word_owner(existing.id, submitter_id)
        return WordSubmission(store.get_word(existing.id), is_existing=True, owner_added=added)

    if not meaning or not meaning.strip():
        raise InvalidInput('A meaning is required for a new word')
    category = (category or 'noun').lower()
    if category not in WORD_CATEGORIES:
        raise InvalidInput(f'Unknown word category: {category}')
    word = store.create_word(session_id, text, meaning=meaning.strip(), category=category,
                             owner_ids=[submitter_id])
    return WordSubmission(word, is_existing=False, owner_added=True)


def approve_word(store: SessionStore, rules: Ruleset, word_id: int, potency, approved_by: str) -> Approval:
    """GM rates a pending word; every owner's nerve moves by its potency."""
    word = store.get_word(word_id)
    if word is None:
        raise WordNotFound()
    session = require_session(store, word.session_id)
    if approved_by != session.gm_id:
        raise Forbidden('Only the GM can approve words')
    if not rules.potency_in_range(potency):
        raise InvalidPotency(f'Potency must be an integer from {rules.potency_min} to {rules.potency_max}')
    if word.is_approved:
        raise Conflict('Word has already been approved')

    word = store.update_word(word_id, potency=potency, is_approved=True)
    changes = []
    for owner_id in word.owner_ids:
        player = store.get_player(word.session_id, owner_id)
        if player is None or not player.is_active:
            continue
        nerve = apply_potency_to_nerve(player.nerve, player.max_nerve, potency)
        if nerve != player.nerve:
            changes.append(store.update_player(word.session_id, owner_id, nerve=nerve))
    return Approval(word, changes)


def delete_word(store: SessionStore, word_id: int, actor_id: str) -> WordRecord:
    word = store.get_word(word_id)
    if word is None:
        raise WordNotFound()
    session = require_session(store, word.session_id)
    require_gm(session, actor_id)
    if word.is_approved:
        raise Conflict('Approved words cannot be removed')
    store.delete_word(word_id)
    return word
