from abc import ABC, abstractmethod
from typing import Dict, Iterable, List, Optional

from nerveword.errors import InvalidInput
from nerveword.records import CombatLogRecord, PlayerRecord, SessionRecord, WordRecord


SESSION_FIELDS = frozenset({
    'name', 'encounter_sentence', 'encounter_noun', 'encounter_verb', 'encounter_adjective',
    'encounter_threat', 'encounter_difficulty', 'encounter_length', 'is_prep_turn',
    'current_prep_word_index', 'current_prep_word_turn_count', 'vowels', 'current_turn',
    'is_active', 'prep_word_meanings', 'prep_word_ratings',
})
PLAYER_FIELDS = frozenset({'player_name', 'nerve', 'max_nerve', 'turn_order', 'is_active', 'is_active_turn'})
WORD_FIELDS = frozenset({'meaning', 'category', 'potency', 'is_approved'})


def check_fields(changes: dict, allowed: frozenset, what: str) -> None:
    unknown = set(changes) - allowed
    if unknown:
        raise InvalidInput(f"Cannot update {what} field(s): {', '.join(sorted(unknown))}")


class SessionStore(ABC):
    """Persistence contract shared by the memory and SQL backends.

    Each method is one atomic write or read. Uniqueness rules (session code,
    player per session, word text per session, owner per word) raise
    ``Conflict``; writes against a missing parent raise the matching
    ``NotFound`` subclass.
    """

    # Sessions
    @abstractmethod
    def create_session(self, code: str, name: str, gm_id: str, vowels: List[str]) -> SessionRecord: ...

    @abstractmethod
    def get_session(self, session_id: int) -> Optional[SessionRecord]: ...

    @abstractmethod
    def get_session_by_code(self, code: str) -> Optional[SessionRecord]:
        """Active session with this join code, if any."""

    @abstractmethod
    def code_exists(self, code: str) -> bool: ...

    @abstractmethod
    def update_session(self, session_id: int, **changes) -> SessionRecord: ...

    # Players
    @abstractmethod
    def add_player(self, session_id: int, user_id: str, player_name: Optional[str] = None,
                   nerve: int = 8, max_nerve: int = 8, turn_order: Optional[int] = None) -> PlayerRecord: ...

    @abstractmethod
    def get_player(self, session_id: int, user_id: str) -> Optional[PlayerRecord]: ...

    @abstractmethod
    def list_players(self, session_id: int, include_inactive: bool = False) -> List[PlayerRecord]:
        """Players ordered by turn order (unordered last), then join order."""

    @abstractmethod
    def update_player(self, session_id: int, user_id: str, **changes) -> PlayerRecord: ...

    @abstractmethod
    def set_turn_orders(self, session_id: int, orders: Dict[str, int]) -> None: ...

    @abstractmethod
    def set_active_turn(self, session_id: int, user_id: str) -> None:
        """Clear every active-turn flag in the session and set exactly one, in one write."""

    @abstractmethod
    def clear_active_turn(self, session_id: int) -> None: ...

    # Words
    @abstractmethod
    def create_word(self, session_id: int, word: str, meaning: str = '', category: str = 'noun',
                    potency: Optional[int] = None, is_approved: bool = False,
                    owner_ids: Iterable[str] = ()) -> WordRecord: ...

    @abstractmethod
    def get_word(self, word_id: int) -> Optional[WordRecord]: ...

    @abstractmethod
    def get_word_by_text(self, session_id: int, text: str) -> Optional[WordRecord]: ...

    @abstractmethod
    def list_words(self, session_id: int) -> List[WordRecord]: ...

    def list_pending_words(self, session_id: int) -> List[WordRecord]:
        return [w for w in self.list_words(session_id) if w.is_pending]

    def list_owned_words(self, session_id: int, owner_id: str) -> List[WordRecord]:
        return [w for w in self.list_words(session_id) if owner_id in w.owner_ids]

    @abstractmethod
    def update_word(self, word_id: int, **changes) -> WordRecord: ...

    @abstractmethod
    def add_word_owner(self, word_id: int, owner_id: str) -> bool:
        """Returns False when ``owner_id`` already owned the word."""

    @abstractmethod
    def set_word_owners(self, word_id: int, owner_ids: Iterable[str]) -> WordRecord: ...

    @abstractmethod
    def delete_word(self, word_id: int) -> None: ...

    # Combat log
    @abstractmethod
    def add_combat_log_entry(self, session_id: int, player_id: str, sentence: str, used_words: List[dict],
                             dice_roll: int, total_potency: int, final_result: int,
                             turn_number: int) -> CombatLogRecord: ...

    @abstractmethod
    def list_combat_log(self, session_id: int) -> List[CombatLogRecord]:
        """Newest entry first."""
