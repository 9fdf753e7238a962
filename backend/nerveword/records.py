"""Plain data objects handed out by the session store.

Both store backends return these; callers read them but change state only
through store operations.
"""
from dataclasses import dataclass, field, asdict
from datetime import datetime
from typing import Dict, List, Optional


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


@dataclass
class SessionRecord:
    id: int
    code: str
    name: str
    gm_id: str
    encounter_sentence: Optional[str] = None
    encounter_noun: Optional[str] = None
    encounter_verb: Optional[str] = None
    encounter_adjective: Optional[str] = None
    encounter_threat: Optional[int] = None
    encounter_difficulty: Optional[int] = None
    encounter_length: Optional[int] = None
    is_prep_turn: bool = False
    current_prep_word_index: int = 0
    current_prep_word_turn_count: int = 0
    vowels: List[str] = field(default_factory=list)
    current_turn: int = 1
    is_active: bool = True
    prep_word_meanings: Dict[str, str] = field(default_factory=dict)
    # Ratings given during the current prep: {word: {"potency": int, "stat": applied stat or None}}
    prep_word_ratings: Dict[str, dict] = field(default_factory=dict)
    created_at: Optional[datetime] = None

    @property
    def encounter_words(self):
        return (self.encounter_noun, self.encounter_verb, self.encounter_adjective)

    def to_dict(self):
        data = asdict(self)
        data['created_at'] = _iso(self.created_at)
        return data


@dataclass
class PlayerRecord:
    id: int
    session_id: int
    user_id: str
    player_name: Optional[str] = None
    nerve: int = 8
    max_nerve: int = 8
    turn_order: Optional[int] = None
    is_active: bool = True
    is_active_turn: bool = False
    joined_at: Optional[datetime] = None

    def to_dict(self):
        data = asdict(self)
        data['joined_at'] = _iso(self.joined_at)
        return data


@dataclass
class WordRecord:
    id: int
    session_id: int
    word: str
    meaning: str = ''
    category: str = 'noun'
    potency: Optional[int] = None
    is_approved: bool = False
    owner_ids: List[str] = field(default_factory=list)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def is_pending(self) -> bool:
        return not self.is_approved

    def to_dict(self):
        data = asdict(self)
        data['created_at'] = _iso(self.created_at)
        data['updated_at'] = _iso(self.updated_at)
        return data


@dataclass
class CombatLogRecord:
    id: int
    session_id: int
    player_id: str
    sentence: str
    used_words: List[dict]
    dice_roll: int
    total_potency: int
    final_result: int
    turn_number: int
    created_at: Optional[datetime] = None

    def to_dict(self):
        data = asdict(self)
        data['created_at'] = _iso(self.created_at)
        return data
