from dataclasses import dataclass, field
from typing import List, Tuple

PREP_CATEGORIES: Tuple[str, str, str] = ('noun', 'verb', 'adjective')
WORD_CATEGORIES = frozenset(PREP_CATEGORIES)
ENCOUNTER_STATS = ('threat', 'difficulty', 'length')
VOWEL_COUNT = 6


@dataclass(frozen=True)
class Ruleset:
    """Numeric limits of the one ruleset the game plays by."""

    starting_nerve: int = 8
    max_players: int = 5
    potency_min: int = -2
    potency_max: int = 2
    stat_min: int = 1
    stat_max: int = 10
    default_vowels: List[str] = field(default_factory=lambda: ['Ba', 'Li', 'Ske', 'Po', 'Nu', 'Hee'])

    @classmethod
    def from_config(cls, config) -> 'Ruleset':
        return cls(
            starting_nerve=int(config.get('STARTING_NERVE', 8)),
            max_players=int(config.get('MAX_PLAYERS', 5)),
            potency_min=int(config.get('POTENCY_MIN', -2)),
            potency_max=int(config.get('POTENCY_MAX', 2)),
            stat_min=int(config.get('STAT_MIN', 1)),
            stat_max=int(config.get('STAT_MAX', 10)),
            default_vowels=list(config.get('DEFAULT_VOWELS') or ['Ba', 'Li', 'Ske', 'Po', 'Nu', 'Hee']),
        )

    def potency_in_range(self, potency) -> bool:
        if isinstance(potency, bool) or not isinstance(potency, int):
            return False
        return self.potency_min <= potency <= self.potency_max

    def clamp_stat(self, value: int) -> int:
        return max(self.stat_min, min(self.stat_max, value))
