import random
from typing import Callable, List, Optional, Sequence, Tuple

from nerveword.errors import InvalidInput
from nerveword.rules import VOWEL_COUNT

Roller = Callable[[], int]


def d6(rng: Optional[random.Random] = None) -> Roller:
    source = rng or random.Random()
    return lambda: source.randint(1, 6)


def scripted(results: Sequence[int]) -> Roller:
    """Roller that replays fixed die results, for deterministic play."""
    remaining = iter(results)

    def roll():
        try:
            return next(remaining)
        except StopIteration:
            raise InvalidInput('Ran out of scripted die results') from None
    return roll


def validate_vowels(vowels) -> List[str]:
    if not isinstance(vowels, (list, tuple)) or len(vowels) != VOWEL_COUNT:
        raise InvalidInput(f'Exactly {VOWEL_COUNT} vowels are required')
    cleaned = []
    for vowel in vowels:
        if not isinstance(vowel, str) or not vowel.strip():
            raise InvalidInput('Vowels must be non-empty strings')
        cleaned.append(vowel.strip())
    return cleaned


def generate_word(vowels: Sequence[str], roll: Optional[Roller] = None) -> Tuple[str, List[int]]:
    """Roll a candidate word from the session's six vowels.

    The first die picks how many dice follow (ceil(d/2), so 1-3); each
    following die selects a vowel (1-indexed). Returns the word and every
    die result in roll order.
    """
    vowels = validate_vowels(list(vowels))
    roll = roll or d6()
    first = roll()
    if not 1 <= first <= 6:
        raise InvalidInput(f'Die result out of range: {first}')
    count = (first + 1) // 2
    dice = [first]
    parts = []
    for _ in range(count):
        result = roll()
        if not 1 <= result <= 6:
            raise InvalidInput(f'Die result out of range: {result}')
        dice.append(result)
        parts.append(vowels[result - 1])
    return ''.join(parts), dice
