"""Request payloads, validated before they reach the game services."""
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Payload(BaseModel):
    # Clients send either snake_case or the camelCase the web client uses
    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True, extra='ignore')


class Actor(Payload):
    user_id: str = Field(alias='userId', min_length=1, max_length=64)


class CreateSessionRequest(Actor):
    name: str = Field(min_length=1, max_length=100)


class JoinSessionRequest(Actor):
    code: str = Field(min_length=1, max_length=12)
    player_name: Optional[str] = Field(default=None, alias='playerName', max_length=100)


class LeaveSessionRequest(Actor):
    pass


class NerveUpdateRequest(Actor):
    nerve: int


class VowelsRequest(Actor):
    vowels: List[str]


class CreateWordRequest(Actor):
    word: str = Field(min_length=1, max_length=50)
    meaning: Optional[str] = None
    category: Optional[Literal['noun', 'verb', 'adjective']] = None


class ApproveWordRequest(Actor):
    potency: int

    @field_validator('potency', mode='before')
    @classmethod
    def reject_non_integers(cls, value):
        if isinstance(value, (bool, str)) or (isinstance(value, float) and not value.is_integer()):
            raise ValueError('potency must be an integer')
        return value


class EncounterRequest(Actor):
    sentence: str = Field(min_length=1)
    noun: str = Field(min_length=1, max_length=50)
    verb: str = Field(min_length=1, max_length=50)
    adjective: str = Field(min_length=1, max_length=50)
    threat: Optional[int] = None
    difficulty: Optional[int] = None
    length: Optional[int] = None


class CombatActionRequest(Actor):
    sentence: str = Field(min_length=1)
    word_ids: List[int] = Field(default_factory=list, alias='wordIds')
    dice: List[int]


class DefineWordRequest(Actor):
    meaning: str = Field(min_length=1)


class SetPotencyRequest(ApproveWordRequest):
    meaning: Optional[str] = None


class AdjustStatRequest(Actor):
    stat: Literal['threat', 'difficulty', 'length']


class JoinSessionMessage(Payload):
    session_id: int = Field(alias='sessionId')
