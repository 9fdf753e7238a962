from dataclasses import dataclass

from flask import current_app

from nerveword.broadcast import SessionBroadcaster
from nerveword.rules import Ruleset
from nerveword.services.game.locks import SessionLocks
from nerveword.store import SessionStore


@dataclass
class GameServices:
    """Per-app collaborators, created by ``create_app`` and torn down with it."""

    store: SessionStore
    broadcaster: SessionBroadcaster
    locks: SessionLocks
    rules: Ruleset
    code_length: int = 6


def get_services() -> GameServices:
    return current_app.extensions['nerveword']
