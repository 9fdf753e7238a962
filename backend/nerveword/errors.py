"""Failures raised by the session coordinator.

Every service raises one of these; the HTTP layer turns them into JSON
error responses and the socket layer into ``error`` events.
"""


class GameError(Exception):
    status_code = 400
    kind = 'error'

    def __init__(self, message: str = ''):
        super().__init__(message or self.__class__.__name__)
        self.message = message or self.__class__.__name__

    def to_dict(self):
        return {'error': self.message, 'kind': self.kind}


class NotFound(GameError):
    status_code = 404
    kind = 'not_found'


class SessionNotFound(NotFound):
    def __init__(self, message: str = 'Session not found'):
        super().__init__(message)


class PlayerNotFound(NotFound):
    def __init__(self, message: str = 'Player not found'):
        super().__init__(message)


class WordNotFound(NotFound):
    def __init__(self, message: str = 'Word not found'):
        super().__init__(message)


class Forbidden(GameError):
    status_code = 403
    kind = 'forbidden'


class InvalidInput(GameError):
    status_code = 400
    kind = 'invalid_input'


class InvalidPotency(InvalidInput):
    pass


class Conflict(GameError):
    status_code = 409
    kind = 'conflict'


class PreconditionFailed(GameError):
    status_code = 412
    kind = 'precondition_failed'


class MissingMeaning(PreconditionFailed):
    def __init__(self, message: str = 'Word needs a meaning before potency can be set'):
        super().__init__(message)


class PotencyNotSet(PreconditionFailed):
    def __init__(self, message: str = 'Word potency has not been set'):
        super().__init__(message)


class NoPlayers(PreconditionFailed):
    def __init__(self, message: str = 'No players in session'):
        super().__init__(message)
