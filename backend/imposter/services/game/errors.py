"""Errors raised by game services.

Every error here is recoverable: socket handlers turn it into a private
``error`` event and leave room state untouched.
"""


class GameError(Exception):
    """Base class for rejected game requests."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFound(GameError):
    pass


class IllegalTransition(GameError):
    pass


class InsufficientPlayers(GameError):
    pass


class NoWordsAvailable(GameError):
    pass


class DuplicateVote(GameError):
    pass


class RoleNotAssigned(GameError):
    pass


class Unauthorized(GameError):
    pass


class InvalidRequest(GameError):
    pass
