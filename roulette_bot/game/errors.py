"""
Game Errors

Every rule violation raised by the game manager derives from GameError.
Player-facing operations convert these into failed ActionResults, so the
chat layer only ever sees a message and never an uncaught exception.
"""


class GameError(Exception):
    """Base class for all roulette game rule violations."""


class NotFoundError(GameError):
    """No game exists for the channel."""


class ConflictError(GameError):
    """A game is already active in the channel."""


class InvalidStateError(GameError):
    """The game is in the wrong lifecycle phase for the operation."""


class DuplicateError(GameError):
    """The player has already joined this game."""


class CapacityError(GameError):
    """The table is full."""


class TurnError(GameError):
    """Someone other than the turn holder tried to act."""


class EliminatedError(GameError):
    """An eliminated player tried to act."""


class ForcedShootError(GameError):
    """A pass was attempted while the table is forced to shoot."""


class InsufficientPlayersError(GameError):
    """Not enough players joined to start."""


class InvalidAmountError(GameError):
    """An entry tip was negative or not a whole number of base units."""
