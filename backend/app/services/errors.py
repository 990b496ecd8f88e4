"""Recoverable game errors.

Every error here is reported only to the connection that caused it. Handlers validate
before they mutate, so raising one of these never leaves a room half-updated.
"""


class GameActionError(ValueError):
    code = "GameError"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def to_payload(self) -> dict:
        return {"code": self.code, "message": self.message}


class NotFoundError(GameActionError):
    code = "NotFound"


class RoomNotFoundError(NotFoundError):
    def __init__(self, message: str = "Server not found.") -> None:
        super().__init__(message)


class TerritoryNotFoundError(NotFoundError):
    def __init__(self, message: str = "Territory not found.") -> None:
        super().__init__(message)


class TargetNotFoundError(NotFoundError):
    code = "TargetNotFound"

    def __init__(self, message: str = "Target player not found.") -> None:
        super().__init__(message)


class WrongPasswordError(GameActionError):
    code = "WrongPassword"

    def __init__(self, message: str = "Incorrect password.") -> None:
        super().__init__(message)


class RoomFullError(GameActionError):
    code = "Full"

    def __init__(self, message: str = "Server is full.") -> None:
        super().__init__(message)


class AlreadyInRoomError(GameActionError):
    code = "AlreadyInRoom"

    def __init__(self, message: str = "You are already seated in another game.") -> None:
        super().__init__(message)


class InvalidSettingsError(GameActionError):
    code = "InvalidSettings"


class NotYourTurnError(GameActionError):
    code = "NotYourTurn"

    def __init__(self, message: str = "It is not your turn to act.") -> None:
        super().__init__(message)


class GameEndedError(GameActionError):
    code = "GameEnded"

    def __init__(self, message: str = "The game has ended.") -> None:
        super().__init__(message)


class InsufficientFundsError(GameActionError):
    code = "InsufficientFunds"


class AlreadyClaimedError(GameActionError):
    code = "AlreadyClaimed"

    def __init__(self, message: str = "Territory is already claimed.") -> None:
        super().__init__(message)


class NoLandAvailableError(GameActionError):
    code = "NoLandAvailable"

    def __init__(self, message: str = "No unclaimed land left to expand into!") -> None:
        super().__init__(message)


class NoOwnedTerritoryError(GameActionError):
    code = "NoOwnedTerritory"

    def __init__(self, message: str = "You must own a territory to build units.") -> None:
        super().__init__(message)


class InvalidAttackError(GameActionError):
    code = "InvalidAttack"


class UnknownActionError(GameActionError):
    code = "UnknownAction"


class InvalidActionError(GameActionError):
    code = "InvalidAction"
