"""Typed domain exceptions for game rule violations.

Every recoverable failure of a room operation is a subclass of
GameRuleError carrying a GameErrorCode. The message router catches the
base class and converts it into an error message for the originating
connection only, so a rule violation in one room never reaches another.
"""

from fibber.logic.enums import GameErrorCode


class GameRuleError(Exception):
    """Base exception for game rule violations.

    Subclasses set ``code``; the message defaults to a short description
    of the rule but callers usually pass a more specific one.
    """

    code: GameErrorCode = GameErrorCode.GAME_NOT_ACTIVE
    default_message = "Game rule violated"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class RoomNotFoundError(GameRuleError):
    code = GameErrorCode.ROOM_NOT_FOUND
    default_message = "Room not found"


class PlayerNotFoundError(GameRuleError):
    code = GameErrorCode.PLAYER_NOT_FOUND
    default_message = "Player not found"


class NameTakenError(GameRuleError):
    code = GameErrorCode.NAME_TAKEN
    default_message = "Player name already taken"


class RoomFullError(GameRuleError):
    code = GameErrorCode.ROOM_FULL
    default_message = "Room is full"


class GameInProgressError(GameRuleError):
    code = GameErrorCode.GAME_IN_PROGRESS
    default_message = "Game already in progress"


class GameAlreadyStartedError(GameRuleError):
    code = GameErrorCode.GAME_ALREADY_STARTED
    default_message = "Cannot submit statements after the game has started"


class NotReadyError(GameRuleError):
    """Too few players, or a player has too few statements, to start."""

    code = GameErrorCode.NOT_READY
    default_message = "Not all players are ready"


class InvalidStatementError(GameRuleError):
    code = GameErrorCode.INVALID_STATEMENT
    default_message = "Invalid statement"


class DuplicateStatementError(GameRuleError):
    code = GameErrorCode.DUPLICATE_STATEMENT
    default_message = "You have already submitted this statement"


class StatementLimitReachedError(GameRuleError):
    code = GameErrorCode.STATEMENT_LIMIT_REACHED
    default_message = "Statement limit reached"


class GameNotActiveError(GameRuleError):
    code = GameErrorCode.GAME_NOT_ACTIVE
    default_message = "No active round"


class VotingClosedError(GameRuleError):
    code = GameErrorCode.VOTING_CLOSED
    default_message = "Voting already complete"


class SelfVoteError(GameRuleError):
    code = GameErrorCode.SELF_VOTE
    default_message = "Cannot vote on your own statement"


class AlreadyVotedError(GameRuleError):
    code = GameErrorCode.ALREADY_VOTED
    default_message = "Already voted this round"


class NotHostError(GameRuleError):
    code = GameErrorCode.NOT_HOST
    default_message = "Only the host can do that"


class NoRoundsRemainingError(GameRuleError):
    code = GameErrorCode.NO_ROUNDS_REMAINING
    default_message = "No more rounds available"


class RoundInProgressError(GameRuleError):
    """The current round is still collecting votes."""

    code = GameErrorCode.ROUND_IN_PROGRESS
    default_message = "The current round has not finished yet"


class ServerAtCapacityError(GameRuleError):
    code = GameErrorCode.SERVER_AT_CAPACITY
    default_message = "Server at capacity"


class AlreadyInRoomError(GameRuleError):
    code = GameErrorCode.ALREADY_IN_ROOM
    default_message = "You must leave your current room first"
