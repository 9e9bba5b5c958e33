from enum import StrEnum


class RoomPhase(StrEnum):
    """Lifecycle phase of a room."""

    LOBBY = "lobby"
    PLAYING = "playing"
    COMPLETE = "complete"


class Vote(StrEnum):
    """A voter's guess about the current round's statement."""

    TRUTH = "truth"
    LIE = "lie"


class GameErrorCode(StrEnum):
    """Error codes sent to clients when a request breaks a game rule."""

    ROOM_NOT_FOUND = "room_not_found"
    PLAYER_NOT_FOUND = "player_not_found"
    NAME_TAKEN = "name_taken"
    ROOM_FULL = "room_full"
    GAME_IN_PROGRESS = "game_in_progress"
    GAME_ALREADY_STARTED = "game_already_started"
    NOT_READY = "not_ready"
    INVALID_STATEMENT = "invalid_statement"
    DUPLICATE_STATEMENT = "duplicate_statement"
    STATEMENT_LIMIT_REACHED = "statement_limit_reached"
    GAME_NOT_ACTIVE = "game_not_active"
    VOTING_CLOSED = "voting_closed"
    SELF_VOTE = "self_vote"
    ALREADY_VOTED = "already_voted"
    NOT_HOST = "not_host"
    NO_ROUNDS_REMAINING = "no_rounds_remaining"
    ROUND_IN_PROGRESS = "round_in_progress"
    SERVER_AT_CAPACITY = "server_at_capacity"
    ALREADY_IN_ROOM = "already_in_room"
