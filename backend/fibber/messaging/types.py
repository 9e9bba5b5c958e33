from enum import StrEnum
from typing import Annotated, Any, Literal

from pydantic import BaseModel, Field, TypeAdapter, field_validator

from fibber.logic.enums import GameErrorCode, Vote
from fibber.logic.types import (
    GameEndResult,
    PlayerView,
    PrivatePlayerView,
    ReconnectionSnapshot,
    RoomView,
    RoundResult,
    RoundView,
    VoteStatus,
)

# ASCII control character boundaries for input validation
_SPACE_ORD = 0x20
_DEL_ORD = 0x7F

_ROOM_CODE_PATTERN = r"^[A-Z0-9]{6}$"
_PLAYER_NAME_PATTERN = r"^[a-zA-Z0-9 _-]+$"


class ClientMessageType(StrEnum):
    CREATE_ROOM = "create_room"
    JOIN_ROOM = "join_room"
    SUBMIT_STATEMENT = "submit_statement"
    START_GAME = "start_game"
    SUBMIT_VOTE = "submit_vote"
    NEXT_ROUND = "next_round"
    RESET_GAME = "reset_game"
    RECONNECT = "reconnect"
    LEAVE_ROOM = "leave_room"
    PING = "ping"


class ServerMessageType(StrEnum):
    ROOM_CREATED = "room_created"
    ROOM_JOINED = "room_joined"
    ROOM_LEFT = "room_left"
    PLAYER_JOINED = "player_joined"
    STATEMENT_SUBMITTED = "statement_submitted"
    PLAYER_UPDATED = "player_updated"
    GAME_STARTED = "game_started"
    VOTE_RECORDED = "vote_recorded"
    VOTE_STATUS = "vote_status"
    ROUND_ENDED = "round_ended"
    GAME_ENDED = "game_ended"
    ROUND_STARTED = "round_started"
    GAME_RESET = "game_reset"
    PLAYER_LEFT = "player_left"
    PLAYER_DISCONNECTED = "player_disconnected"
    PLAYER_RECONNECTED = "player_reconnected"
    RECONNECTED = "reconnected"
    ERROR = "error"
    PONG = "pong"


class TransportErrorCode(StrEnum):
    """Error codes produced by the transport rather than by game rules."""

    INVALID_MESSAGE = "invalid_message"
    RATE_LIMITED = "rate_limited"
    INTERNAL_ERROR = "internal_error"


class _RoomCodeMixin(BaseModel):
    room_code: str = Field(pattern=_ROOM_CODE_PATTERN)

    @field_validator("room_code", mode="before")
    @classmethod
    def _normalize_room_code(cls, v: object) -> object:
        return v.strip().upper() if isinstance(v, str) else v


class _PlayerNameMixin(BaseModel):
    player_name: str = Field(min_length=1, max_length=50, pattern=_PLAYER_NAME_PATTERN)

    @field_validator("player_name", mode="before")
    @classmethod
    def _strip_player_name(cls, v: object) -> object:
        return v.strip() if isinstance(v, str) else v


class CreateRoomMessage(_PlayerNameMixin):
    type: Literal[ClientMessageType.CREATE_ROOM] = ClientMessageType.CREATE_ROOM


class JoinRoomMessage(_RoomCodeMixin, _PlayerNameMixin):
    type: Literal[ClientMessageType.JOIN_ROOM] = ClientMessageType.JOIN_ROOM


class SubmitStatementMessage(BaseModel):
    type: Literal[ClientMessageType.SUBMIT_STATEMENT] = ClientMessageType.SUBMIT_STATEMENT
    statement: str = Field(min_length=1, max_length=1000)

    @field_validator("statement")
    @classmethod
    def _validate_statement(cls, v: str) -> str:
        if any((ord(c) < _SPACE_ORD and c not in ("\t", "\n", "\r")) or ord(c) == _DEL_ORD for c in v):
            raise ValueError("statement must not contain control characters")
        return v


class StartGameMessage(BaseModel):
    type: Literal[ClientMessageType.START_GAME] = ClientMessageType.START_GAME


class SubmitVoteMessage(BaseModel):
    type: Literal[ClientMessageType.SUBMIT_VOTE] = ClientMessageType.SUBMIT_VOTE
    vote: Vote


class NextRoundMessage(BaseModel):
    type: Literal[ClientMessageType.NEXT_ROUND] = ClientMessageType.NEXT_ROUND


class ResetGameMessage(BaseModel):
    type: Literal[ClientMessageType.RESET_GAME] = ClientMessageType.RESET_GAME


class ReconnectMessage(_RoomCodeMixin, _PlayerNameMixin):
    type: Literal[ClientMessageType.RECONNECT] = ClientMessageType.RECONNECT


class LeaveRoomMessage(BaseModel):
    type: Literal[ClientMessageType.LEAVE_ROOM] = ClientMessageType.LEAVE_ROOM


class PingMessage(BaseModel):
    type: Literal[ClientMessageType.PING] = ClientMessageType.PING


ClientMessage = Annotated[
    CreateRoomMessage
    | JoinRoomMessage
    | SubmitStatementMessage
    | StartGameMessage
    | SubmitVoteMessage
    | NextRoundMessage
    | ResetGameMessage
    | ReconnectMessage
    | LeaveRoomMessage
    | PingMessage,
    Field(discriminator="type"),
]

_client_message_adapter = TypeAdapter(ClientMessage)


def parse_client_message(data: dict[str, Any]) -> ClientMessage:
    """Parse a raw dict into a typed client message (raises ValidationError)."""
    return _client_message_adapter.validate_python(data)


# --- Server messages ---


class RoomCreatedMessage(BaseModel):
    type: Literal[ServerMessageType.ROOM_CREATED] = ServerMessageType.ROOM_CREATED
    room: RoomView
    player: PrivatePlayerView


class RoomJoinedMessage(BaseModel):
    type: Literal[ServerMessageType.ROOM_JOINED] = ServerMessageType.ROOM_JOINED
    room: RoomView
    player: PrivatePlayerView


class RoomLeftMessage(BaseModel):
    type: Literal[ServerMessageType.ROOM_LEFT] = ServerMessageType.ROOM_LEFT
    room_code: str


class PlayerJoinedMessage(BaseModel):
    type: Literal[ServerMessageType.PLAYER_JOINED] = ServerMessageType.PLAYER_JOINED
    player: PlayerView
    room: RoomView


class StatementSubmittedMessage(BaseModel):
    """Sent to the submitter only; carries their own statement list."""

    type: Literal[ServerMessageType.STATEMENT_SUBMITTED] = ServerMessageType.STATEMENT_SUBMITTED
    player: PrivatePlayerView
    room: RoomView


class PlayerUpdatedMessage(BaseModel):
    type: Literal[ServerMessageType.PLAYER_UPDATED] = ServerMessageType.PLAYER_UPDATED
    player: PlayerView
    room: RoomView


class GameStartedMessage(BaseModel):
    type: Literal[ServerMessageType.GAME_STARTED] = ServerMessageType.GAME_STARTED
    room: RoomView
    round: RoundView


class VoteRecordedMessage(BaseModel):
    type: Literal[ServerMessageType.VOTE_RECORDED] = ServerMessageType.VOTE_RECORDED
    vote: Vote


class VoteStatusMessage(VoteStatus):
    """Vote progress for the whole room; never says who voted what."""

    type: Literal[ServerMessageType.VOTE_STATUS] = ServerMessageType.VOTE_STATUS


class RoundEndedMessage(RoundResult):
    type: Literal[ServerMessageType.ROUND_ENDED] = ServerMessageType.ROUND_ENDED


class GameEndedMessage(GameEndResult):
    type: Literal[ServerMessageType.GAME_ENDED] = ServerMessageType.GAME_ENDED


class RoundStartedMessage(BaseModel):
    type: Literal[ServerMessageType.ROUND_STARTED] = ServerMessageType.ROUND_STARTED
    room: RoomView
    round: RoundView


class GameResetMessage(BaseModel):
    type: Literal[ServerMessageType.GAME_RESET] = ServerMessageType.GAME_RESET
    room: RoomView


class PlayerLeftMessage(BaseModel):
    type: Literal[ServerMessageType.PLAYER_LEFT] = ServerMessageType.PLAYER_LEFT
    player: PlayerView
    room: RoomView
    new_host: PlayerView | None = None
    round_abandoned: bool = False


class PlayerDisconnectedMessage(BaseModel):
    type: Literal[ServerMessageType.PLAYER_DISCONNECTED] = ServerMessageType.PLAYER_DISCONNECTED
    player: PlayerView
    new_host: PlayerView | None = None


class PlayerReconnectedMessage(BaseModel):
    """Broadcast to other players when a player reconnects."""

    type: Literal[ServerMessageType.PLAYER_RECONNECTED] = ServerMessageType.PLAYER_RECONNECTED
    player: PlayerView
    new_host: PlayerView | None = None


class ReconnectedMessage(ReconnectionSnapshot):
    """Room snapshot sent to the reconnecting player."""

    type: Literal[ServerMessageType.RECONNECTED] = ServerMessageType.RECONNECTED


class ErrorMessage(BaseModel):
    type: Literal[ServerMessageType.ERROR] = ServerMessageType.ERROR
    code: GameErrorCode | TransportErrorCode
    message: str


class PongMessage(BaseModel):
    type: Literal[ServerMessageType.PONG] = ServerMessageType.PONG
