"""
Pydantic models for the session layer.

Every SessionManager operation returns one of these results. ``recipients``
is a snapshot, taken under the room lock, of the connection ids of the
room's connected players; the router broadcasts to it after the lock is
released.
"""

from pydantic import BaseModel

from fibber.logic.enums import RoomPhase
from fibber.logic.types import (
    GameEndResult,
    PlayerView,
    PrivatePlayerView,
    ReconnectionSnapshot,
    RoomStats,
    RoomView,
    RoundResult,
    RoundView,
    VoteStatus,
)


class RoomInfo(BaseModel):
    """Room information for the status endpoint."""

    room_code: str
    phase: RoomPhase
    player_count: int
    connected_count: int
    max_players: int
    players: list[str]
    stats: RoomStats


class RoomEntryResult(BaseModel):
    """A player entered a room, either by creating it or by joining it."""

    room: RoomView
    player: PrivatePlayerView
    recipients: list[str]


class StatementResult(BaseModel):
    room: RoomView
    player: PrivatePlayerView
    recipients: list[str]


class RoundStartResult(BaseModel):
    """A new round is on the table, at game start or after an advance."""

    room: RoomView
    round: RoundView
    recipients: list[str]


class VoteResult(BaseModel):
    voter: PlayerView
    status: VoteStatus
    round_result: RoundResult | None = None  # set when this vote closed the round
    recipients: list[str]


class ResetResult(BaseModel):
    room: RoomView
    recipients: list[str]


class LeaveResult(BaseModel):
    room_code: str
    player: PlayerView
    room: RoomView | None  # None when the room was deleted
    new_host: PlayerView | None = None
    round_abandoned: bool = False
    round_result: RoundResult | None = None
    game_end: GameEndResult | None = None
    recipients: list[str]


class DisconnectResult(BaseModel):
    room_code: str
    player: PlayerView
    new_host: PlayerView | None = None
    recipients: list[str]


class ReconnectResult(BaseModel):
    snapshot: ReconnectionSnapshot
    previous_connection_id: str | None = None
    new_host: PlayerView | None = None
    recipients: list[str]
