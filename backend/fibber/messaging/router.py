from __future__ import annotations

import contextlib
from typing import TYPE_CHECKING, Any

import structlog
from pydantic import BaseModel, ValidationError

from fibber.logic.exceptions import GameRuleError
from fibber.messaging.types import (
    CreateRoomMessage,
    ErrorMessage,
    GameEndedMessage,
    GameResetMessage,
    GameStartedMessage,
    JoinRoomMessage,
    LeaveRoomMessage,
    NextRoundMessage,
    PingMessage,
    PlayerDisconnectedMessage,
    PlayerJoinedMessage,
    PlayerLeftMessage,
    PlayerReconnectedMessage,
    PlayerUpdatedMessage,
    PongMessage,
    ReconnectedMessage,
    ReconnectMessage,
    ResetGameMessage,
    RoomCreatedMessage,
    RoomJoinedMessage,
    RoomLeftMessage,
    RoundEndedMessage,
    RoundStartedMessage,
    StartGameMessage,
    StatementSubmittedMessage,
    SubmitStatementMessage,
    SubmitVoteMessage,
    TransportErrorCode,
    VoteRecordedMessage,
    VoteStatusMessage,
    parse_client_message,
)
from fibber.session.broadcast import broadcast_to_connections

if TYPE_CHECKING:
    from fibber.logic.enums import GameErrorCode
    from fibber.logic.types import RoundResult
    from fibber.messaging.protocol import ConnectionProtocol
    from fibber.session.manager import SessionManager

logger = structlog.get_logger()


class MessageRouter:
    """
    Route client messages to the session manager and fan results out.

    The session manager only returns results; every send happens here,
    after the room lock has been released. This class owns the table of
    live connections and can be tested without real WebSocket connections.
    """

    def __init__(self, session_manager: SessionManager) -> None:
        self._session_manager = session_manager
        self._connections: dict[str, ConnectionProtocol] = {}

    def get_connection(self, connection_id: str) -> ConnectionProtocol | None:
        return self._connections.get(connection_id)

    async def handle_connect(self, connection: ConnectionProtocol) -> None:
        self._connections[connection.connection_id] = connection

    async def handle_disconnect(self, connection: ConnectionProtocol) -> None:
        self._connections.pop(connection.connection_id, None)
        result = await self._session_manager.disconnect(connection.connection_id)
        if result is None:
            return
        await self._broadcast(
            result.recipients,
            PlayerDisconnectedMessage(player=result.player, new_host=result.new_host),
        )

    async def handle_room_evicted(self, room_code: str, connection_ids: list[str]) -> None:
        """Close the sockets of players still connected to an evicted room."""
        for connection_id in connection_ids:
            connection = self._connections.get(connection_id)
            if connection is None:
                continue
            logger.info("closing connection of evicted room", room_code=room_code, connection_id=connection_id)
            with contextlib.suppress(RuntimeError, OSError):
                await connection.close(code=1000, reason="room_expired")

    async def handle_message(
        self,
        connection: ConnectionProtocol,
        raw_message: dict[str, Any],
    ) -> None:
        try:
            message = parse_client_message(raw_message)
        except ValidationError as e:
            logger.warning("invalid message", errors=e.error_count())
            await self._send_error(connection, TransportErrorCode.INVALID_MESSAGE, _summarize(e))
            return

        try:
            await self._dispatch(connection, message)
        except GameRuleError as e:
            logger.info("request rejected", error_code=e.code, reason=e.message, message_type=message.type)
            await self._send_error(connection, e.code, e.message)
        except Exception:
            logger.exception("failed to handle message", message_type=message.type)
            await self._send_error(connection, TransportErrorCode.INTERNAL_ERROR, "Internal server error")

    async def _dispatch(self, connection: ConnectionProtocol, message: BaseModel) -> None:
        if isinstance(message, CreateRoomMessage):
            await self._handle_create_room(connection, message)
        elif isinstance(message, JoinRoomMessage):
            await self._handle_join_room(connection, message)
        elif isinstance(message, SubmitStatementMessage):
            await self._handle_submit_statement(connection, message)
        elif isinstance(message, StartGameMessage):
            result = await self._session_manager.start_game(connection.connection_id)
            await self._broadcast(result.recipients, GameStartedMessage(room=result.room, round=result.round))
        elif isinstance(message, SubmitVoteMessage):
            await self._handle_submit_vote(connection, message)
        elif isinstance(message, NextRoundMessage):
            result = await self._session_manager.advance_round(connection.connection_id)
            await self._broadcast(result.recipients, RoundStartedMessage(room=result.room, round=result.round))
        elif isinstance(message, ResetGameMessage):
            result = await self._session_manager.reset_game(connection.connection_id)
            await self._broadcast(result.recipients, GameResetMessage(room=result.room))
        elif isinstance(message, ReconnectMessage):
            await self._handle_reconnect(connection, message)
        elif isinstance(message, LeaveRoomMessage):
            await self._handle_leave_room(connection)
        elif isinstance(message, PingMessage):
            await self._send(connection, PongMessage())

    async def _handle_create_room(self, connection: ConnectionProtocol, message: CreateRoomMessage) -> None:
        result = await self._session_manager.create_room(connection.connection_id, message.player_name)
        structlog.contextvars.bind_contextvars(room_code=result.room.room_code)
        await self._send(connection, RoomCreatedMessage(room=result.room, player=result.player))

    async def _handle_join_room(self, connection: ConnectionProtocol, message: JoinRoomMessage) -> None:
        result = await self._session_manager.join_room(
            connection.connection_id,
            message.room_code,
            message.player_name,
        )
        structlog.contextvars.bind_contextvars(room_code=result.room.room_code)
        await self._send(connection, RoomJoinedMessage(room=result.room, player=result.player))
        await self._broadcast(
            result.recipients,
            PlayerJoinedMessage(player=result.player.to_public(), room=result.room),
            exclude_connection_id=connection.connection_id,
        )

    async def _handle_submit_statement(self, connection: ConnectionProtocol, message: SubmitStatementMessage) -> None:
        result = await self._session_manager.submit_statement(connection.connection_id, message.statement)
        await self._send(connection, StatementSubmittedMessage(player=result.player, room=result.room))
        # other players only ever see the public view (statement count, readiness)
        public_player = result.player.to_public()
        await self._broadcast(
            result.recipients,
            PlayerUpdatedMessage(player=public_player, room=result.room),
            exclude_connection_id=connection.connection_id,
        )

    async def _handle_submit_vote(self, connection: ConnectionProtocol, message: SubmitVoteMessage) -> None:
        result = await self._session_manager.submit_vote(connection.connection_id, message.vote)
        await self._send(connection, VoteRecordedMessage(vote=message.vote))
        await self._broadcast(result.recipients, VoteStatusMessage(**result.status.model_dump()))
        if result.round_result is not None:
            await self._announce_round_end(result.recipients, result.round_result)

    async def _handle_reconnect(self, connection: ConnectionProtocol, message: ReconnectMessage) -> None:
        result = await self._session_manager.reconnect(
            connection.connection_id,
            message.room_code,
            message.player_name,
        )
        structlog.contextvars.bind_contextvars(room_code=result.snapshot.room.room_code)
        if result.previous_connection_id is not None:
            stale = self._connections.get(result.previous_connection_id)
            if stale is not None:
                with contextlib.suppress(RuntimeError, OSError):
                    await stale.close(code=1000, reason="replaced_by_reconnect")
        await self._send(connection, ReconnectedMessage(**result.snapshot.model_dump()))
        await self._broadcast(
            result.recipients,
            PlayerReconnectedMessage(player=result.snapshot.player.to_public(), new_host=result.new_host),
            exclude_connection_id=connection.connection_id,
        )

    async def _handle_leave_room(self, connection: ConnectionProtocol) -> None:
        result = await self._session_manager.leave_room(connection.connection_id)
        structlog.contextvars.unbind_contextvars("room_code")
        with contextlib.suppress(RuntimeError, OSError):
            await self._send(connection, RoomLeftMessage(room_code=result.room_code))
        if result.room is None:
            return
        await self._broadcast(
            result.recipients,
            PlayerLeftMessage(
                player=result.player,
                room=result.room,
                new_host=result.new_host,
                round_abandoned=result.round_abandoned,
            ),
        )
        if result.round_result is not None:
            await self._announce_round_end(result.recipients, result.round_result)
        elif result.game_end is not None:
            await self._broadcast(result.recipients, GameEndedMessage(**result.game_end.model_dump()))

    async def _announce_round_end(self, recipients: list[str], round_result: RoundResult) -> None:
        await self._broadcast(recipients, RoundEndedMessage(**round_result.model_dump()))
        if round_result.game_end is not None:
            await self._broadcast(recipients, GameEndedMessage(**round_result.game_end.model_dump()))

    async def _broadcast(
        self,
        recipients: list[str],
        message: BaseModel,
        exclude_connection_id: str | None = None,
    ) -> None:
        await broadcast_to_connections(self._connections, recipients, message.model_dump(), exclude_connection_id)

    @staticmethod
    async def _send(connection: ConnectionProtocol, message: BaseModel) -> None:
        await connection.send_message(message.model_dump())

    @staticmethod
    async def _send_error(
        connection: ConnectionProtocol,
        code: GameErrorCode | TransportErrorCode,
        message: str,
    ) -> None:
        await connection.send_message(ErrorMessage(code=code, message=message).model_dump())


def _summarize(error: ValidationError) -> str:
    first = error.errors()[0]
    location = ".".join(str(part) for part in first["loc"])
    return f"{location}: {first['msg']}" if location else first["msg"]
