"""Room registry and game orchestration.

SessionManager owns the only cross-room state in the process: the
room-code -> Room map, the per-room locks and the connection-id ->
(room code, player id) bindings. Every state change runs under the room's
asyncio.Lock and never awaits I/O while holding it; results carry a
snapshot of recipients so the router can broadcast after release.

Lock order is always room lock, then registry lock.
"""

from __future__ import annotations

import asyncio
import contextlib
import secrets
import string
import time
from typing import TYPE_CHECKING, Any

import structlog

from fibber.logic import tally
from fibber.logic.enums import RoomPhase
from fibber.logic.exceptions import (
    AlreadyInRoomError,
    GameAlreadyStartedError,
    NoRoundsRemainingError,
    NotHostError,
    PlayerNotFoundError,
    RoomNotFoundError,
    ServerAtCapacityError,
)
from fibber.logic.lies import TemplateLieGenerator
from fibber.logic.rng import create_round_rng
from fibber.logic.room import Room
from fibber.logic.selector import RoundSelector
from fibber.logic.settings import GameSettings
from fibber.logic.types import ReconnectionSnapshot
from fibber.session.types import (
    DisconnectResult,
    LeaveResult,
    ReconnectResult,
    ResetResult,
    RoomEntryResult,
    RoomInfo,
    RoundStartResult,
    StatementResult,
    VoteResult,
)

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Callable, Coroutine

    from fibber.logic.enums import Vote
    from fibber.logic.player import Player

logger = structlog.get_logger()

ROOM_CODE_LENGTH = 6
ROOM_CODE_ALPHABET = string.ascii_uppercase + string.digits
_MAX_CODE_ATTEMPTS = 100


def generate_room_code() -> str:
    return "".join(secrets.choice(ROOM_CODE_ALPHABET) for _ in range(ROOM_CODE_LENGTH))


class SessionManager:
    """Orchestrate rooms: roster changes, rounds, votes and idle eviction.

    ``on_room_evicted`` is awaited after the reaper removes a room, with the
    room code and the connection ids of players that were still connected,
    so the transport can close their sockets.
    """

    def __init__(
        self,
        settings: GameSettings | None = None,
        *,
        selector: RoundSelector | None = None,
        max_rooms: int = 100,
        room_idle_ttl_seconds: float = 7200,
        abandoned_room_grace_seconds: float = 300,
        reaper_interval_seconds: float = 60,
        code_factory: Callable[[], str] = generate_room_code,
        on_room_evicted: Callable[[str, list[str]], Coroutine[Any, Any, None]] | None = None,
    ) -> None:
        self._settings = settings or GameSettings()
        if selector is None:
            rng = create_round_rng()
            selector = RoundSelector(TemplateLieGenerator(rng), rng)
        self._selector = selector
        self._max_rooms = max_rooms
        self._room_idle_ttl_seconds = room_idle_ttl_seconds
        self._abandoned_room_grace_seconds = abandoned_room_grace_seconds
        self._reaper_interval_seconds = reaper_interval_seconds
        self._code_factory = code_factory
        self.on_room_evicted = on_room_evicted
        self._rooms: dict[str, Room] = {}
        self._room_locks: dict[str, asyncio.Lock] = {}
        self._connections: dict[str, tuple[str, str]] = {}  # connection_id -> (room_code, player_id)
        self._registry_lock = asyncio.Lock()
        self._room_reaper_task: asyncio.Task[None] | None = None
        self._games_played = 0

    # --- Read-only queries ---

    def get_room(self, room_code: str) -> Room | None:
        return self._rooms.get(room_code)

    def get_binding(self, connection_id: str) -> tuple[str, str] | None:
        return self._connections.get(connection_id)

    @property
    def room_count(self) -> int:
        return len(self._rooms)

    @property
    def player_count(self) -> int:
        return sum(room.player_count for room in self._rooms.values())

    @property
    def connected_player_count(self) -> int:
        return len(self._connections)

    @property
    def games_played(self) -> int:
        return self._games_played

    @property
    def max_rooms(self) -> int:
        return self._max_rooms

    def get_rooms_info(self) -> list[RoomInfo]:
        return [
            RoomInfo(
                room_code=room.code,
                phase=room.phase,
                player_count=room.player_count,
                connected_count=room.connected_count,
                max_players=room.settings.max_players,
                players=[p.display_name for p in room.players.values()],
                stats=room.stats(),
            )
            for room in list(self._rooms.values())
        ]

    # --- Room entry ---

    async def create_room(self, connection_id: str, player_name: str) -> RoomEntryResult:
        """Create a room with the caller as host."""
        async with self._registry_lock:
            if connection_id in self._connections:
                raise AlreadyInRoomError
            if len(self._rooms) >= self._max_rooms:
                raise ServerAtCapacityError("Server is at capacity, please try again later")
            room = Room(code=self._allocate_code(), settings=self._settings)
            player = room.add_player(connection_id, player_name, is_host=True)
            self._rooms[room.code] = room
            self._room_locks[room.code] = asyncio.Lock()
            self._connections[connection_id] = (room.code, player.id)
            result = RoomEntryResult(
                room=room.to_view(),
                player=player.to_private_view(room.settings),
                recipients=_recipients(room),
            )
        logger.info("room created", room_code=room.code, host=player.display_name)
        return result

    async def join_room(self, connection_id: str, room_code: str, player_name: str) -> RoomEntryResult:
        if connection_id in self._connections:
            raise AlreadyInRoomError
        async with self._locked_room(room_code) as room:
            player = room.add_player(connection_id, player_name)
            async with self._registry_lock:
                self._connections[connection_id] = (room.code, player.id)
            result = RoomEntryResult(
                room=room.to_view(),
                player=player.to_private_view(room.settings),
                recipients=_recipients(room),
            )
        logger.info("player joined room", room_code=room_code, player_name=player.display_name)
        return result

    # --- Lobby ---

    async def submit_statement(self, connection_id: str, text: str) -> StatementResult:
        async with self._locked_player(connection_id) as (room, player):
            if room.phase != RoomPhase.LOBBY:
                raise GameAlreadyStartedError
            player.add_statement(text, room.settings)
            room.touch()
            return StatementResult(
                room=room.to_view(),
                player=player.to_private_view(room.settings),
                recipients=_recipients(room),
            )

    async def start_game(self, connection_id: str) -> RoundStartResult:
        """Start (or restart after completion) the game and deal the first round."""
        async with self._locked_player(connection_id) as (room, player):
            if not player.is_host:
                raise NotHostError("Only the host can start the game")
            previous_phase = room.phase
            previous_round_number = room.round_number
            previous_round = room.current_round
            previous_players = {p.id: (p.score, set(p.used_statement_indices)) for p in room.players.values()}
            room.start_game()
            try:
                first_round = self._selector.prepare_next_round(room)
            except Exception:
                # restore the finished game's scoreboard and usage history
                for player_id, (score, used) in previous_players.items():
                    room.players[player_id].score = score
                    room.players[player_id].used_statement_indices = used
                room.phase = previous_phase
                room.round_number = previous_round_number
                room.current_round = previous_round
                raise
            if first_round is None:
                room.complete_game()
                raise NoRoundsRemainingError
            self._games_played += 1
            result = RoundStartResult(
                room=room.to_view(),
                round=room.round_view(),
                recipients=_recipients(room),
            )
        logger.info("game started", room_code=room.code, player_count=room.player_count)
        return result

    async def reset_game(self, connection_id: str) -> ResetResult:
        async with self._locked_player(connection_id) as (room, player):
            if not player.is_host:
                raise NotHostError("Only the host can reset the game")
            room.reset_game()
            result = ResetResult(room=room.to_view(), recipients=_recipients(room))
        logger.info("game reset", room_code=room.code)
        return result

    # --- Rounds ---

    async def submit_vote(self, connection_id: str, vote: Vote) -> VoteResult:
        """Record a vote; the vote that completes the tally also resolves the round.

        Recording and resolving share one critical section, so a round
        resolves exactly once however many votes arrive together.
        """
        async with self._locked_player(connection_id) as (room, player):
            status = tally.submit_vote(room, player.id, vote)
            round_result = tally.resolve_round(room) if status.all_votes_in else None
            result = VoteResult(
                voter=player.to_view(room.settings),
                status=status,
                round_result=round_result,
                recipients=_recipients(room),
            )
        if round_result is not None:
            logger.info(
                "round resolved",
                room_code=room.code,
                round_number=round_result.round_number,
                is_truth=round_result.is_truth,
                game_complete=round_result.game_complete,
            )
        return result

    async def advance_round(self, connection_id: str) -> RoundStartResult:
        async with self._locked_player(connection_id) as (room, _player):
            tally.advance_round(room, self._selector)
            return RoundStartResult(
                room=room.to_view(),
                round=room.round_view(),
                recipients=_recipients(room),
            )

    # --- Leaving and reconnecting ---

    async def leave_room(self, connection_id: str) -> LeaveResult:
        """Remove the caller from their room for good.

        During play the leaver's vote is dropped. If they were the acting
        player the round is abandoned unscored; otherwise the round resolves
        when the remaining votes complete the tally. Fewer than the minimum
        number of players ends the game, and an empty room is deleted.
        """
        async with self._locked_player(connection_id) as (room, player):
            previous_host = room.host
            was_playing = room.is_playing
            current = room.current_round
            room.remove_player(player.id)
            player.is_connected = False
            async with self._registry_lock:
                self._connections.pop(connection_id, None)
                if room.is_empty:
                    self._rooms.pop(room.code, None)

            result = LeaveResult(
                room_code=room.code,
                player=player.to_view(room.settings),
                room=None,
                recipients=_recipients(room),
            )
            new_host = room.host
            if new_host is not None and new_host is not previous_host:
                result.new_host = new_host.to_view(room.settings)

            if not room.is_empty:
                if was_playing and current is not None and not current.closed:
                    current.votes.pop(player.id, None)
                    too_few = room.player_count < room.settings.min_players
                    if too_few or current.acting_player_id == player.id:
                        tally.abandon_round(room)
                        result.round_abandoned = True
                    elif tally.vote_status(room).all_votes_in:
                        result.round_result = tally.resolve_round(room)
                if room.is_playing and room.player_count < room.settings.min_players:
                    room.complete_game()
                if was_playing and room.is_complete:
                    result.game_end = tally.game_end_result(room)
                result.room = room.to_view()

        if room.is_empty:
            self._room_locks.pop(room.code, None)
            logger.info("room deleted", room_code=room.code)
        logger.info("player left room", room_code=room.code, player_name=player.display_name)
        return result

    async def disconnect(self, connection_id: str) -> DisconnectResult | None:
        """Mark the player behind a closed socket as disconnected.

        The player keeps their seat, score and turn slot. Unknown connection
        ids are ignored.
        """
        binding = self._connections.get(connection_id)
        if binding is None:
            return None
        try:
            async with self._locked_player(connection_id) as (room, player):
                player.is_connected = False
                new_host = room.transfer_host_from(player)
                room.touch()
                async with self._registry_lock:
                    self._connections.pop(connection_id, None)
                result = DisconnectResult(
                    room_code=room.code,
                    player=player.to_view(room.settings),
                    new_host=new_host.to_view(room.settings) if new_host is not None else None,
                    recipients=_recipients(room),
                )
        except (RoomNotFoundError, PlayerNotFoundError):
            async with self._registry_lock:
                if self._connections.get(connection_id) == binding:
                    self._connections.pop(connection_id, None)
            return None
        logger.info("player disconnected", room_code=room.code, player_name=player.display_name)
        return result

    async def reconnect(self, connection_id: str, room_code: str, player_name: str) -> ReconnectResult:
        """Rebind an existing player (matched by name) to a new connection.

        Any connection still bound to that player is released. If the host
        flag sits with a disconnected player, it moves to the reconnecting
        one so the room always has a host who can act.
        """
        binding = self._connections.get(connection_id)
        async with self._locked_room(room_code) as room:
            player = room.get_player_by_name(player_name)
            if player is None:
                raise PlayerNotFoundError("Player not found in room")
            if binding is not None and binding != (room.code, player.id):
                raise AlreadyInRoomError
            previous_connection_id = player.connection_id if player.connection_id != connection_id else None
            player.connection_id = connection_id
            player.is_connected = True
            new_host = None
            host = room.host
            if host is not None and not host.is_connected:
                host.is_host = False
                player.is_host = True
                new_host = player.to_view(room.settings)
            room.touch()
            async with self._registry_lock:
                if previous_connection_id is not None:
                    if self._connections.get(previous_connection_id) == (room.code, player.id):
                        self._connections.pop(previous_connection_id, None)
                self._connections[connection_id] = (room.code, player.id)
            result = ReconnectResult(
                snapshot=ReconnectionSnapshot(
                    room=room.to_view(),
                    player=player.to_private_view(room.settings),
                    current_round=room.round_view() if room.is_playing else None,
                    scoreboard=room.scoreboard(),
                ),
                previous_connection_id=previous_connection_id,
                new_host=new_host,
                recipients=_recipients(room),
            )
        logger.info("player reconnected", room_code=room.code, player_name=player.display_name)
        return result

    # --- Room reaper ---

    def start_room_reaper(self) -> None:
        """Start the periodic room reaper task. Idempotent."""
        if self._room_idle_ttl_seconds <= 0 and self._abandoned_room_grace_seconds <= 0:
            return
        if self._room_reaper_task is not None and not self._room_reaper_task.done():
            return
        self._room_reaper_task = asyncio.create_task(self._room_reaper_loop())

    async def stop_room_reaper(self) -> None:
        if self._room_reaper_task is not None:
            self._room_reaper_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._room_reaper_task
            self._room_reaper_task = None

    async def _room_reaper_loop(self) -> None:
        while True:
            await asyncio.sleep(self._reaper_interval_seconds)
            try:
                await self.reap_idle_rooms()
            except Exception:
                logger.exception("room reaper encountered an error")

    def _is_evictable(self, room: Room, now: float) -> bool:
        idle = now - room.last_activity_at
        if self._room_idle_ttl_seconds > 0 and idle > self._room_idle_ttl_seconds:
            return True
        return (
            self._abandoned_room_grace_seconds > 0
            and room.connected_count == 0
            and idle > self._abandoned_room_grace_seconds
        )

    async def reap_idle_rooms(self, now: float | None = None) -> list[str]:
        """Evict idle and abandoned rooms. Return the evicted room codes.

        Candidates are re-checked under the room lock, so a room that saw
        activity while the sweep waited for the lock survives.
        """
        checked_at = time.monotonic() if now is None else now
        candidates = [room.code for room in list(self._rooms.values()) if self._is_evictable(room, checked_at)]
        evicted: list[str] = []
        for room_code in candidates:
            room_lock = self._room_locks.get(room_code)
            if room_lock is None:
                continue
            async with room_lock:
                room = self._rooms.get(room_code)
                if room is None or not self._is_evictable(room, checked_at):
                    continue
                still_connected = _recipients(room)
                async with self._registry_lock:
                    self._rooms.pop(room_code, None)
                    for player in room.players.values():
                        if self._connections.get(player.connection_id) == (room_code, player.id):
                            self._connections.pop(player.connection_id, None)
                logger.info(
                    "room evicted",
                    room_code=room_code,
                    idle_seconds=round(checked_at - room.last_activity_at),
                    player_count=room.player_count,
                )
                room.players.clear()
            self._room_locks.pop(room_code, None)
            evicted.append(room_code)
            if self.on_room_evicted is not None and still_connected:
                await self.on_room_evicted(room_code, still_connected)
        return evicted

    # --- Internal helpers ---

    def _allocate_code(self) -> str:
        for _ in range(_MAX_CODE_ATTEMPTS):
            code = self._code_factory()
            if code not in self._rooms:
                return code
        raise ServerAtCapacityError("Could not allocate a room code")

    @contextlib.asynccontextmanager
    async def _locked_room(self, room_code: str) -> AsyncIterator[Room]:
        """Hold the room lock, re-checking that the room survived the wait."""
        room_lock = self._room_locks.get(room_code)
        if room_lock is None:
            raise RoomNotFoundError
        async with room_lock:
            room = self._rooms.get(room_code)
            # a recycled code maps to a new room guarded by a different lock
            if room is None or self._room_locks.get(room_code) is not room_lock:
                raise RoomNotFoundError
            yield room

    @contextlib.asynccontextmanager
    async def _locked_player(self, connection_id: str) -> AsyncIterator[tuple[Room, Player]]:
        """Hold the lock of the caller's room and yield the room and the caller."""
        binding = self._connections.get(connection_id)
        if binding is None:
            raise PlayerNotFoundError("You are not in a room")
        room_code, player_id = binding
        async with self._locked_room(room_code) as room:
            player = room.get_player(player_id)
            if player is None or self._connections.get(connection_id) != binding:
                raise PlayerNotFoundError("You are not in a room")
            yield room, player


def _recipients(room: Room) -> list[str]:
    return [p.connection_id for p in room.players.values() if p.is_connected]
