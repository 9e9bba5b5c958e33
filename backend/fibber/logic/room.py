import time
from dataclasses import dataclass, field

from fibber.logic.enums import RoomPhase
from fibber.logic.exceptions import (
    GameInProgressError,
    NameTakenError,
    NotReadyError,
    RoomFullError,
)
from fibber.logic.player import Player
from fibber.logic.round import Round
from fibber.logic.settings import GameSettings
from fibber.logic.types import RoomStats, RoomView, RoundView, ScoreEntry


@dataclass
class Room:
    """One isolated game session identified by a short code.

    Holds the roster (player_id -> Player, in join order), the phase, the
    round counter and the round currently on the table. Room methods are
    plain state transitions; callers serialize access with the room lock
    owned by the session manager.
    """

    code: str
    settings: GameSettings = field(default_factory=GameSettings)
    players: dict[str, Player] = field(default_factory=dict)  # player_id -> Player
    phase: RoomPhase = RoomPhase.LOBBY
    round_number: int = 1
    current_round: Round | None = None
    created_at: float = field(default_factory=time.monotonic)
    last_activity_at: float = field(default_factory=time.monotonic)

    def touch(self) -> None:
        self.last_activity_at = time.monotonic()

    # --- Roster ---

    @property
    def player_count(self) -> int:
        return len(self.players)

    @property
    def is_empty(self) -> bool:
        return self.player_count == 0

    @property
    def is_full(self) -> bool:
        return self.player_count >= self.settings.max_players

    @property
    def connected_count(self) -> int:
        return sum(1 for p in self.players.values() if p.is_connected)

    @property
    def host(self) -> Player | None:
        return next((p for p in self.players.values() if p.is_host), None)

    def get_player(self, player_id: str) -> Player | None:
        return self.players.get(player_id)

    def get_player_by_name(self, name: str) -> Player | None:
        key = name.casefold()
        return next((p for p in self.players.values() if p.name_key == key), None)

    def add_player(self, connection_id: str, name: str, *, is_host: bool = False) -> Player:
        """Seat a new player. The first player of an empty room always becomes host."""
        if self.phase != RoomPhase.LOBBY:
            raise GameInProgressError
        if self.is_full:
            raise RoomFullError
        if self.get_player_by_name(name) is not None:
            raise NameTakenError
        becomes_host = self.host is None and (is_host or self.is_empty)
        player = Player(connection_id=connection_id, display_name=name, is_host=becomes_host)
        self.players[player.id] = player
        self.touch()
        return player

    def remove_player(self, player_id: str) -> Player | None:
        """Remove a player; the host flag passes to the next player in join order."""
        player = self.players.pop(player_id, None)
        if player is None:
            return None
        if player.is_host:
            player.is_host = False
            successor = next(iter(self.players.values()), None)
            if successor is not None:
                successor.is_host = True
        self.touch()
        return player

    def transfer_host_from(self, player: Player) -> Player | None:
        """Pass the host flag from a disconnected host to the first connected player.

        Returns the new host, or None when nobody else is connected (the
        flag then stays where it is).
        """
        if not player.is_host:
            return None
        successor = next(
            (p for p in self.players.values() if p.id != player.id and p.is_connected),
            None,
        )
        if successor is None:
            return None
        player.is_host = False
        successor.is_host = True
        return successor

    # --- Game lifecycle ---

    def all_players_ready(self) -> bool:
        if self.player_count < self.settings.min_players:
            return False
        return all(p.is_ready(self.settings) for p in self.players.values())

    def start_game(self) -> None:
        """Move the room into play. The caller installs the first round."""
        if self.phase == RoomPhase.PLAYING:
            raise GameInProgressError
        if self.player_count < self.settings.min_players:
            raise NotReadyError(f"Need at least {self.settings.min_players} players to start")
        if not self.all_players_ready():
            raise NotReadyError(
                f"All players must submit at least {self.settings.min_statements_to_be_ready} statements",
            )
        for player in self.players.values():
            player.reset_for_new_game()
        self.phase = RoomPhase.PLAYING
        self.round_number = 1
        self.current_round = None
        self.touch()

    def reset_game(self) -> None:
        """Return to the lobby, clearing statements, scores and usage history."""
        for player in self.players.values():
            player.reset_for_new_game()
            player.clear_statements()
        self.phase = RoomPhase.LOBBY
        self.round_number = 1
        self.current_round = None
        self.touch()

    def complete_game(self) -> None:
        self.phase = RoomPhase.COMPLETE
        self.touch()

    @property
    def is_playing(self) -> bool:
        return self.phase == RoomPhase.PLAYING

    @property
    def is_complete(self) -> bool:
        return self.phase == RoomPhase.COMPLETE

    @property
    def total_voters(self) -> int:
        return max(self.player_count - 1, 0)

    def statements_exhausted(self) -> bool:
        """True when no player has an unused statement left."""
        return not any(p.has_unused_statements for p in self.players.values())

    # --- Views ---

    def scoreboard(self) -> list[ScoreEntry]:
        """Players by descending score; ties keep join order."""
        ranked = sorted(self.players.values(), key=lambda p: p.score, reverse=True)
        return [ScoreEntry(player_id=p.id, player_name=p.display_name, score=p.score) for p in ranked]

    def to_view(self) -> RoomView:
        host = self.host
        return RoomView(
            room_code=self.code,
            phase=self.phase,
            round_number=self.round_number,
            max_players=self.settings.max_players,
            player_count=self.player_count,
            players=[p.to_view(self.settings) for p in self.players.values()],
            host=host.to_view(self.settings) if host is not None else None,
            all_players_ready=self.all_players_ready(),
        )

    def round_view(self) -> RoundView | None:
        current = self.current_round
        if current is None:
            return None
        acting = self.players.get(current.acting_player_id)
        if acting is None:
            return None
        return RoundView(
            round_number=current.number,
            acting_player=acting.to_view(self.settings),
            statement=current.statement,
            votes_received=len(current.votes),
            total_voters=self.total_voters,
            closed=current.closed,
        )

    def stats(self) -> RoomStats:
        players = list(self.players.values())
        return RoomStats(
            total_players=len(players),
            total_statements=sum(len(p.statements) for p in players),
            ready_players=sum(1 for p in players if p.is_ready(self.settings)),
            round_number=self.round_number,
            phase=self.phase,
        )
