"""
Pydantic models for game logic data that crosses component boundaries.

Contains the public (client-safe) views of players, rooms and rounds, and
the result objects returned by room operations. None of the public views
carry statement texts other than the one currently on the table.
"""

from pydantic import BaseModel

from fibber.logic.enums import RoomPhase, Vote


class PlayerView(BaseModel):
    """Public player data, safe to send to every room member."""

    id: str
    name: str
    is_host: bool
    statement_count: int
    score: int
    is_ready: bool
    is_connected: bool


class PrivatePlayerView(PlayerView):
    """Player data for the player themselves, including their own statements."""

    statements: list[str]
    used_statements: list[str]
    unused_statements: list[str]

    def to_public(self) -> PlayerView:
        return PlayerView(**self.model_dump(include=set(PlayerView.model_fields)))


class RoomStats(BaseModel):
    total_players: int
    total_statements: int
    ready_players: int
    round_number: int
    phase: RoomPhase


class RoomView(BaseModel):
    """Public room data."""

    room_code: str
    phase: RoomPhase
    round_number: int
    max_players: int
    player_count: int
    players: list[PlayerView]
    host: PlayerView | None
    all_players_ready: bool


class RoundView(BaseModel):
    """Public fields of the round currently on the table."""

    round_number: int
    acting_player: PlayerView
    statement: str
    votes_received: int
    total_voters: int
    closed: bool


class VoteStatus(BaseModel):
    votes_received: int
    total_voters: int
    all_votes_in: bool


class VoterResult(BaseModel):
    player_id: str
    player_name: str
    vote: Vote
    correct: bool


class ScoreEntry(BaseModel):
    player_id: str
    player_name: str
    score: int


class GameEndResult(BaseModel):
    winner: ScoreEntry | None
    final_scores: list[ScoreEntry]
    total_rounds: int
    total_players: int
    total_statements: int


class RoundResult(BaseModel):
    """Outcome of a resolved round."""

    round_number: int
    statement: str
    is_truth: bool
    acting_player: PlayerView
    truth_votes: int
    lie_votes: int
    voters: list[VoterResult]
    points_awarded: dict[str, int]  # player_id -> points gained this round
    scoreboard: list[ScoreEntry]
    game_complete: bool
    game_end: GameEndResult | None = None


class ReconnectionSnapshot(BaseModel):
    """State a reconnecting client needs to rebuild its view."""

    room: RoomView
    player: PrivatePlayerView
    current_round: RoundView | None
    scoreboard: list[ScoreEntry]
