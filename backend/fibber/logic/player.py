import time
from dataclasses import dataclass, field
from uuid import uuid4

from fibber.logic.exceptions import (
    DuplicateStatementError,
    InvalidStatementError,
    StatementLimitReachedError,
)
from fibber.logic.settings import GameSettings
from fibber.logic.types import PlayerView, PrivatePlayerView


def _new_player_id() -> str:
    return uuid4().hex


@dataclass
class Player:
    """Represent a player seated in a room.

    Lifecycle:
    - Created on room creation (as host) or join
    - Statements are added in the lobby, marked used as rounds are played
    - On disconnect: is_connected is cleared, the player keeps their slot
    - On reconnect: connection_id is rebound, id is unchanged
    - On leave or room eviction: removed entirely
    """

    connection_id: str
    display_name: str
    is_host: bool = False
    id: str = field(default_factory=_new_player_id)
    statements: list[str] = field(default_factory=list)
    used_statement_indices: set[int] = field(default_factory=set)
    score: int = 0
    is_connected: bool = True
    joined_at: float = field(default_factory=time.time)

    @property
    def name_key(self) -> str:
        return self.display_name.casefold()

    def add_statement(self, text: str, settings: GameSettings) -> str:
        """Validate and append a statement. Return the stored (trimmed) text."""
        statement = text.strip()
        if not statement:
            raise InvalidStatementError("Statement cannot be empty")
        if len(statement) < settings.min_statement_length:
            raise InvalidStatementError(
                f"Statement must be at least {settings.min_statement_length} characters long",
            )
        if len(statement) > settings.max_statement_length:
            raise InvalidStatementError(
                f"Statement must be at most {settings.max_statement_length} characters long",
            )
        if len(self.statements) >= settings.max_statements:
            raise StatementLimitReachedError(f"Cannot submit more than {settings.max_statements} statements")
        key = statement.casefold()
        if any(existing.casefold() == key for existing in self.statements):
            raise DuplicateStatementError
        self.statements.append(statement)
        return statement

    def unused_statement_indices(self) -> list[int]:
        return [i for i in range(len(self.statements)) if i not in self.used_statement_indices]

    @property
    def has_unused_statements(self) -> bool:
        return len(self.used_statement_indices) < len(self.statements)

    def mark_statement_used(self, index: int) -> None:
        if not 0 <= index < len(self.statements):
            raise IndexError(f"statement index {index} out of range")
        self.used_statement_indices.add(index)

    def reset_for_new_game(self) -> None:
        self.score = 0
        self.used_statement_indices.clear()

    def clear_statements(self) -> None:
        self.statements.clear()
        self.used_statement_indices.clear()

    def is_ready(self, settings: GameSettings) -> bool:
        return len(self.statements) >= settings.min_statements_to_be_ready

    def to_view(self, settings: GameSettings) -> PlayerView:
        return PlayerView(
            id=self.id,
            name=self.display_name,
            is_host=self.is_host,
            statement_count=len(self.statements),
            score=self.score,
            is_ready=self.is_ready(settings),
            is_connected=self.is_connected,
        )

    def to_private_view(self, settings: GameSettings) -> PrivatePlayerView:
        used = sorted(self.used_statement_indices)
        return PrivatePlayerView(
            **self.to_view(settings).model_dump(),
            statements=list(self.statements),
            used_statements=[self.statements[i] for i in used],
            unused_statements=[self.statements[i] for i in self.unused_statement_indices()],
        )
