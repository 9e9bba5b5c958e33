"""Centralized gameplay rules for a truth-or-lie room."""

from typing import Self

from pydantic import BaseModel, ConfigDict, Field, model_validator

MIN_PLAYERS = 2
MAX_STATEMENTS = 5


class GameSettings(BaseModel):
    """
    Configurable gameplay rules for a single room.

    Defaults match the classic party rules: at least two players, three to
    five statements each, and a 60/40 truth-to-lie split per round.
    """

    model_config = ConfigDict(frozen=True)

    # --- Roster ---
    min_players: int = Field(default=MIN_PLAYERS, ge=2)
    max_players: int = Field(default=20, ge=2, le=100)

    # --- Statements ---
    min_statements_to_be_ready: int = Field(default=3, ge=1)
    max_statements: int = Field(default=MAX_STATEMENTS, ge=1)
    min_statement_length: int = Field(default=10, ge=1)
    max_statement_length: int = Field(default=500, ge=1)

    # --- Rounds ---
    truth_probability: float = Field(default=0.6, ge=0.0, le=1.0)

    @model_validator(mode="after")
    def _check_bounds(self) -> Self:
        if self.min_players > self.max_players:
            raise ValueError("min_players must not exceed max_players")
        if self.min_statements_to_be_ready > self.max_statements:
            raise ValueError("min_statements_to_be_ready must not exceed max_statements")
        if self.min_statement_length > self.max_statement_length:
            raise ValueError("min_statement_length must not exceed max_statement_length")
        return self
