from dataclasses import dataclass, field

from fibber.logic.enums import Vote


@dataclass
class Round:
    """One statement-and-vote cycle with a single acting player.

    Exists only while the room is playing. The acting player never appears
    in ``votes``; once ``closed`` is set the round is read-only.
    """

    number: int
    acting_player_id: str
    statement: str
    is_truth: bool
    statement_index: int | None = None  # index into the acting player's statements, None for lies
    votes: dict[str, Vote] = field(default_factory=dict)  # voter player_id -> vote
    closed: bool = False
    abandoned: bool = False  # closed without scoring (acting player left)

    @property
    def truth_votes(self) -> int:
        return sum(1 for v in self.votes.values() if v == Vote.TRUTH)

    @property
    def lie_votes(self) -> int:
        return sum(1 for v in self.votes.values() if v == Vote.LIE)

    def is_correct(self, vote: Vote) -> bool:
        """Return whether a vote matches the round's truth value."""
        return (vote == Vote.TRUTH) == self.is_truth
