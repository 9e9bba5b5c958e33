"""
Vote collection, round resolution and scoring.

Scoring rules:
- every voter whose guess matches the round's truth value gains 1 point
- on a lie round the acting player also gains 1 point per truth vote
  (one per player fooled)

The game is complete when no player has an unused statement left; there is
no separate round budget.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from fibber.logic.enums import Vote
from fibber.logic.exceptions import (
    AlreadyVotedError,
    GameNotActiveError,
    NoRoundsRemainingError,
    PlayerNotFoundError,
    RoundInProgressError,
    SelfVoteError,
    VotingClosedError,
)
from fibber.logic.types import GameEndResult, RoundResult, VoterResult, VoteStatus

if TYPE_CHECKING:
    from fibber.logic.room import Room
    from fibber.logic.round import Round
    from fibber.logic.selector import RoundSelector


def _active_round(room: Room) -> Round:
    current = room.current_round
    if not room.is_playing or current is None:
        raise GameNotActiveError
    return current


def vote_status(room: Room) -> VoteStatus:
    current = _active_round(room)
    votes_received = len(current.votes)
    total_voters = room.total_voters
    return VoteStatus(
        votes_received=votes_received,
        total_voters=total_voters,
        # >= rather than == so a roster that shrank mid-round still resolves
        all_votes_in=votes_received >= total_voters,
    )


def submit_vote(room: Room, player_id: str, vote: Vote) -> VoteStatus:
    """Record a vote for the current round and report whether all votes are in."""
    current = _active_round(room)
    if current.closed:
        raise VotingClosedError
    if player_id not in room.players:
        raise PlayerNotFoundError
    if player_id == current.acting_player_id:
        raise SelfVoteError
    if player_id in current.votes:
        raise AlreadyVotedError
    current.votes[player_id] = vote
    room.touch()
    return vote_status(room)


def resolve_round(room: Room) -> RoundResult:
    """Close the current round, award points and advance the round counter."""
    current = _active_round(room)
    if current.closed:
        raise VotingClosedError
    acting = room.get_player(current.acting_player_id)
    if acting is None:
        raise PlayerNotFoundError("Acting player is no longer in the room")

    voters: list[VoterResult] = []
    points: dict[str, int] = {p.id: 0 for p in room.players.values()}
    for voter_id, vote in current.votes.items():
        voter = room.get_player(voter_id)
        if voter is None:
            continue
        correct = current.is_correct(vote)
        voters.append(
            VoterResult(player_id=voter.id, player_name=voter.display_name, vote=vote, correct=correct),
        )
        if correct:
            points[voter.id] += 1
    truth_votes = current.truth_votes
    if not current.is_truth:
        points[acting.id] += truth_votes

    current.closed = True
    for player_id, gained in points.items():
        room.players[player_id].score += gained
    room.round_number += 1
    game_complete = room.statements_exhausted()
    if game_complete:
        room.complete_game()
    else:
        room.touch()

    return RoundResult(
        round_number=current.number,
        statement=current.statement,
        is_truth=current.is_truth,
        acting_player=acting.to_view(room.settings),
        truth_votes=truth_votes,
        lie_votes=current.lie_votes,
        voters=voters,
        points_awarded=points,
        scoreboard=room.scoreboard(),
        game_complete=game_complete,
        game_end=game_end_result(room) if game_complete else None,
    )


def abandon_round(room: Room) -> bool:
    """Close the current round without scoring. Return whether the game is now complete."""
    current = _active_round(room)
    if current.closed:
        return room.is_complete
    current.closed = True
    current.abandoned = True
    room.round_number += 1
    if room.statements_exhausted():
        room.complete_game()
        return True
    room.touch()
    return False


def advance_round(room: Room, selector: RoundSelector) -> Round:
    """Start the next round after the current one has been resolved."""
    if room.is_complete:
        raise NoRoundsRemainingError("Game already complete")
    current = _active_round(room)
    if not current.closed:
        raise RoundInProgressError
    next_round = selector.prepare_next_round(room)
    if next_round is None:
        room.complete_game()
        raise NoRoundsRemainingError
    return next_round


def game_end_result(room: Room) -> GameEndResult:
    final_scores = room.scoreboard()
    return GameEndResult(
        winner=final_scores[0] if final_scores else None,
        final_scores=final_scores,
        total_rounds=room.round_number - 1,
        total_players=room.player_count,
        total_statements=sum(len(p.statements) for p in room.players.values()),
    )
