"""Tests for starting games, voting, round resolution and game completion."""

import asyncio

import pytest

from fibber.logic.enums import RoomPhase, Vote
from fibber.logic.exceptions import (
    AlreadyVotedError,
    GameNotActiveError,
    NoRoundsRemainingError,
    NotHostError,
    NotReadyError,
    RoundInProgressError,
    SelfVoteError,
)
from fibber.logic.settings import GameSettings
from fibber.tests.helpers import make_manager, seat_players
from fibber.tests.mocks import ScriptedRandom


class _BrokenLieGenerator:
    def generate_lie(self, player):
        raise RuntimeError("lie generator unavailable")


class TestStartGame:
    async def test_two_player_game_starts_with_a_truth_round(self, manager):
        """Alice hosts ABC123, Bob joins, both ready up and Alice starts."""
        await seat_players(manager, ["Alice", "Bob"])

        result = await manager.start_game("conn-alice")

        assert result.room.room_code == "ABC123"
        assert result.room.phase == RoomPhase.PLAYING
        assert result.round.round_number == 1
        assert result.round.acting_player.name == "Alice"
        assert result.round.statement == "Alice has a true story number 1"
        assert result.round.total_voters == 1
        assert result.recipients == ["conn-alice", "conn-bob"]
        assert manager.games_played == 1

    async def test_only_host_can_start(self, manager):
        await seat_players(manager, ["Alice", "Bob"])

        with pytest.raises(NotHostError):
            await manager.start_game("conn-bob")

    async def test_cannot_start_alone(self, manager):
        await seat_players(manager, ["Alice"])

        with pytest.raises(NotReadyError):
            await manager.start_game("conn-alice")

    async def test_cannot_start_until_everyone_is_ready(self, manager):
        await seat_players(manager, ["Alice", "Bob"], statements_each=2)

        with pytest.raises(NotReadyError):
            await manager.start_game("conn-alice")

    async def test_failed_round_selection_leaves_the_lobby_intact(self):
        """A lie generator failure rolls the room back to the lobby."""
        manager = make_manager(rng=ScriptedRandom(randoms=[0.99]), lie_generator=_BrokenLieGenerator())
        room, _ = await seat_players(manager, ["Alice", "Bob"])

        with pytest.raises(RuntimeError):
            await manager.start_game("conn-alice")

        assert room.phase == RoomPhase.LOBBY
        assert room.current_round is None
        assert manager.games_played == 0

    async def test_failed_restart_keeps_the_final_scoreboard(self):
        """A restart that fails to deal a round leaves the finished game as it was."""
        manager = make_manager(
            settings=GameSettings(min_statements_to_be_ready=1),
            rng=ScriptedRandom(randoms=[0.0, 0.0, 0.99]),
            lie_generator=_BrokenLieGenerator(),
        )
        room, _ = await seat_players(manager, ["Alice", "Bob"], statements_each=1)
        await manager.start_game("conn-alice")
        await manager.submit_vote("conn-bob", Vote.TRUTH)
        await manager.advance_round("conn-alice")
        await manager.submit_vote("conn-alice", Vote.LIE)
        final_round = room.current_round
        assert room.phase == RoomPhase.COMPLETE

        with pytest.raises(RuntimeError):
            await manager.start_game("conn-alice")

        assert room.phase == RoomPhase.COMPLETE
        assert room.round_number == 3
        assert room.current_round is final_round
        assert {p.display_name: p.score for p in room.players.values()} == {"Alice": 0, "Bob": 1}
        assert all(p.used_statement_indices == {0} for p in room.players.values())
        assert manager.games_played == 1


class TestVoting:
    async def test_truth_round_scores_correct_voter(self, manager):
        await seat_players(manager, ["Alice", "Bob"])
        await manager.start_game("conn-alice")

        result = await manager.submit_vote("conn-bob", Vote.TRUTH)

        assert result.status.all_votes_in
        assert result.round_result is not None
        assert result.round_result.is_truth
        assert result.round_result.points_awarded[result.voter.id] == 1
        assert not result.round_result.game_complete

    async def test_lie_round_rewards_the_fibber(self, lie_generator):
        manager = make_manager(rng=ScriptedRandom(randoms=[0.99]), lie_generator=lie_generator)
        room, _ = await seat_players(manager, ["Alice", "Bob", "Carol"])
        started = await manager.start_game("conn-alice")
        assert started.round.statement == "I once fabricated story number 1"

        await manager.submit_vote("conn-bob", Vote.TRUTH)
        result = await manager.submit_vote("conn-carol", Vote.LIE)

        round_result = result.round_result
        assert round_result is not None
        assert not round_result.is_truth
        assert round_result.truth_votes == 1
        assert room.get_player_by_name("Alice").score == 1
        assert room.get_player_by_name("Bob").score == 0
        assert room.get_player_by_name("Carol").score == 1
        assert lie_generator.generated_for == ["Alice"]

    async def test_vote_progress_before_tally_completes(self, manager):
        await seat_players(manager, ["Alice", "Bob", "Carol"])
        await manager.start_game("conn-alice")

        result = await manager.submit_vote("conn-bob", Vote.LIE)

        assert result.status.votes_received == 1
        assert result.status.total_voters == 2
        assert result.round_result is None

    async def test_acting_player_cannot_vote(self, manager):
        await seat_players(manager, ["Alice", "Bob"])
        await manager.start_game("conn-alice")

        with pytest.raises(SelfVoteError):
            await manager.submit_vote("conn-alice", Vote.TRUTH)

    async def test_double_vote_rejected(self, manager):
        room, _ = await seat_players(manager, ["Alice", "Bob", "Carol"])
        await manager.start_game("conn-alice")
        await manager.submit_vote("conn-bob", Vote.TRUTH)

        with pytest.raises(AlreadyVotedError):
            await manager.submit_vote("conn-bob", Vote.LIE)

        assert len(room.current_round.votes) == 1
        assert room.round_view().votes_received == 1

    async def test_vote_in_lobby_rejected(self, manager):
        await seat_players(manager, ["Alice", "Bob"])

        with pytest.raises(GameNotActiveError):
            await manager.submit_vote("conn-bob", Vote.TRUTH)

    async def test_concurrent_final_votes_resolve_once(self, manager):
        """Votes queued on a busy room lock still resolve the round exactly once."""
        room, _ = await seat_players(manager, ["Alice", "Bob", "Carol", "Dave"])
        await manager.start_game("conn-alice")

        async with manager._room_locks[room.code]:
            votes = [
                asyncio.create_task(manager.submit_vote("conn-bob", Vote.TRUTH)),
                asyncio.create_task(manager.submit_vote("conn-carol", Vote.TRUTH)),
                asyncio.create_task(manager.submit_vote("conn-dave", Vote.LIE)),
            ]
            await asyncio.sleep(0)
            assert not any(task.done() for task in votes)
            assert room.current_round.votes == {}

        results = await asyncio.gather(*votes)

        resolved = [r for r in results if r.round_result is not None]
        assert len(resolved) == 1
        assert resolved[0] is results[-1]
        assert room.round_number == 2
        assert sum(p.score for p in room.players.values()) == 2


class TestRoundProgression:
    async def test_next_round_requires_resolution(self, manager):
        await seat_players(manager, ["Alice", "Bob", "Carol"])
        await manager.start_game("conn-alice")

        with pytest.raises(RoundInProgressError):
            await manager.advance_round("conn-bob")

    async def test_any_member_can_advance(self, manager):
        await seat_players(manager, ["Alice", "Bob"])
        await manager.start_game("conn-alice")
        await manager.submit_vote("conn-bob", Vote.TRUTH)

        result = await manager.advance_round("conn-bob")

        assert result.round.round_number == 2
        assert result.round.statement == "Alice has a true story number 2"
        assert not result.round.closed

    async def test_game_completes_when_statements_run_out(self):
        manager = make_manager(settings=GameSettings(min_statements_to_be_ready=1))
        room, _ = await seat_players(manager, ["Alice", "Bob"], statements_each=1)
        await manager.start_game("conn-alice")

        first = await manager.submit_vote("conn-bob", Vote.TRUTH)
        assert not first.round_result.game_complete
        await manager.advance_round("conn-alice")
        final = await manager.submit_vote("conn-alice", Vote.LIE)

        assert final.round_result.game_complete
        game_end = final.round_result.game_end
        assert game_end.winner.player_name == "Bob"
        assert game_end.total_rounds == 2
        assert [s.player_name for s in game_end.final_scores] == ["Bob", "Alice"]
        assert room.phase == RoomPhase.COMPLETE

        with pytest.raises(NoRoundsRemainingError):
            await manager.advance_round("conn-alice")

    async def test_host_can_restart_a_completed_game(self):
        manager = make_manager(settings=GameSettings(min_statements_to_be_ready=1))
        room, _ = await seat_players(manager, ["Alice", "Bob"], statements_each=1)
        await manager.start_game("conn-alice")
        await manager.submit_vote("conn-bob", Vote.TRUTH)
        await manager.advance_round("conn-alice")
        await manager.submit_vote("conn-alice", Vote.TRUTH)

        restarted = await manager.start_game("conn-alice")

        assert restarted.room.phase == RoomPhase.PLAYING
        assert restarted.round.round_number == 1
        assert all(p.score == 0 for p in room.players.values())
        assert manager.games_played == 2


class TestResetGame:
    async def test_reset_returns_to_a_clean_lobby(self, manager):
        room, _ = await seat_players(manager, ["Alice", "Bob"])
        await manager.start_game("conn-alice")
        await manager.submit_vote("conn-bob", Vote.TRUTH)

        result = await manager.reset_game("conn-alice")

        assert result.room.phase == RoomPhase.LOBBY
        assert result.room.round_number == 1
        assert all(p.statement_count == 0 and p.score == 0 for p in result.room.players)
        assert room.current_round is None

    async def test_only_host_can_reset(self, manager):
        await seat_players(manager, ["Alice", "Bob"])

        with pytest.raises(NotHostError):
            await manager.reset_game("conn-bob")
