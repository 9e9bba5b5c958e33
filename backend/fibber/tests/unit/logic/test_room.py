import pytest

from fibber.logic.enums import RoomPhase
from fibber.logic.exceptions import (
    GameInProgressError,
    NameTakenError,
    NotReadyError,
    RoomFullError,
)
from fibber.logic.room import Room
from fibber.logic.settings import GameSettings


def _room(max_players: int = 20) -> Room:
    return Room(code="ABC123", settings=GameSettings(max_players=max_players))


def _fill_statements(room: Room, count: int = 3) -> None:
    for player in room.players.values():
        for i in range(count):
            player.add_statement(f"{player.display_name} statement number {i}", room.settings)


def _hosts(room: Room) -> list[str]:
    return [p.display_name for p in room.players.values() if p.is_host]


class TestRoster:
    def test_first_player_becomes_host(self):
        room = _room()

        alice = room.add_player("c1", "Alice")
        room.add_player("c2", "Bob")

        assert alice.is_host
        assert _hosts(room) == ["Alice"]

    def test_is_host_flag_ignored_when_room_has_host(self):
        room = _room()
        room.add_player("c1", "Alice")

        bob = room.add_player("c2", "Bob", is_host=True)

        assert not bob.is_host
        assert _hosts(room) == ["Alice"]

    def test_name_taken_is_case_insensitive(self):
        room = _room()
        room.add_player("c1", "Alice")

        with pytest.raises(NameTakenError):
            room.add_player("c2", "aLICE")

    def test_room_full(self):
        room = _room(max_players=2)
        room.add_player("c1", "Alice")
        room.add_player("c2", "Bob")

        with pytest.raises(RoomFullError):
            room.add_player("c3", "Carol")

    def test_phase_checked_before_capacity(self):
        room = _room(max_players=2)
        room.add_player("c1", "Alice")
        room.add_player("c2", "Bob")
        room.phase = RoomPhase.PLAYING

        with pytest.raises(GameInProgressError):
            room.add_player("c3", "Carol")

    def test_removing_host_passes_flag_in_join_order(self):
        room = _room()
        alice = room.add_player("c1", "Alice")
        room.add_player("c2", "Bob")
        room.add_player("c3", "Carol")

        room.remove_player(alice.id)

        assert _hosts(room) == ["Bob"]

    def test_removing_non_host_keeps_host(self):
        room = _room()
        room.add_player("c1", "Alice")
        bob = room.add_player("c2", "Bob")

        room.remove_player(bob.id)

        assert _hosts(room) == ["Alice"]

    def test_remove_unknown_player_returns_none(self):
        assert _room().remove_player("missing") is None

    def test_disconnect_transfer_skips_disconnected_players(self):
        room = _room()
        alice = room.add_player("c1", "Alice")
        bob = room.add_player("c2", "Bob")
        room.add_player("c3", "Carol")
        bob.is_connected = False
        alice.is_connected = False

        new_host = room.transfer_host_from(alice)

        assert new_host is not None
        assert new_host.display_name == "Carol"
        assert _hosts(room) == ["Carol"]

    def test_disconnect_transfer_keeps_flag_when_nobody_connected(self):
        room = _room()
        alice = room.add_player("c1", "Alice")
        bob = room.add_player("c2", "Bob")
        bob.is_connected = False
        alice.is_connected = False

        assert room.transfer_host_from(alice) is None
        assert _hosts(room) == ["Alice"]

    def test_transfer_from_non_host_is_noop(self):
        room = _room()
        room.add_player("c1", "Alice")
        bob = room.add_player("c2", "Bob")

        assert room.transfer_host_from(bob) is None
        assert _hosts(room) == ["Alice"]


class TestReadiness:
    def test_single_player_never_ready(self):
        room = _room()
        room.add_player("c1", "Alice")
        _fill_statements(room, count=5)

        assert not room.all_players_ready()

    def test_ready_when_everyone_has_three(self):
        room = _room()
        room.add_player("c1", "Alice")
        room.add_player("c2", "Bob")
        _fill_statements(room)

        assert room.all_players_ready()

    def test_start_rejects_short_roster(self):
        room = _room()
        room.add_player("c1", "Alice")
        _fill_statements(room)

        with pytest.raises(NotReadyError, match="at least 2 players"):
            room.start_game()
        assert room.phase == RoomPhase.LOBBY

    def test_start_rejects_missing_statements(self):
        room = _room()
        room.add_player("c1", "Alice")
        room.add_player("c2", "Bob")
        _fill_statements(room, count=2)

        with pytest.raises(NotReadyError, match="at least 3 statements"):
            room.start_game()

    def test_start_rejects_running_game(self):
        room = _room()
        room.add_player("c1", "Alice")
        room.add_player("c2", "Bob")
        _fill_statements(room)
        room.start_game()

        with pytest.raises(GameInProgressError):
            room.start_game()


class TestLifecycle:
    def test_start_resets_scores_and_usage(self):
        room = _room()
        alice = room.add_player("c1", "Alice")
        room.add_player("c2", "Bob")
        _fill_statements(room)
        alice.score = 7
        alice.mark_statement_used(0)
        room.round_number = 9

        room.start_game()

        assert room.phase == RoomPhase.PLAYING
        assert room.round_number == 1
        assert alice.score == 0
        assert alice.used_statement_indices == set()

    def test_reset_clears_everything(self):
        room = _room()
        alice = room.add_player("c1", "Alice")
        room.add_player("c2", "Bob")
        _fill_statements(room)
        room.start_game()
        alice.score = 3

        room.reset_game()

        assert room.phase == RoomPhase.LOBBY
        assert room.current_round is None
        assert room.round_number == 1
        assert alice.score == 0
        assert alice.statements == []

    def test_statements_exhausted(self):
        room = _room()
        alice = room.add_player("c1", "Alice")
        _fill_statements(room, count=2)
        assert not room.statements_exhausted()

        alice.mark_statement_used(0)
        alice.mark_statement_used(1)

        assert room.statements_exhausted()

    def test_total_voters_excludes_acting_player(self):
        room = _room()
        assert room.total_voters == 0
        room.add_player("c1", "Alice")
        room.add_player("c2", "Bob")
        room.add_player("c3", "Carol")

        assert room.total_voters == 2


class TestViews:
    def test_scoreboard_descending_and_stable(self):
        room = _room()
        alice = room.add_player("c1", "Alice")
        bob = room.add_player("c2", "Bob")
        carol = room.add_player("c3", "Carol")
        alice.score, bob.score, carol.score = 1, 3, 1

        board = room.scoreboard()

        assert [e.player_name for e in board] == ["Bob", "Alice", "Carol"]
        scores = [e.score for e in board]
        assert scores == sorted(scores, reverse=True)

    def test_public_view_carries_host_and_readiness(self):
        room = _room()
        room.add_player("c1", "Alice")
        room.add_player("c2", "Bob")
        _fill_statements(room)

        view = room.to_view()

        assert view.room_code == "ABC123"
        assert view.host is not None
        assert view.host.name == "Alice"
        assert view.all_players_ready
        assert [p.statement_count for p in view.players] == [3, 3]

    def test_stats(self):
        room = _room()
        room.add_player("c1", "Alice")
        room.add_player("c2", "Bob")
        _fill_statements(room)
        room.players[next(iter(room.players))].add_statement("One more statement here", room.settings)

        stats = room.stats()

        assert stats.total_players == 2
        assert stats.total_statements == 7
        assert stats.ready_players == 2
        assert stats.phase == RoomPhase.LOBBY

    def test_round_view_is_none_without_round(self):
        assert _room().round_view() is None
