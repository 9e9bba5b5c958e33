from __future__ import annotations

from typing import TYPE_CHECKING

import structlog

from fibber.logic.round import Round

if TYPE_CHECKING:
    import random

    from fibber.logic.lies import LieGenerator
    from fibber.logic.room import Room

logger = structlog.get_logger()


class RoundSelector:
    """Pick the acting player and the statement for the next round.

    The random source and lie generator are injected so tests can pin
    every choice.
    """

    def __init__(self, lie_generator: LieGenerator, rng: random.Random) -> None:
        self._lie_generator = lie_generator
        self._rng = rng

    def prepare_next_round(self, room: Room) -> Round | None:
        """Install a new Round on the room, or return None when statements are exhausted.

        All random choices (and the lie text) are made before the room is
        touched, so a failing lie generator leaves the room unchanged. The
        caller owns the round counter.
        """
        candidates = [p for p in room.players.values() if p.has_unused_statements]
        if not candidates:
            return None

        player = self._rng.choice(candidates)
        use_truth = self._rng.random() < room.settings.truth_probability
        unused = player.unused_statement_indices()

        statement_index: int | None = None
        if use_truth and unused:
            statement_index = self._rng.choice(unused)
            statement = player.statements[statement_index]
        else:
            statement = self._lie_generator.generate_lie(player)

        new_round = Round(
            number=room.round_number,
            acting_player_id=player.id,
            statement=statement,
            is_truth=statement_index is not None,
            statement_index=statement_index,
        )
        if statement_index is not None:
            player.mark_statement_used(statement_index)
        room.current_round = new_round
        room.touch()
        logger.info(
            "round prepared",
            room_code=room.code,
            round_number=new_round.number,
            acting_player=player.display_name,
            is_truth=new_round.is_truth,
        )
        return new_round
