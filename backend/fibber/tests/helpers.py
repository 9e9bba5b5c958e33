"""Shared helpers for driving a SessionManager through lobby setup."""

from __future__ import annotations

import itertools
from collections.abc import Callable
from typing import TYPE_CHECKING

from fibber.logic.enums import RoomPhase
from fibber.logic.selector import RoundSelector
from fibber.session.manager import SessionManager
from fibber.tests.mocks import FixedLieGenerator, ScriptedRandom

if TYPE_CHECKING:
    from fibber.logic.room import Room


def statements_for(name: str, count: int = 3) -> list[str]:
    return [f"{name} has a true story number {i}" for i in range(1, count + 1)]


def room_codes(first: str) -> Callable[[], str]:
    """Code factory yielding ``first`` and then R00001, R00002, ..."""
    counter = itertools.count(1)
    pending = [first]

    def next_code() -> str:
        if pending:
            return pending.pop()
        return f"R{next(counter):05d}"

    return next_code


def make_manager(
    rng: ScriptedRandom | None = None,
    lie_generator: FixedLieGenerator | None = None,
    room_code: str = "ABC123",
    **kwargs,
) -> SessionManager:
    """SessionManager with scripted randomness and a known first room code."""
    selector = RoundSelector(lie_generator or FixedLieGenerator(), rng or ScriptedRandom())
    return SessionManager(selector=selector, code_factory=room_codes(room_code), **kwargs)


async def seat_players(
    manager: SessionManager,
    names: list[str],
    statements_each: int = 3,
) -> tuple[Room, list[str]]:
    """Create a room hosted by names[0], seat the others, submit statements.

    Returns the room and the connection ids in join order.
    """
    connection_ids = [f"conn-{name.lower()}" for name in names]
    created = await manager.create_room(connection_ids[0], names[0])
    room_code = created.room.room_code
    for connection_id, name in zip(connection_ids[1:], names[1:], strict=True):
        await manager.join_room(connection_id, room_code, name)
    for connection_id, name in zip(connection_ids, names, strict=True):
        for statement in statements_for(name, statements_each):
            await manager.submit_statement(connection_id, statement)
    room = manager.get_room(room_code)
    assert room is not None
    assert room.phase == RoomPhase.LOBBY
    return room, connection_ids
