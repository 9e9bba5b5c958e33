"""Broadcast utility for sending one message to a set of connections."""

from __future__ import annotations

import contextlib
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

    from fibber.messaging.protocol import ConnectionProtocol


async def broadcast_to_connections(
    connections: Mapping[str, ConnectionProtocol],
    recipients: Iterable[str],
    message: dict[str, Any],
    exclude_connection_id: str | None = None,
) -> None:
    """Send a message to every recipient that still has a live connection.

    Recipients are resolved one by one at send time so a socket that closed
    after the snapshot was taken is skipped, and send failures on one
    socket never stop delivery to the others.
    """
    for connection_id in list(recipients):
        if connection_id == exclude_connection_id:
            continue
        connection = connections.get(connection_id)
        if connection is None:
            continue
        with contextlib.suppress(RuntimeError, OSError):
            await connection.send_message(message)
