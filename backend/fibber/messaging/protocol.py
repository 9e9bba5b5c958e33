"""Transport-agnostic connection interface."""

from abc import ABC, abstractmethod
from typing import Any

from fibber.messaging.encoder import decode, encode


class ConnectionProtocol(ABC):
    """
    A single client connection carrying MessagePack frames.

    The router and session layer only talk to this interface, so they can
    be tested with in-memory connections.
    """

    @property
    @abstractmethod
    def connection_id(self) -> str:
        """Unique identifier for this connection."""
        ...

    @abstractmethod
    async def send_bytes(self, data: bytes) -> None: ...

    @abstractmethod
    async def receive_bytes(self) -> bytes: ...

    @abstractmethod
    async def close(self, code: int = 1000, reason: str = "") -> None: ...

    async def send_message(self, data: dict[str, Any]) -> None:
        await self.send_bytes(encode(data))

    async def receive_message(self) -> dict[str, Any]:
        """
        Receive and decode one frame.

        Raises DecodeError for frames that are not a valid MessagePack map.
        """
        return decode(await self.receive_bytes())
