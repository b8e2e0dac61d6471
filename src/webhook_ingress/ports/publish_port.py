from __future__ import annotations

from typing import Protocol


class PublishPort(Protocol):
    async def publish(self, payload: bytes, *, content_type: str | None = None) -> None:
        """
        Hand one ingested payload to the downstream channel.

        Args:
            payload: The complete request body, byte for byte.
            content_type: The request's content type, when it sent one.

        Raises:
            PublishError: The channel refused or could not be reached.
        """
        ...

    async def close(self) -> None:
        ...
