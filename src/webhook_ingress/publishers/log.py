from __future__ import annotations

import logging

from ..digest import payload_digest
from ..log import log_json


class LogPublisher:
    """Records each payload in the log instead of forwarding it."""

    async def publish(self, payload: bytes, *, content_type: str | None = None) -> None:
        log_json(
            logging.INFO,
            "publish.logged",
            size=len(payload),
            digest=payload_digest(payload),
            content_type=content_type,
        )

    async def close(self) -> None:
        return None
