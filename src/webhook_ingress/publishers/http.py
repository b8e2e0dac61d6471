from __future__ import annotations

from dataclasses import dataclass

import httpx

from ..digest import short_digest
from ..errors import PublishError


@dataclass(frozen=True)
class HttpPublisherConfig:
    url: str
    token: str | None = None
    timeout_s: float = 10.0


class HttpPublisher:
    """Forwards each payload, unchanged, as the body of a POST."""

    def __init__(
        self,
        config: HttpPublisherConfig,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._config = config
        self._client = httpx.AsyncClient(timeout=config.timeout_s, transport=transport)

    async def publish(self, payload: bytes, *, content_type: str | None = None) -> None:
        headers = {"content-type": content_type or "application/octet-stream"}
        if self._config.token:
            headers["authorization"] = f"Bearer {self._config.token}"
        headers["x-payload-digest"] = short_digest(payload)
        try:
            resp = await self._client.post(self._config.url, content=payload, headers=headers)
        except httpx.HTTPError as exc:
            raise PublishError(f"publish http error: {exc}") from exc
        if resp.status_code >= 400:
            raise PublishError(
                f"publish rejected: {resp.text[:500]}",
                status_code=resp.status_code,
            )

    async def close(self) -> None:
        await self._client.aclose()
