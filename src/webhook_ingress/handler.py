"""
Payload ingestion for the webhook endpoint.

Accepted requests have their body drained chunk by chunk, are answered once
the stream is exhausted, and the finished payload is published after the
response has gone out.
"""
from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Mapping

from starlette.background import BackgroundTask
from starlette.requests import Request
from starlette.responses import PlainTextResponse, Response

from .digest import payload_digest
from .errors import PayloadTooLarge
from .gate import GatePort, rejection_response
from .log import log_json
from .ports.publish_port import PublishPort

if TYPE_CHECKING:
    from .config import WebhookConfig

__all__ = [
    "DEFAULT_MAX_BODY_BYTES",
    "DEFAULT_RESPONSE_KEY",
    "DEFAULT_RESPONSE_TEXT",
    "PayloadHandler",
    "resolve_response_text",
]

DEFAULT_RESPONSE_KEY = "DEFAULT_RESPONSE"
DEFAULT_RESPONSE_TEXT = "OK"
DEFAULT_MAX_BODY_BYTES = 1024 * 1024


def resolve_response_text(config: Mapping[str, str]) -> str:
    override = config.get(DEFAULT_RESPONSE_KEY)
    if override:
        return override
    return DEFAULT_RESPONSE_TEXT


class PayloadHandler:
    def __init__(
        self,
        config: Mapping[str, str],
        gate: GatePort,
        publisher: PublishPort,
        *,
        max_body_bytes: int = DEFAULT_MAX_BODY_BYTES,
    ) -> None:
        self._gate = gate
        self._publisher = publisher
        self._response_text = resolve_response_text(config)
        self._max_body_bytes = max(0, max_body_bytes)

    @classmethod
    def from_config(
        cls, config: WebhookConfig, gate: GatePort, publisher: PublishPort
    ) -> PayloadHandler:
        handler = cls({}, gate, publisher, max_body_bytes=config.max_body_bytes)
        handler._response_text = config.response_text
        return handler

    @property
    def response_text(self) -> str:
        return self._response_text

    async def handle(self, request: Request) -> Response:
        decision = self._gate.decide(request)
        if not decision.allowed:
            return decision.response or rejection_response()

        try:
            payload = await self._read_payload(request)
        except PayloadTooLarge:
            log_json(
                logging.WARNING,
                "payload.too_large",
                address=decision.address,
                max_body_bytes=self._max_body_bytes,
            )
            return PlainTextResponse("payload too large", status_code=413)

        log_json(
            logging.INFO,
            "payload.received",
            address=decision.address,
            size=len(payload),
            digest=payload_digest(payload),
        )
        return PlainTextResponse(
            self._response_text,
            status_code=200,
            background=BackgroundTask(
                self._publish, payload, request.headers.get("content-type")
            ),
        )

    async def _read_payload(self, request: Request) -> bytes:
        buffer = bytearray()
        async for chunk in request.stream():
            buffer.extend(chunk)
            if self._max_body_bytes and len(buffer) > self._max_body_bytes:
                raise PayloadTooLarge(self._max_body_bytes)
        return bytes(buffer)

    async def _publish(self, payload: bytes, content_type: str | None) -> None:
        try:
            await self._publisher.publish(payload, content_type=content_type)
        except Exception as exc:
            # response already sent; delivery is the publisher's concern
            log_json(
                logging.ERROR,
                "publish.failed",
                digest=payload_digest(payload),
                size=len(payload),
                error=str(exc),
            )
