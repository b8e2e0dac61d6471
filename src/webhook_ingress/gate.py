"""
Caller address filtering.

The gate resolves the effective caller address of a request from the
``x-forwarded-for`` header or the socket peer and checks it against the
allow-list read from ``IP_WHITELIST``. An empty allow-list admits everyone.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Mapping, Protocol

from starlette.requests import Request
from starlette.responses import Response

from .errors import AddressUndeterminedError, MultiValuedForwardingHeaderError
from .log import log_json

if TYPE_CHECKING:
    from .config import WebhookConfig

__all__ = [
    "AddressGate",
    "GateDecision",
    "GatePort",
    "IP_WHITELIST_KEY",
    "parse_allow_list",
    "rejection_response",
    "resolve_address",
]

IP_WHITELIST_KEY = "IP_WHITELIST"
FORWARDED_FOR_HEADER = "x-forwarded-for"
WILDCARD = "*"
_MAPPED_IPV4_PREFIX = "::ffff:"


@dataclass(frozen=True)
class GateDecision:
    allowed: bool
    address: str | None = None
    # complete terminal response, set only when rejected
    response: Response | None = None


class GatePort(Protocol):
    def decide(self, request: Request) -> GateDecision:
        ...


def parse_allow_list(raw: str | None) -> tuple[str, ...]:
    if raw is None or raw.strip() == "":
        return ()
    entries = (entry.strip() for entry in raw.split(";"))
    return tuple(entry for entry in entries if entry != WILDCARD)


def rejection_response() -> Response:
    return Response(
        content="not found",
        status_code=404,
        headers={"Content-Type": "text/plain"},
    )


def resolve_address(request: Request) -> str:
    """
    Resolve the effective caller address of a request.

    A single non-empty ``x-forwarded-for`` value wins and is used verbatim.
    Otherwise the socket peer address is used, with an IPv4-mapped IPv6
    prefix removed.

    Raises:
        MultiValuedForwardingHeaderError: The header arrived more than once.
        AddressUndeterminedError: Neither header nor socket gave an address.
    """
    forwarded = request.headers.getlist(FORWARDED_FOR_HEADER)
    if len(forwarded) > 1:
        raise MultiValuedForwardingHeaderError(forwarded)
    if forwarded and forwarded[0]:
        return forwarded[0]

    remote = request.client.host if request.client is not None else None
    log_json(logging.INFO, "gate.socket_address", remote_address=remote)
    if remote and remote.startswith(_MAPPED_IPV4_PREFIX):
        remote = remote[len(_MAPPED_IPV4_PREFIX):]
    if remote:
        return remote

    raise AddressUndeterminedError()


class AddressGate:
    def __init__(self, config: Mapping[str, str]) -> None:
        self._allow_list = parse_allow_list(config.get(IP_WHITELIST_KEY))

    @classmethod
    def from_config(cls, config: WebhookConfig) -> AddressGate:
        gate = cls({})
        gate._allow_list = config.allow_list
        return gate

    @property
    def allow_list(self) -> tuple[str, ...]:
        return self._allow_list

    def decide(self, request: Request) -> GateDecision:
        if not self._allow_list:
            return GateDecision(allowed=True)

        address = resolve_address(request)
        if address in self._allow_list:
            return GateDecision(allowed=True, address=address)

        log_json(logging.WARNING, "gate.rejected", address=address)
        return GateDecision(allowed=False, address=address, response=rejection_response())
