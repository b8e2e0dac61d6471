"""
Process configuration for the webhook ingress.

Read once from the process environment at startup and immutable afterwards.
Every component takes a plain string mapping so tests can pass a dict.
"""
from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Literal, Mapping

from .gate import IP_WHITELIST_KEY, parse_allow_list
from .handler import DEFAULT_MAX_BODY_BYTES, DEFAULT_RESPONSE_KEY, DEFAULT_RESPONSE_TEXT, resolve_response_text

__all__ = [
    "WebhookConfig",
    "load_config",
    "get_config",
    "reset_config_cache",
    "IP_WHITELIST_KEY",
    "DEFAULT_RESPONSE_KEY",
    "DEFAULT_RESPONSE_TEXT",
]

DEFAULT_WEBHOOK_PATH = "/webhook"
DEFAULT_PORT = 8080
DEFAULT_PUBLISH_TIMEOUT_S = 10.0

PublisherKind = Literal["log", "http"]


@dataclass(frozen=True)
class WebhookConfig:
    """Immutable ingress configuration."""

    # Address filtering; empty means every caller is allowed
    allow_list: tuple[str, ...]

    # Success response body
    response_text: str

    # Routing
    webhook_path: str
    port: int

    # Body accumulation cap in bytes, 0 disables it
    max_body_bytes: int

    # Outbound publish channel
    publisher: PublisherKind
    publish_url: str | None
    publish_token: str | None
    publish_timeout_s: float

    log_level: str

    # Mapping the config was read from
    source: Mapping[str, str]


def load_config(env: Mapping[str, str] | None = None) -> WebhookConfig:
    """
    Build the configuration from a string mapping.

    Args:
        env: Source mapping. Defaults to ``os.environ``.

    Returns:
        Immutable WebhookConfig.

    Raises:
        ValueError: If the webhook path or publisher kind is invalid.
    """
    source = dict(os.environ if env is None else env)

    webhook_path = _read_str(source, "WEBHOOK_PATH") or DEFAULT_WEBHOOK_PATH
    if not webhook_path.startswith("/"):
        raise ValueError("WEBHOOK_PATH must start with '/'")

    publisher = (_read_str(source, "WEBHOOK_PUBLISHER") or "log").lower()
    if publisher not in ("log", "http"):
        raise ValueError(f"unsupported WEBHOOK_PUBLISHER: {publisher}")

    return WebhookConfig(
        allow_list=parse_allow_list(source.get(IP_WHITELIST_KEY)),
        response_text=resolve_response_text(source),
        webhook_path=webhook_path,
        port=_read_int(source, "PORT", default=DEFAULT_PORT, minimum=1),
        max_body_bytes=_read_int(
            source, "WEBHOOK_MAX_BODY_BYTES", default=DEFAULT_MAX_BODY_BYTES, minimum=0
        ),
        publisher=publisher,
        publish_url=_read_str(source, "WEBHOOK_PUBLISH_URL"),
        publish_token=_read_str(source, "WEBHOOK_PUBLISH_TOKEN"),
        publish_timeout_s=_read_float(
            source, "WEBHOOK_PUBLISH_TIMEOUT_S", default=DEFAULT_PUBLISH_TIMEOUT_S
        ),
        log_level=(_read_str(source, "WEBHOOK_LOG_LEVEL") or "INFO").upper(),
        source=source,
    )


def _read_str(source: Mapping[str, str], name: str) -> str | None:
    raw = source.get(name)
    if raw is None:
        return None
    value = raw.strip()
    return value or None


def _read_int(source: Mapping[str, str], name: str, *, default: int, minimum: int) -> int:
    raw = (source.get(name) or "").strip()
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError:
        return default
    return value if value >= minimum else default


def _read_float(source: Mapping[str, str], name: str, *, default: float) -> float:
    raw = (source.get(name) or "").strip()
    if not raw:
        return default
    try:
        value = float(raw)
    except ValueError:
        return default
    return value if value > 0 else default


@lru_cache(maxsize=1)
def get_config() -> WebhookConfig:
    """
    Get cached configuration.

    Loads once at first call, immutable thereafter.
    """
    return load_config()


def reset_config_cache() -> None:
    """Reset config cache. Only for testing."""
    get_config.cache_clear()
