from __future__ import annotations

from ..config import WebhookConfig
from ..ports.publish_port import PublishPort
from .http import HttpPublisher, HttpPublisherConfig
from .log import LogPublisher


def create_publisher(config: WebhookConfig) -> PublishPort:
    backend = config.publisher
    if backend == "log":
        return LogPublisher()
    if backend == "http":
        if not config.publish_url:
            raise ValueError("WEBHOOK_PUBLISH_URL required for http publisher")
        return HttpPublisher(
            HttpPublisherConfig(
                url=config.publish_url,
                token=config.publish_token,
                timeout_s=config.publish_timeout_s,
            )
        )
    raise ValueError(f"unsupported publisher: {backend}")
