from __future__ import annotations

import asyncio
import json
import logging

import httpx
import pytest

from webhook_ingress.config import load_config
from webhook_ingress.errors import PublishError
from webhook_ingress.publishers.factory import create_publisher
from webhook_ingress.publishers.http import HttpPublisher, HttpPublisherConfig
from webhook_ingress.publishers.log import LogPublisher


def test_http_publisher_posts_exact_bytes() -> None:
    seen: list[httpx.Request] = []

    def respond(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(202)

    publisher = HttpPublisher(
        HttpPublisherConfig(url="http://sink.local/ingest", token="s3cret"),
        transport=httpx.MockTransport(respond),
    )

    async def go():
        await publisher.publish(b'{"a":1}', content_type="application/json")
        await publisher.close()

    asyncio.run(go())
    assert len(seen) == 1
    assert seen[0].method == "POST"
    assert str(seen[0].url) == "http://sink.local/ingest"
    assert seen[0].content == b'{"a":1}'
    assert seen[0].headers["content-type"] == "application/json"
    assert seen[0].headers["authorization"] == "Bearer s3cret"


def test_http_publisher_defaults_content_type() -> None:
    seen: list[httpx.Request] = []

    def respond(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200)

    publisher = HttpPublisher(
        HttpPublisherConfig(url="http://sink.local/ingest"),
        transport=httpx.MockTransport(respond),
    )
    asyncio.run(publisher.publish(b"raw"))
    assert seen[0].headers["content-type"] == "application/octet-stream"
    assert "authorization" not in seen[0].headers


def test_http_publisher_raises_on_error_status() -> None:
    publisher = HttpPublisher(
        HttpPublisherConfig(url="http://sink.local/ingest"),
        transport=httpx.MockTransport(lambda request: httpx.Response(503, text="busy")),
    )
    with pytest.raises(PublishError) as excinfo:
        asyncio.run(publisher.publish(b"raw"))
    assert excinfo.value.status_code == 503


def test_http_publisher_wraps_transport_errors() -> None:
    def fail(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("refused", request=request)

    publisher = HttpPublisher(
        HttpPublisherConfig(url="http://sink.local/ingest"),
        transport=httpx.MockTransport(fail),
    )
    with pytest.raises(PublishError) as excinfo:
        asyncio.run(publisher.publish(b"raw"))
    assert excinfo.value.status_code is None


def test_log_publisher_records_digest(caplog) -> None:
    with caplog.at_level(logging.INFO, logger="webhook_ingress"):
        asyncio.run(LogPublisher().publish(b"test", content_type="text/plain"))
    record = json.loads(caplog.records[-1].getMessage())
    assert record["message"] == "publish.logged"
    assert record["size"] == 4
    assert record["digest"].startswith("sha256:")
    assert record["content_type"] == "text/plain"


def test_factory_defaults_to_log_publisher() -> None:
    assert isinstance(create_publisher(load_config({})), LogPublisher)


def test_factory_builds_http_publisher() -> None:
    config = load_config(
        {"WEBHOOK_PUBLISHER": "http", "WEBHOOK_PUBLISH_URL": "http://sink.local/ingest"}
    )
    publisher = create_publisher(config)
    assert isinstance(publisher, HttpPublisher)
    asyncio.run(publisher.close())


def test_factory_requires_url_for_http() -> None:
    with pytest.raises(ValueError):
        create_publisher(load_config({"WEBHOOK_PUBLISHER": "http"}))
