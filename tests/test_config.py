from __future__ import annotations

import pytest

from webhook_ingress.config import get_config, load_config, reset_config_cache


def test_defaults() -> None:
    config = load_config({})
    assert config.allow_list == ()
    assert config.response_text == "OK"
    assert config.webhook_path == "/webhook"
    assert config.port == 8080
    assert config.max_body_bytes == 1024 * 1024
    assert config.publisher == "log"
    assert config.publish_url is None
    assert config.publish_timeout_s == 10.0
    assert config.log_level == "INFO"


def test_values_are_read() -> None:
    config = load_config(
        {
            "IP_WHITELIST": "1.2.3.4; 5.6.7.8",
            "DEFAULT_RESPONSE": "[default response]",
            "WEBHOOK_PATH": "/hooks/in",
            "PORT": "9000",
            "WEBHOOK_MAX_BODY_BYTES": "0",
            "WEBHOOK_PUBLISHER": "HTTP",
            "WEBHOOK_PUBLISH_URL": " http://sink.local/ingest ",
            "WEBHOOK_PUBLISH_TOKEN": "tok",
            "WEBHOOK_PUBLISH_TIMEOUT_S": "2.5",
            "WEBHOOK_LOG_LEVEL": "debug",
        }
    )
    assert config.allow_list == ("1.2.3.4", "5.6.7.8")
    assert config.response_text == "[default response]"
    assert config.webhook_path == "/hooks/in"
    assert config.port == 9000
    assert config.max_body_bytes == 0
    assert config.publisher == "http"
    assert config.publish_url == "http://sink.local/ingest"
    assert config.publish_token == "tok"
    assert config.publish_timeout_s == 2.5
    assert config.log_level == "DEBUG"


@pytest.mark.parametrize(
    "key,value,attr,expected",
    [
        ("PORT", "abc", "port", 8080),
        ("PORT", "0", "port", 8080),
        ("WEBHOOK_MAX_BODY_BYTES", "-1", "max_body_bytes", 1024 * 1024),
        ("WEBHOOK_PUBLISH_TIMEOUT_S", "soon", "publish_timeout_s", 10.0),
    ],
)
def test_invalid_numbers_fall_back(key, value, attr, expected) -> None:
    assert getattr(load_config({key: value}), attr) == expected


def test_path_must_be_absolute() -> None:
    with pytest.raises(ValueError):
        load_config({"WEBHOOK_PATH": "webhook"})


def test_unknown_publisher_rejected() -> None:
    with pytest.raises(ValueError):
        load_config({"WEBHOOK_PUBLISHER": "carrier-pigeon"})


def test_get_config_reads_environment_once(monkeypatch) -> None:
    reset_config_cache()
    monkeypatch.setenv("DEFAULT_RESPONSE", "first")
    try:
        assert get_config().response_text == "first"
        monkeypatch.setenv("DEFAULT_RESPONSE", "second")
        assert get_config().response_text == "first"
    finally:
        reset_config_cache()
