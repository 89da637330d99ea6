import json

import pytest

from eventrelay.config import HandlerSettings, ServiceSettings, Settings, load_settings
from eventrelay.exceptions import ConfigurationError


def _write(tmp_path, data) -> str:
    path = tmp_path / "conf.json"
    path.write_text(json.dumps(data), encoding="utf-8")
    return str(path)


def test_load_settings_reads_nested_sections(tmp_path, monkeypatch) -> None:
    monkeypatch.delenv("RELAY_LOG_LEVEL", raising=False)
    path = _write(tmp_path, {
        "handler": {"node_path": "/opt/node"},
        "collecting_data_service": {"allow_send_events": True, "allow_send_logs": True, "host": "10.0.0.5", "port": 8080},
    })

    settings = load_settings(path)

    assert settings.handler.node_path == "/opt/node"
    assert str(settings.handler.events_pipe_path) == "/opt/node/fifo/events.fifo"
    assert settings.service.allow_send_logs is True
    assert settings.service.base_url == "http://10.0.0.5:8080"
    assert settings.handler.startup_delay_seconds == 1.0
    assert settings.handler.open_attempts == 5
    assert settings.handler.open_retry_delay_seconds == 3.0
    assert settings.logging.level == "INFO"


def test_explicit_url_wins_over_host_and_port() -> None:
    service = ServiceSettings(url="https://collector.example/", host="ignored", port=1)

    assert service.base_url == "https://collector.example"


def test_load_settings_uses_env_path_and_level(tmp_path, monkeypatch) -> None:
    path = _write(tmp_path, {"handler": {"node_path": "/n"}, "logging": {"level": "info"}})
    monkeypatch.setenv("RELAY_CONFIG", path)
    monkeypatch.setenv("RELAY_LOG_LEVEL", "debug")

    settings = load_settings()

    assert settings.logging.level == "DEBUG"


def test_load_settings_missing_file(tmp_path) -> None:
    with pytest.raises(ConfigurationError):
        load_settings(str(tmp_path / "missing.json"))


def test_load_settings_invalid_content(tmp_path) -> None:
    with pytest.raises(ConfigurationError):
        load_settings(_write(tmp_path, {"collecting_data_service": {"port": 70000}}))

    bad = tmp_path / "bad.json"
    bad.write_text("{not json", encoding="utf-8")
    with pytest.raises(ConfigurationError):
        load_settings(str(bad))


def test_settings_are_immutable() -> None:
    settings = Settings(handler=HandlerSettings(node_path="/n"))

    with pytest.raises(Exception):
        settings.handler.node_path = "/other"
