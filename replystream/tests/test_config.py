"""Tests for config loading."""

from __future__ import annotations

from replystream.config.loader import Config, _deep_merge, _load_yaml, get_config


def test_load_yaml_missing(tmp_path):
    assert _load_yaml(tmp_path / "nonexistent.yaml") == {}


def test_load_yaml_exists(tmp_path):
    path = tmp_path / "test.yaml"
    path.write_text("redis:\n  url: redis://custom:6380/2\n")
    data = _load_yaml(path)
    assert data["redis"]["url"] == "redis://custom:6380/2"


def test_default_config():
    config = get_config()
    assert config.chat.stream_url.endswith("/api/openai/stream-chat")
    assert config.speech.auto_speak == "off"
    assert config.chat.default_llm_id in config.catalog().ids()
    assert "Generic" in config.purposes


def test_config_load_from_path(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text(
        "chat:\n  stream_url: http://backend/stream\n"
        "speech:\n  auto_speak: firstLine\n"
        "llms:\n  - id: a\n    options:\n      llm_ref: gpt-x\n      llm_temperature: 0.1\n      llm_response_tokens: 10\n"
    )
    config = Config.load(config_path=path)
    assert config.chat.stream_url == "http://backend/stream"
    assert config.speech.auto_speak == "firstLine"
    assert config.catalog().find_or_raise("a").options.llm_ref == "gpt-x"


def test_config_env_override(monkeypatch, tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text("llms:\n  - id: a\n    source:\n      oai_host: h\n")
    monkeypatch.setenv("REDIS_URL", "redis://test:6379/5")
    monkeypatch.setenv("ELEVENLABS_API_KEY", "el-secret")
    monkeypatch.setenv("OPENAI_API_KEY", "sk-env")
    monkeypatch.setenv("CHAT_STREAM_URL", "http://env/stream")
    config = Config.load(config_path=path)
    assert config.redis.url == "redis://test:6379/5"
    assert config.speech.api_key == "el-secret"
    assert config.llms[0].source.oai_key == "sk-env"
    assert config.llms[0].source.oai_host == "h"
    assert config.chat.stream_url == "http://env/stream"


def test_env_prefix_overlay(monkeypatch, tmp_path):
    base = tmp_path / "base.yaml"
    base.write_text("logging:\n  level: INFO\n  json_format: true\n")
    (tmp_path / "config").mkdir()
    (tmp_path / "config" / "dev.yaml").write_text("logging:\n  level: DEBUG\n")
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("REPLYSTREAM_ENV_PREFIX", "dev")
    config = Config.load(config_path=base)
    assert config.logging.level == "DEBUG"
    assert config.logging.json_format is True


def test_deep_merge():
    base = {"a": 1, "b": {"x": 10, "y": 20}}
    override = {"b": {"y": 22, "z": 30}, "c": 3}
    out = _deep_merge(base, override)
    assert out == {"a": 1, "b": {"x": 10, "y": 22, "z": 30}, "c": 3}
    assert base["b"] == {"x": 10, "y": 20}
