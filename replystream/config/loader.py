"""Load configuration from YAML and environment variables. No hardcoded secrets."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from replystream.models.catalog import LLMDescriptor, ModelCatalog
from replystream.models.client import DEFAULT_STREAM_URL

# Default config lives next to this module
_DEFAULT_CONFIG_PATH = Path(__file__).parent / "default.yaml"


def _load_yaml(path: Path) -> dict[str, Any]:
    if not path.exists():
        return {}
    with open(path, "r", encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    result = dict(base)
    for k, v in override.items():
        if k in result and isinstance(result[k], dict) and isinstance(v, dict):
            result[k] = _deep_merge(result[k], v)
        else:
            result[k] = v
    return result


class ChatSettings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="CHAT_", extra="ignore")
    stream_url: str = DEFAULT_STREAM_URL
    request_timeout: float = 120.0
    default_llm_id: str = ""
    default_purpose_id: str = "Generic"


class SpeechSettings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="SPEECH_", extra="ignore")
    auto_speak: Literal["off", "firstLine"] = "off"
    api_host: str = ""
    api_key: str = ""
    voice_id: str = ""


class RedisSettings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="REDIS_", extra="ignore")
    enabled: bool = False
    url: str = "redis://localhost:6379/0"


class LoggingSettings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="LOG_", extra="ignore")
    level: str = "INFO"
    json_format: bool = True


class Config(BaseSettings):
    """Application config: YAML + env. Secrets from env only."""

    model_config = SettingsConfigDict(env_nested_delimiter="__", extra="ignore")

    chat: ChatSettings = Field(default_factory=ChatSettings)
    speech: SpeechSettings = Field(default_factory=SpeechSettings)
    redis: RedisSettings = Field(default_factory=RedisSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    llms: list[LLMDescriptor] = Field(default_factory=list)
    purposes: dict[str, str] = Field(default_factory=dict)

    @classmethod
    def load(cls, config_path: str | Path | None = None) -> "Config":
        path = Path(config_path) if config_path else _DEFAULT_CONFIG_PATH
        yaml_data = _load_yaml(path)
        env_prefix = os.getenv("REPLYSTREAM_ENV_PREFIX", "")
        if env_prefix:
            yaml_data = _deep_merge(yaml_data, _load_yaml(Path(f"config/{env_prefix}.yaml")))
        stream_url = os.getenv("CHAT_STREAM_URL")
        if stream_url:
            yaml_data.setdefault("chat", {})["stream_url"] = stream_url
        redis_url = os.getenv("REDIS_URL")
        if redis_url:
            yaml_data.setdefault("redis", {})["url"] = redis_url
        tts_key = os.getenv("ELEVENLABS_API_KEY")
        if tts_key:
            yaml_data.setdefault("speech", {})["api_key"] = tts_key
        oai_key = os.getenv("OPENAI_API_KEY")
        if oai_key:
            for llm in yaml_data.get("llms") or []:
                llm.setdefault("source", {}).setdefault("oai_key", oai_key)
        return cls(**yaml_data)

    def catalog(self) -> ModelCatalog:
        return ModelCatalog(self.llms)


def get_config(config_path: str | Path | None = None) -> Config:
    return Config.load(config_path)
