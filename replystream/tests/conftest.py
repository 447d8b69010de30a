"""Pytest fixtures and config."""

from __future__ import annotations

import pytest

from replystream.core.events import SessionTarget


@pytest.fixture(autouse=True)
def env_cleanup(monkeypatch):
    """Avoid picking up real keys or endpoints in tests."""
    for name in (
        "OPENAI_API_KEY",
        "ELEVENLABS_API_KEY",
        "CHAT_STREAM_URL",
        "REDIS_URL",
        "REPLYSTREAM_ENV_PREFIX",
    ):
        monkeypatch.delenv(name, raising=False)
    yield


@pytest.fixture
def target():
    return SessionTarget(conversation_id="c1", message_id="m1")


class RecordingSink:
    """Sink that records every (patch changes, touch) it receives."""

    def __init__(self) -> None:
        self.calls: list[tuple[SessionTarget, dict, bool]] = []

    def __call__(self, target, patch, touch):
        self.calls.append((target, patch.changes(), touch))

    @property
    def patches(self) -> list[dict]:
        return [c[1] for c in self.calls]

    @property
    def texts(self) -> list[str]:
        return [p["text"] for p in self.patches if "text" in p]

    @property
    def origins(self) -> list[str]:
        return [p["origin_label"] for p in self.patches if "origin_label" in p]

    @property
    def finals(self) -> list[dict]:
        return [p for p in self.patches if p.get("in_progress") is False]


@pytest.fixture
def sink():
    return RecordingSink()
