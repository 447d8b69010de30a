"""Event payloads and message records. All events are Pydantic models."""

from __future__ import annotations

from typing import Any, Awaitable, Protocol

from pydantic import BaseModel, ConfigDict, Field


class SessionTarget(BaseModel):
    """Identifies the assistant message a turn writes into."""

    model_config = ConfigDict(frozen=True)

    conversation_id: str
    message_id: str


class MessagePatch(BaseModel):
    """Partial update of an assistant message. Unset fields mean "unchanged"."""

    origin_label: str | None = Field(default=None, description="Model that produced the reply")
    text: str | None = Field(default=None, description="Cumulative reply text")
    in_progress: bool | None = Field(default=None, description="Typing indicator")

    def changes(self) -> dict[str, Any]:
        return self.model_dump(exclude_none=True)


class ChatMessage(BaseModel):
    """Wire shape of a history entry: role and content only."""

    role: str
    content: str


class HistoryMessage(BaseModel):
    """A message as kept by a chat store."""

    id: str
    role: str = Field(description="system | user | assistant")
    text: str = ""
    typing: bool = False
    origin_label: str | None = None
    purpose_id: str | None = None
    edited: bool = Field(default=False, description="Manually edited by the user")

    def to_wire(self) -> ChatMessage:
        return ChatMessage(role=self.role, content=self.text)


class MessageUpdated(BaseModel):
    """Published on every patch applied to an assistant message."""

    target: SessionTarget
    patch: MessagePatch
    touch: bool = False


class StopRequested(BaseModel):
    """Asks whoever owns the in-flight turn of a conversation to stop it."""

    conversation_id: str


class MessageSink(Protocol):
    """Receives partial-state updates for a turn. May be sync or async."""

    def __call__(
        self, target: SessionTarget, patch: MessagePatch, touch: bool
    ) -> Awaitable[None] | None:
        ...


class SpeechSynthesizer(Protocol):
    """Speaks plain text. The stream never waits on the outcome."""

    async def speak(self, text: str) -> Any:
        ...
