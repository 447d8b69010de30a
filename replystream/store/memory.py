"""In-process chat store. Its ``edit_message`` is a MessageSink."""

from __future__ import annotations

import logging
import threading
import time
import uuid

from replystream.core.events import HistoryMessage, MessagePatch, SessionTarget

logger = logging.getLogger(__name__)


class InMemoryChatStore:
    """Conversations as ordered lists of messages. No persistence."""

    def __init__(self) -> None:
        self._conversations: dict[str, list[HistoryMessage]] = {}
        self._updated_at: dict[str, float] = {}
        self._lock = threading.Lock()

    def history(self, conversation_id: str) -> list[HistoryMessage]:
        with self._lock:
            return [m.model_copy() for m in self._conversations.get(conversation_id, [])]

    def append_message(self, conversation_id: str, role: str, text: str) -> HistoryMessage:
        msg = HistoryMessage(id=str(uuid.uuid4()), role=role, text=text)
        with self._lock:
            self._conversations.setdefault(conversation_id, []).append(msg)
            self._updated_at[conversation_id] = time.time()
        return msg.model_copy()

    def create_assistant_typing_message(
        self,
        conversation_id: str,
        llm_id: str,
        purpose_id: str | None,
        text: str = "...",
    ) -> str:
        msg = HistoryMessage(
            id=str(uuid.uuid4()),
            role="assistant",
            text=text,
            typing=True,
            origin_label=llm_id,
            purpose_id=purpose_id,
        )
        with self._lock:
            self._conversations.setdefault(conversation_id, []).append(msg)
            self._updated_at[conversation_id] = time.time()
        return msg.id

    def get_message(self, conversation_id: str, message_id: str) -> HistoryMessage | None:
        with self._lock:
            for m in self._conversations.get(conversation_id, []):
                if m.id == message_id:
                    return m.model_copy()
        return None

    def updated_at(self, conversation_id: str) -> float | None:
        with self._lock:
            return self._updated_at.get(conversation_id)

    def edit_message(self, target: SessionTarget, patch: MessagePatch, touch: bool) -> None:
        changes = patch.changes()
        if "in_progress" in changes:
            changes["typing"] = changes.pop("in_progress")
        with self._lock:
            for i, m in enumerate(self._conversations.get(target.conversation_id, [])):
                if m.id == target.message_id:
                    self._conversations[target.conversation_id][i] = m.model_copy(update=changes)
                    break
            else:
                logger.debug(
                    "edit for unknown message",
                    extra={"conversation_id": target.conversation_id, "message_id": target.message_id},
                )
                return
            if touch:
                self._updated_at[target.conversation_id] = time.time()
