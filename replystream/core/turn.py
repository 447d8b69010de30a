"""One assistant turn: prepare history, create the typing message, stream the reply into it."""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Mapping, Protocol

from replystream.core.events import HistoryMessage, MessagePatch, SessionTarget, SpeechSynthesizer
from replystream.core.registry import SessionRegistry
from replystream.models.catalog import ModelCatalog, build_chat_request
from replystream.models.client import StreamChatClient
from replystream.stream.cancellation import CancellationController
from replystream.stream.driver import StreamDriver

logger = logging.getLogger(__name__)

TYPING_PLACEHOLDER = "..."

TitleGenerator = Callable[[str], Awaitable[None]]


class ChatStore(Protocol):
    def create_assistant_typing_message(
        self, conversation_id: str, llm_id: str, purpose_id: str | None, text: str = ...
    ) -> str:
        ...

    def edit_message(self, target: SessionTarget, patch: MessagePatch, touch: bool) -> object:
        ...


def apply_system_purpose(
    history: list[HistoryMessage], purpose_id: str | None, purposes: Mapping[str, str]
) -> list[HistoryMessage]:
    """Sync the leading system message with the purpose, unless the user edited it."""
    system_text = purposes.get(purpose_id or "")
    if system_text is None:
        return list(history)
    out = list(history)
    if out and out[0].role == "system":
        if not out[0].edited:
            out[0] = out[0].model_copy(update={"text": system_text, "purpose_id": purpose_id})
        return out
    out.insert(
        0,
        HistoryMessage(id=f"system-{purpose_id}", role="system", text=system_text, purpose_id=purpose_id),
    )
    return out


async def run_assistant_turn(
    conversation_id: str,
    history: list[HistoryMessage],
    llm_id: str,
    purpose_id: str | None,
    *,
    store: ChatStore,
    registry: SessionRegistry,
    catalog: ModelCatalog,
    client: StreamChatClient,
    speech: SpeechSynthesizer | None = None,
    auto_speak: str = "off",
    purposes: Mapping[str, str] | None = None,
    sink: Callable[..., object] | None = None,
    title_generator: TitleGenerator | None = None,
) -> str:
    """Stream one reply into a new assistant message. Returns the final reply text.

    Raises ConfigurationError before anything is created when the model is
    unknown or its options are incomplete. Stream failures never propagate.
    ``sink`` defaults to ``store.edit_message``.
    """
    history = apply_system_purpose(history, purpose_id, purposes or {})
    llm = catalog.find_or_raise(llm_id)
    request = build_chat_request(llm, history)

    message_id = store.create_assistant_typing_message(
        conversation_id, llm_id, purpose_id, TYPING_PLACEHOLDER
    )
    target = SessionTarget(conversation_id=conversation_id, message_id=message_id)

    # while a controller is registered the conversation can be stopped
    controller = CancellationController()
    registry.start(conversation_id, controller)
    logger.info(
        "assistant turn started",
        extra={"conversation_id": conversation_id, "message_id": message_id, "llm_id": llm_id},
    )
    try:
        driver = StreamDriver(
            target,
            sink or store.edit_message,
            speech=speech,
            speak_first_paragraph=auto_speak == "firstLine",
        )
        text = await driver.run(client.stream(request, controller.token), controller.token)
    finally:
        registry.clear(conversation_id, controller)

    # the reply is final already; only the detached first-paragraph speech may still run
    pending = driver.background_tasks()
    if pending:
        await asyncio.gather(*pending, return_exceptions=True)

    if title_generator is not None:
        try:
            await title_generator(conversation_id)
        except Exception as e:
            logger.warning("title generation failed: %s", e)
    return text
