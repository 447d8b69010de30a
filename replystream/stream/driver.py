"""StreamDriver: reads a reply body and turns it into message patches for one turn.

Per chunk: decode, strip the metadata packet while it is pending, look for the
first paragraph while it is eligible, then publish the cumulative text. End of
stream, cancellation and transport errors all end in a single finalize patch
that switches the typing indicator off.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from enum import Enum
from typing import AsyncIterable, AsyncIterator, Callable

from replystream.core.events import MessagePatch, MessageSink, SessionTarget, SpeechSynthesizer
from replystream.errors import StreamCancelled
from replystream.stream.boundary import detect_first_paragraph
from replystream.stream.cancellation import CancellationToken
from replystream.stream.decoder import ChunkDecoder
from replystream.stream.metadata import extract_metadata
from replystream.stream.session import StreamSession

logger = logging.getLogger(__name__)

ErrorReporter = Callable[[SessionTarget, BaseException], None]


class DriverState(str, Enum):
    IDLE = "idle"
    READING = "reading"
    METADATA_PENDING = "metadata_pending"
    METADATA_DONE = "metadata_done"
    FINALIZING = "finalizing"
    DONE = "done"


async def _next_or_none(it: AsyncIterator[bytes]) -> bytes | None:
    try:
        return await it.__anext__()
    except StopAsyncIteration:
        return None


def _log_transport_error(target: SessionTarget, exc: BaseException) -> None:
    logger.error(
        "reply stream failed: %s",
        exc,
        exc_info=exc,
        extra={"conversation_id": target.conversation_id, "message_id": target.message_id},
    )


class StreamDriver:
    """Drives a single turn. Create one per assistant reply."""

    def __init__(
        self,
        target: SessionTarget,
        sink: MessageSink,
        *,
        speech: SpeechSynthesizer | None = None,
        speak_first_paragraph: bool = False,
        error_reporter: ErrorReporter | None = None,
    ) -> None:
        self._target = target
        self._sink = sink
        self._speech = speech
        self._speak_first_paragraph = speak_first_paragraph and speech is not None
        self._report_error = error_reporter or _log_transport_error
        self._state = DriverState.IDLE
        self._session: StreamSession | None = None
        self._background: set[asyncio.Task] = set()

    @property
    def state(self) -> DriverState:
        return self._state

    @property
    def session(self) -> StreamSession | None:
        """Live session while reading; None before start and after finalize."""
        return self._session

    def background_tasks(self) -> list[asyncio.Task]:
        """Speech tasks still running. Callers that own the loop await these before it closes."""
        return [t for t in self._background if not t.done()]

    async def run(
        self, source: AsyncIterable[bytes] | None, token: CancellationToken | None = None
    ) -> str:
        """Consume ``source`` until it ends, is cancelled or fails. Returns the final text.

        ``source`` None means the response had no body. Never raises for
        stream-time failures.
        """
        if self._state is not DriverState.IDLE:
            raise RuntimeError(f"StreamDriver already used (state={self._state.value})")
        session = StreamSession(target=self._target)
        self._session = session
        self._state = DriverState.READING
        try:
            if source is not None:
                await self._read(session, source, token)
        except StreamCancelled:
            session.cancelled = True
            logger.info("reply stream stopped by user", extra=self._log_extra(session))
        except Exception as e:
            try:
                self._report_error(self._target, e)
            except Exception:
                logger.exception("error reporter failed")
        finally:
            await self._finalize(session)
        return session.buffer

    async def _read(
        self,
        session: StreamSession,
        source: AsyncIterable[bytes],
        token: CancellationToken | None,
    ) -> None:
        decoder = ChunkDecoder()
        chunks = 0
        it = source.__aiter__()
        try:
            while True:
                # a source that never yields still stops when the token fires
                if token is not None:
                    chunk = await token.run(_next_or_none(it))
                else:
                    chunk = await _next_or_none(it)
                if chunk is None:
                    break
                chunks += 1
                session.append(decoder.decode(chunk))
                await self._on_text(session)
                if token is not None and token.cancelled:
                    raise StreamCancelled()
        finally:
            # releases the HTTP response when we stop early
            aclose = getattr(it, "aclose", None)
            if aclose is not None:
                await aclose()
        tail = decoder.flush()
        if tail:
            session.append(tail)
            await self._on_text(session)
        logger.debug("reply stream ended", extra={**self._log_extra(session), "chunks": chunks})

    async def _on_text(self, session: StreamSession) -> None:
        if session.metadata_pending:
            self._state = DriverState.METADATA_PENDING
            packet = extract_metadata(session)
            if packet is not None:
                await self._publish(MessagePatch(origin_label=packet.model))
        if not session.metadata_pending:
            self._state = DriverState.METADATA_DONE

        if self._speak_first_paragraph:
            paragraph = detect_first_paragraph(session)
            if paragraph is not None:
                self._speak_detached(paragraph)

        await self._publish(MessagePatch(text=session.buffer))

    def _speak_detached(self, text: str) -> None:
        task = asyncio.create_task(self._speak(text))
        self._background.add(task)
        task.add_done_callback(self._background.discard)

    async def _speak(self, text: str) -> None:
        try:
            await self._speech.speak(text)
        except Exception as e:
            logger.warning("speaking first paragraph failed: %s", e)

    async def _publish(self, patch: MessagePatch) -> None:
        result = self._sink(self._target, patch, False)
        if inspect.isawaitable(result):
            await result

    async def _finalize(self, session: StreamSession) -> None:
        self._state = DriverState.FINALIZING
        try:
            await self._publish(MessagePatch(in_progress=False))
        except Exception as e:
            logger.exception("final update failed: %s", e)
        self._state = DriverState.DONE
        self._session = None

    def _log_extra(self, session: StreamSession) -> dict:
        return {
            "conversation_id": self._target.conversation_id,
            "message_id": self._target.message_id,
            "chars": len(session.buffer),
        }
