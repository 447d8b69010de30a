"""Entry point: stream one assistant reply to the terminal."""

from __future__ import annotations

import argparse
import asyncio
import logging
import signal
import sys
import uuid
from typing import TYPE_CHECKING

from replystream.config import get_config
from replystream.core.logging_config import setup_logging
from replystream.errors import ConfigurationError

if TYPE_CHECKING:
    from replystream.config.loader import Config

logger = logging.getLogger(__name__)


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(prog="replystream", description="Stream an assistant reply.")
    p.add_argument("prompt", help="User message")
    p.add_argument("--config", default=None, help="Path to YAML config")
    p.add_argument("--conversation", default=None, help="Conversation id (default: random)")
    p.add_argument("--llm", default=None, help="Model id from the config's llms list")
    p.add_argument("--purpose", default=None, help="System purpose id")
    p.add_argument(
        "--speech-out",
        default=None,
        help="Append the spoken first paragraph (mp3) to this file when auto_speak is on",
    )
    return p.parse_args(argv)


def main(argv: list[str] | None = None) -> None:
    args = _parse_args(argv)
    config = get_config(args.config)
    setup_logging(config.logging.level, use_json=config.logging.json_format)
    try:
        text = asyncio.run(run_once(config, args))
    except ConfigurationError as e:
        logger.error("%s", e)
        sys.exit(2)
    print(text)


def _audio_writer(path: str):
    def write(audio: bytes) -> None:
        with open(path, "ab") as f:
            f.write(audio)
        logger.info("wrote %d bytes of speech", len(audio), extra={"path": path})

    return write


async def run_once(config: Config, args: argparse.Namespace) -> str:
    from replystream.core.bus import BusMessageSink, UpdateBus, stop_handler
    from replystream.core.registry import SessionRegistry
    from replystream.core.turn import run_assistant_turn
    from replystream.models.client import StreamChatClient
    from replystream.speech.elevenlabs import ElevenLabsSpeech
    from replystream.store.memory import InMemoryChatStore

    conversation_id = args.conversation or str(uuid.uuid4())
    llm_id = args.llm or config.chat.default_llm_id
    purpose_id = args.purpose or config.chat.default_purpose_id

    store = InMemoryChatStore()
    registry = SessionRegistry()
    client = StreamChatClient(config.chat.stream_url, timeout=config.chat.request_timeout)
    speech = None
    if config.speech.auto_speak != "off" and config.speech.api_key:
        if args.speech_out:
            speech = ElevenLabsSpeech(
                config.speech.api_key,
                voice_id=config.speech.voice_id,
                api_host=config.speech.api_host,
                on_audio=_audio_writer(args.speech_out),
            )
        else:
            logger.info("auto_speak is on but --speech-out is not set; not speaking")

    sink = None
    bus: UpdateBus | None = None
    listener: asyncio.Task | None = None
    if config.redis.enabled:
        bus = UpdateBus(config.redis.url)
        bus.subscribe_stop_requested(stop_handler(registry))
        sink = BusMessageSink(bus, store.edit_message)
        listener = asyncio.create_task(bus.run_listener())

    loop = asyncio.get_running_loop()
    try:
        loop.add_signal_handler(signal.SIGINT, registry.stop, conversation_id)
    except NotImplementedError:
        logger.debug("signal handlers not supported on this platform")

    store.append_message(conversation_id, "user", args.prompt)
    try:
        return await run_assistant_turn(
            conversation_id,
            store.history(conversation_id),
            llm_id,
            purpose_id,
            store=store,
            registry=registry,
            catalog=config.catalog(),
            client=client,
            speech=speech,
            auto_speak=config.speech.auto_speak,
            purposes=config.purposes,
            sink=sink,
        )
    finally:
        try:
            loop.remove_signal_handler(signal.SIGINT)
        except NotImplementedError:
            pass
        if bus is not None:
            bus.stop()
            if listener is not None:
                listener.cancel()
                await asyncio.gather(listener, return_exceptions=True)
            await bus.disconnect()


if __name__ == "__main__":
    main()
