"""Update Bus: Redis pub/sub for message patches and stop requests."""

from __future__ import annotations

import inspect
import logging
from typing import Awaitable, Callable

import redis.asyncio as aioredis
from pydantic import BaseModel

from replystream.core.events import MessagePatch, MessageUpdated, SessionTarget, StopRequested
from replystream.core.registry import SessionRegistry

logger = logging.getLogger(__name__)

# Channel names
CH_MESSAGE_UPDATED = "replystream:message_updated"
CH_STOP_REQUESTED = "replystream:stop_requested"


def _serialize(payload: BaseModel) -> str:
    return payload.model_dump_json()


def _deserialize(raw: bytes, model: type[BaseModel]) -> BaseModel:
    return model.model_validate_json(raw.decode("utf-8"))


class UpdateBus:
    """Redis-backed bus. Publishes message updates, delivers stop requests to handlers."""

    def __init__(self, redis_url: str) -> None:
        self._redis_url = redis_url
        self._client: aioredis.Redis | None = None
        self._pubsub: aioredis.client.PubSub | None = None
        self._handlers: dict[str, list[Callable[..., Awaitable[None]]]] = {}
        self._running = False

    async def connect(self) -> None:
        if self._client is None:
            self._client = aioredis.from_url(
                self._redis_url,
                encoding="utf-8",
                decode_responses=False,
            )
            await self._client.ping()
        logger.info("UpdateBus connected to Redis")

    async def disconnect(self) -> None:
        if self._pubsub:
            await self._pubsub.close()
            self._pubsub = None
        if self._client:
            await self._client.close()
            self._client = None
        self._running = False

    async def publish_message_updated(self, payload: MessageUpdated) -> None:
        await self._ensure_connected()
        await self._client.publish(CH_MESSAGE_UPDATED, _serialize(payload))

    async def publish_stop_requested(self, payload: StopRequested) -> None:
        await self._ensure_connected()
        await self._client.publish(CH_STOP_REQUESTED, _serialize(payload))
        logger.debug("published stop_requested", extra={"conversation_id": payload.conversation_id})

    async def _ensure_connected(self) -> None:
        if self._client is None:
            await self.connect()

    def subscribe_stop_requested(self, handler: Callable[[StopRequested], Awaitable[None]]) -> None:
        self._handlers.setdefault(CH_STOP_REQUESTED, []).append(handler)

    _channel_models = {
        CH_STOP_REQUESTED: StopRequested,
    }

    async def run_listener(self) -> None:
        """Run the pub/sub listener and dispatch to handlers. Blocks until stop."""
        channels = [ch for ch in self._channel_models if self._handlers.get(ch)]
        if not channels:
            return
        await self._ensure_connected()
        self._pubsub = self._client.pubsub()
        await self._pubsub.subscribe(*channels)
        self._running = True
        logger.info("UpdateBus listener started", extra={"channels": channels})
        try:
            async for message in self._pubsub.listen():
                if not self._running:
                    break
                if message["type"] != "message":
                    continue
                ch = message["channel"]
                if isinstance(ch, bytes):
                    ch = ch.decode("utf-8")
                data = message.get("data")
                model_cls = self._channel_models.get(ch)
                if not model_cls or not data:
                    continue
                try:
                    payload = _deserialize(data, model_cls)
                except Exception as e:
                    logger.warning("failed to deserialize event", extra={"channel": ch, "error": str(e)})
                    continue
                for handler in self._handlers.get(ch, []):
                    try:
                        await handler(payload)
                    except Exception as e:
                        logger.exception("handler failed for %s: %s", ch, e)
        finally:
            await self._pubsub.unsubscribe()
            self._running = False

    def stop(self) -> None:
        self._running = False


class BusMessageSink:
    """MessageSink that republishes every patch on the bus, optionally after a local sink."""

    def __init__(self, bus: UpdateBus, inner: Callable[..., object] | None = None) -> None:
        self._bus = bus
        self._inner = inner

    async def __call__(self, target: SessionTarget, patch: MessagePatch, touch: bool) -> None:
        if self._inner is not None:
            result = self._inner(target, patch, touch)
            if inspect.isawaitable(result):
                await result
        try:
            await self._bus.publish_message_updated(
                MessageUpdated(target=target, patch=patch, touch=touch)
            )
        except Exception as e:
            logger.warning("publish message_updated failed: %s", e)


def stop_handler(registry: SessionRegistry) -> Callable[[StopRequested], Awaitable[None]]:
    """Handler that stops the registered turn of the requested conversation."""

    async def _on_stop(payload: StopRequested) -> None:
        if not registry.stop(payload.conversation_id):
            logger.debug("stop requested with no turn in flight", extra={"conversation_id": payload.conversation_id})

    return _on_stop
