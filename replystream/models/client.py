"""HTTP client for the stream-chat endpoint: POST the request, yield raw body chunks."""

from __future__ import annotations

import logging
from typing import AsyncIterator

import httpx

from replystream.models.catalog import ChatRequest
from replystream.stream.cancellation import CancellationToken

logger = logging.getLogger(__name__)

DEFAULT_STREAM_URL = "http://localhost:3000/api/openai/stream-chat"


class StreamChatClient:
    """Streams the reply body as bytes. Cancellation aborts the in-flight read."""

    def __init__(
        self,
        stream_url: str = DEFAULT_STREAM_URL,
        *,
        timeout: float = 120.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._stream_url = stream_url
        self._timeout = timeout
        self._transport = transport

    def stream(
        self, request: ChatRequest, token: CancellationToken | None = None
    ) -> AsyncIterator[bytes]:
        """Async generator of body chunks in arrival order.

        Raises StreamCancelled when ``token`` fires, httpx errors on transport or
        HTTP status failures. A 204 response yields nothing.
        """

        async def _guard(aw):
            if token is None:
                return await aw
            return await token.run(aw)

        async def _stream() -> AsyncIterator[bytes]:
            payload = request.to_payload()
            async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
                req = client.build_request(
                    "POST",
                    self._stream_url,
                    json=payload,
                    headers={"Content-Type": "application/json"},
                )
                resp = await _guard(client.send(req, stream=True))
                try:
                    resp.raise_for_status()
                    if resp.status_code == 204:
                        logger.debug("stream-chat returned no body")
                        return
                    body = resp.aiter_bytes()
                    while True:
                        chunk = await _guard(_next_chunk(body))
                        if chunk is None:
                            break
                        if chunk:
                            yield chunk
                finally:
                    await resp.aclose()

        return _stream()


async def _next_chunk(body: AsyncIterator[bytes]) -> bytes | None:
    try:
        return await body.__anext__()
    except StopAsyncIteration:
        return None
