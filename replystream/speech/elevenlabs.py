"""ElevenLabs text-to-speech over httpx. See https://elevenlabs.io/docs/api-reference/text-to-speech."""

from __future__ import annotations

import inspect
import logging
from typing import Awaitable, Callable

import httpx

logger = logging.getLogger(__name__)

DEFAULT_API_HOST = "https://api.elevenlabs.io"
DEFAULT_VOICE_ID = "21m00Tcm4TlvDq8ikWAM"

AudioCallback = Callable[[bytes], Awaitable[None] | None]


def _api_root(api_host: str) -> str:
    u = (api_host or "").strip().rstrip("/")
    if not u:
        return DEFAULT_API_HOST
    if not u.startswith(("http://", "https://")):
        u = f"https://{u}"
    return u


class ElevenLabsSpeech:
    """Converts text to audio (mp3) and hands it to ``on_audio`` when set."""

    def __init__(
        self,
        api_key: str = "",
        *,
        voice_id: str = "",
        api_host: str = "",
        on_audio: AudioCallback | None = None,
        timeout: float = 60.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._api_key = api_key
        self._voice_id = voice_id or DEFAULT_VOICE_ID
        self._root = _api_root(api_host)
        self._on_audio = on_audio
        self._timeout = timeout
        self._transport = transport

    async def speak(self, text: str) -> bytes:
        if not text.strip():
            return b""
        url = f"{self._root}/v1/text-to-speech/{self._voice_id}"
        headers = {"Content-Type": "application/json", "Accept": "audio/mpeg"}
        if self._api_key:
            headers["xi-api-key"] = self._api_key
        body = {"text": text}
        async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
            r = await client.post(url, json=body, headers=headers)
            r.raise_for_status()
            audio = r.content
        logger.debug("speech synthesized", extra={"chars": len(text), "audio_bytes": len(audio)})
        if self._on_audio is not None:
            result = self._on_audio(audio)
            if inspect.isawaitable(result):
                await result
        return audio
