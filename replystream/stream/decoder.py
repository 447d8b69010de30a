"""Incremental UTF-8 decoding of raw body chunks into a cumulative text buffer."""

from __future__ import annotations

import codecs


class ChunkDecoder:
    """Decodes bytes chunk by chunk, keeping partial multi-byte sequences between calls.

    Invalid bytes become U+FFFD instead of aborting the stream.
    """

    def __init__(self, encoding: str = "utf-8") -> None:
        self._decoder = codecs.getincrementaldecoder(encoding)(errors="replace")
        self._text = ""

    @property
    def text(self) -> str:
        return self._text

    def decode(self, chunk: bytes) -> str:
        """Decode one chunk and return only the newly produced text."""
        return self._decoder.decode(chunk, final=False)

    def feed(self, chunk: bytes) -> str:
        """Decode one chunk and return the cumulative text so far."""
        self._text += self.decode(chunk)
        return self._text

    def flush(self) -> str:
        """Emit whatever is left in the decoder (dangling bytes become U+FFFD)."""
        tail = self._decoder.decode(b"", final=True)
        self._text += tail
        return tail
