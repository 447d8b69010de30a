"""Mutable state of one assistant turn."""

from __future__ import annotations

from dataclasses import dataclass

from replystream.core.events import SessionTarget


@dataclass
class StreamSession:
    """Everything accumulated for a single turn.

    The flags are one-way: once set, the matching concern is skipped for the
    rest of the session. ``buffer`` only grows, except for the one-time removal
    of the metadata prefix.
    """

    target: SessionTarget
    buffer: str = ""
    metadata_extracted: bool = False
    metadata_abandoned: bool = False
    first_boundary_sent: bool = False
    origin_label: str | None = None
    cancelled: bool = False

    @property
    def metadata_pending(self) -> bool:
        return not (self.metadata_extracted or self.metadata_abandoned)

    def append(self, text: str) -> None:
        self.buffer += text
