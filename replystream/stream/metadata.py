"""Leading metadata packet: a JSON object prepended to the plain-text reply.

The backend may send ``{"model": "..."}`` before the first text byte. There is
no delimiter other than the object's own closing brace, so the packet is
complete once its first top-level ``}`` has arrived.
"""

from __future__ import annotations

import logging
from pydantic import BaseModel, ConfigDict, ValidationError

from replystream.stream.session import StreamSession

logger = logging.getLogger(__name__)

PACKET_OPEN = "{"
PACKET_CLOSE = "}"


class MetadataPacket(BaseModel):
    """First packet of a reply stream. Unknown keys are ignored."""

    model_config = ConfigDict(extra="ignore")

    model: str


def find_packet_end(text: str) -> int | None:
    """Index of the top-level closing brace of a leading object, or None if not arrived yet.

    Braces inside JSON strings do not count.
    """
    if not text.startswith(PACKET_OPEN):
        return None
    depth = 0
    in_string = False
    escaped = False
    for i, ch in enumerate(text):
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
            continue
        if ch == '"':
            in_string = True
        elif ch == PACKET_OPEN:
            depth += 1
        elif ch == PACKET_CLOSE:
            depth -= 1
            if depth == 0:
                return i
    return None


def parse_packet(raw: str) -> MetadataPacket | None:
    try:
        return MetadataPacket.model_validate_json(raw)
    except ValidationError as e:
        logger.debug("metadata packet not parseable yet: %s", e.errors(include_url=False))
        return None


def extract_metadata(session: StreamSession) -> MetadataPacket | None:
    """Strip the leading packet from the session buffer once it is complete and valid.

    Returns the packet when extraction happened on this call. A buffer that starts
    with anything but ``{`` marks extraction as abandoned for good; an incomplete
    or unparseable packet leaves the session untouched so the next chunk retries.
    """
    if not session.metadata_pending or not session.buffer:
        return None
    if not session.buffer.startswith(PACKET_OPEN):
        session.metadata_abandoned = True
        return None
    end = find_packet_end(session.buffer)
    if end is None:
        return None
    packet = parse_packet(session.buffer[: end + 1])
    if packet is None:
        return None
    session.buffer = session.buffer[end + 1 :]
    session.origin_label = packet.model
    session.metadata_extracted = True
    return packet
