"""First-paragraph detection, used to start speaking before the reply is complete."""

from __future__ import annotations

from replystream.stream.session import StreamSession

# Cut points must fall strictly between these offsets.
MIN_PARAGRAPH_CHARS = 100
MAX_PARAGRAPH_CHARS = 400


def find_paragraph_cut(
    text: str,
    lower: int = MIN_PARAGRAPH_CHARS,
    upper: int = MAX_PARAGRAPH_CHARS,
) -> int | None:
    """Last newline (or, failing that, last ". ") if it lies in (lower, upper)."""
    cut = text.rfind("\n")
    if cut < 0:
        cut = text.rfind(". ")
    if lower < cut < upper:
        return cut
    return None


def detect_first_paragraph(session: StreamSession) -> str | None:
    """One-shot: returns the first paragraph the first time a usable cut appears."""
    if not session.metadata_extracted or session.first_boundary_sent:
        return None
    cut = find_paragraph_cut(session.buffer)
    if cut is None:
        return None
    session.first_boundary_sent = True
    return session.buffer[:cut]
