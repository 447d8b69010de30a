"""Exception hierarchy. Only ConfigurationError is meant to reach callers of a turn."""

from __future__ import annotations


class ReplyStreamError(Exception):
    """Base class for replystream errors."""


class ConfigurationError(ReplyStreamError):
    """Model options or setup are missing; raised before any network call."""


class StreamCancelled(ReplyStreamError):
    """The cancellation token fired while a read was in flight."""
