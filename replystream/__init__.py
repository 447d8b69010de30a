"""replystream: incremental assistant reply streaming into message-state updates."""

__version__ = "0.1.0"
