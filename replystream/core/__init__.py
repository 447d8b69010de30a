"""Core: events, registry, bus, turn runner, logging."""
