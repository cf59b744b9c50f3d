"""Task lifecycle event bus."""

from marketclaw.session.wire import EventType, Wire, WireEvent

__all__ = ["EventType", "Wire", "WireEvent"]
