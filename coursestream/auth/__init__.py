"""Viewer identity: session provider and bearer-token extraction."""

from .session import InMemorySessionProvider, SessionProvider, Subscription, Viewer


__all__ = ["InMemorySessionProvider", "SessionProvider", "Subscription", "Viewer"]
