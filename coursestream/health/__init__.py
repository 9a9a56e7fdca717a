"""Health check module."""

from coursestream.health.router import router


__all__ = ["router"]
