"""Lesson playback, progress, access and certificate engine."""

__version__ = "0.1.0"
