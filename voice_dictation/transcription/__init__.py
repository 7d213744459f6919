"""Dictation session orchestration."""

from .session import LoggingEvents, Session, SessionCoordinator, SessionEvents

__all__ = ["LoggingEvents", "Session", "SessionCoordinator", "SessionEvents"]
