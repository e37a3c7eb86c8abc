"""Notification dispatch for ride lifecycle events."""

from .dispatch import LoggingSink, NotificationDispatch, NotificationSink

__all__ = ["LoggingSink", "NotificationDispatch", "NotificationSink"]
