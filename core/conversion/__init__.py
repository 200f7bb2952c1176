"""
Conversion - session state machine and user notifications.

Usage:
    from core.conversion import ConversionSession, NotificationCenter

    center = NotificationCenter()
    session = ConversionSession(sink=center)
    session.edit("hello")
    await session.convert()
"""

from .job import ConversionJob, InvalidTransition, JobState
from .notifications import (
    FanOutSink,
    LoggingNotificationSink,
    Notification,
    NotificationCenter,
    NotificationSink,
    Severity,
)
from .session import ConversionSession, SessionConfig


__all__ = [
    'ConversionJob',
    'InvalidTransition',
    'JobState',
    'FanOutSink',
    'LoggingNotificationSink',
    'Notification',
    'NotificationCenter',
    'NotificationSink',
    'Severity',
    'ConversionSession',
    'SessionConfig',
]
