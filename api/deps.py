"""
Shared state and dependency getters for API route modules.

Module-level singletons imported by route files.
"""

import time
from collections import OrderedDict
from typing import Dict, Optional

from fastapi import Depends, HTTPException

from config.logging_config import get_logger
from config.settings import settings
from core.conversion import (
    ConversionSession,
    FanOutSink,
    LoggingNotificationSink,
    NotificationCenter,
)
from core.pdf_engine import FontManager

logger = get_logger(__name__)

start_time = time.time()

# Fonts are registered once and shared by every session's renderer
font_manager = FontManager()


class SessionStore:
    """
    In-memory editing sessions, one NotificationCenter each.

    The oldest session is closed once more than max_sessions are open.
    """

    def __init__(self, max_sessions: int = 100, factory=None):
        self.max_sessions = max_sessions
        self.factory = factory or self._default_factory
        self._sessions: "OrderedDict[str, ConversionSession]" = OrderedDict()
        self._centers: Dict[str, NotificationCenter] = {}

    @staticmethod
    def _default_factory(sink) -> ConversionSession:
        return ConversionSession.from_settings(settings, sink=sink, font_manager=font_manager)

    def __len__(self) -> int:
        return len(self._sessions)

    async def create(self) -> ConversionSession:
        center = NotificationCenter()
        sink = FanOutSink(center, LoggingNotificationSink(get_logger("notifications")))
        session = self.factory(sink)
        self._sessions[session.id] = session
        self._centers[session.id] = center
        logger.info(f"Session created: {session.id}")

        while len(self._sessions) > self.max_sessions:
            oldest = next(iter(self._sessions))
            await self.close(oldest)
        return session

    def get(self, session_id: str) -> Optional[ConversionSession]:
        return self._sessions.get(session_id)

    def notifications(self, session_id: str) -> Optional[NotificationCenter]:
        return self._centers.get(session_id)

    async def close(self, session_id: str):
        session = self._sessions.pop(session_id, None)
        self._centers.pop(session_id, None)
        if session is not None:
            await session.aclose()
            logger.info(f"Session closed: {session_id}")

    async def close_all(self):
        for session_id in list(self._sessions):
            await self.close(session_id)


store = SessionStore(max_sessions=settings.max_sessions)


def get_store() -> SessionStore:
    return store


def get_session(session_id: str, sessions: SessionStore = Depends(get_store)) -> ConversionSession:
    """Dependency: look up a session or 404."""
    session = sessions.get(session_id)
    if session is None:
        raise HTTPException(status_code=404, detail=f"Session not found: {session_id}")
    return session
