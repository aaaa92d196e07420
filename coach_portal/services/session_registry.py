"""FormSessionRegistry: singleton registry of open form sessions.

A session lives from the moment a form is opened until it is closed
explicitly or sits idle longer than the configured timeout.
"""

import asyncio
import logging
import time
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional

from coach_portal.models.form_configuration import FormConfiguration
from coach_portal.models.form_submission import FormSubmission
from coach_portal.models.user import User

logger = logging.getLogger(__name__)


class SessionState(str, Enum):
    NEW = "new"
    DRAFT = "draft"
    SUBMITTED = "submitted"


@dataclass
class FormSession:
    config: FormConfiguration
    user: User
    language: str = "en"
    form_data: dict[str, Any] = field(default_factory=dict)
    submission: Optional[FormSubmission] = None
    state: SessionState = SessionState.NEW
    session_id: str = field(default_factory=lambda: uuid.uuid4().hex)
    created_at: float = field(default_factory=time.time)
    last_activity: float = field(default_factory=time.time)
    # Serializes save/submit so two quick saves never create two records
    save_lock: asyncio.Lock = field(default_factory=asyncio.Lock)

    @property
    def read_only(self) -> bool:
        return self.state == SessionState.SUBMITTED

    def touch(self) -> None:
        self.last_activity = time.time()


class FormSessionRegistry:
    _instance: Optional["FormSessionRegistry"] = None

    def __init__(self):
        self._sessions: dict[str, FormSession] = {}
        self._lock = asyncio.Lock()
        self._cleanup_task: Optional[asyncio.Task] = None

    @classmethod
    def get_instance(cls) -> "FormSessionRegistry":
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    async def register(self, session: FormSession) -> None:
        async with self._lock:
            self._sessions[session.session_id] = session

    def get(self, session_id: str) -> Optional[FormSession]:
        session = self._sessions.get(session_id)
        if session:
            session.touch()
        return session

    async def remove(self, session_id: str) -> Optional[FormSession]:
        async with self._lock:
            return self._sessions.pop(session_id, None)

    async def remove_stale(self, timeout_seconds: int) -> list[str]:
        now = time.time()
        async with self._lock:
            stale = [sid for sid, s in self._sessions.items() if now - s.last_activity > timeout_seconds]
            for sid in stale:
                self._sessions.pop(sid, None)
        if stale:
            logger.info(f"Closed {len(stale)} idle form session(s)")
        return stale

    async def start_cleanup_loop(self, timeout_seconds: int = 1800) -> None:
        """Background task that drops sessions idle for longer than timeout_seconds."""
        while True:
            await asyncio.sleep(60)
            await self.remove_stale(timeout_seconds)

    def start_background_cleanup(self, timeout_seconds: int = 1800) -> None:
        if self._cleanup_task is None or self._cleanup_task.done():
            loop = asyncio.get_event_loop()
            self._cleanup_task = loop.create_task(
                self.start_cleanup_loop(timeout_seconds)
            )

    def stop_background_cleanup(self) -> None:
        if self._cleanup_task and not self._cleanup_task.done():
            self._cleanup_task.cancel()
        self._cleanup_task = None

    @property
    def active_count(self) -> int:
        return len(self._sessions)
