"""In-memory store of open agreement wizards"""

import asyncio
import logging
from datetime import datetime, timedelta
from typing import List, Optional
from uuid import uuid4

from rra_agreements.services.wizard import AgreementWizard

logger = logging.getLogger(__name__)


class SessionEntry:
    """A wizard plus session metadata"""

    def __init__(self, session_id: str, wizard: AgreementWizard):
        self.session_id = session_id
        self.wizard = wizard
        self.created_at = datetime.now()
        self.last_active = datetime.now()

    def touch(self):
        self.last_active = datetime.now()


class SessionStore:
    """Wizard sessions keyed by ID, dropped after ttl_minutes idle.

    Drafts live in the record store, so losing a session only loses the
    navigation state; evicted wizards are closed to flush unsaved edits.
    """

    def __init__(self, ttl_minutes: int = 30, max_sessions: int = 1000):
        self._sessions: dict[str, SessionEntry] = {}
        self._ttl = timedelta(minutes=ttl_minutes)
        self._max = max_sessions
        self._lock = asyncio.Lock()

    async def add(self, wizard: AgreementWizard) -> SessionEntry:
        """Register a wizard under a new session ID"""
        evicted = []
        async with self._lock:
            if len(self._sessions) >= self._max:
                evicted = self._evict_oldest()
            entry = SessionEntry(str(uuid4()), wizard)
            self._sessions[entry.session_id] = entry
        await self._close_all(evicted)
        return entry

    async def get(self, session_id: str) -> Optional[SessionEntry]:
        """Get session by ID, returns None if not found or expired"""
        async with self._lock:
            entry = self._sessions.get(session_id)
            if entry and (datetime.now() - entry.last_active) < self._ttl:
                entry.touch()
                return entry
            return None

    async def delete(self, session_id: str) -> Optional[SessionEntry]:
        """Remove a session. The caller closes its wizard."""
        async with self._lock:
            return self._sessions.pop(session_id, None)

    async def evict_expired(self) -> int:
        """Remove and close idle sessions"""
        async with self._lock:
            now = datetime.now()
            expired = [
                self._sessions.pop(sid) for sid, entry in list(self._sessions.items())
                if (now - entry.last_active) >= self._ttl
            ]
        await self._close_all(expired)
        return len(expired)

    async def close_all(self) -> int:
        """Close every open wizard (shutdown)"""
        async with self._lock:
            entries = list(self._sessions.values())
            self._sessions.clear()
        await self._close_all(entries)
        return len(entries)

    def _evict_oldest(self) -> List[SessionEntry]:
        """Remove the oldest session to make room (called under lock)"""
        if not self._sessions:
            return []
        oldest_id = min(self._sessions, key=lambda sid: self._sessions[sid].last_active)
        return [self._sessions.pop(oldest_id)]

    async def _close_all(self, entries: List[SessionEntry]) -> None:
        for entry in entries:
            logger.info(f"Closing wizard session {entry.session_id}")
            await entry.wizard.close()

    @property
    def active_count(self) -> int:
        return len(self._sessions)
