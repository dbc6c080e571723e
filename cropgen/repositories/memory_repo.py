"""Process-local repositories for development and tests (STORAGE_BACKEND=memory)."""
import asyncio
from datetime import datetime
from typing import Dict, Optional

from cropgen.core.errors import NotFound
from cropgen.models.schemas import (
    AnswerRecord,
    ContentBundle,
    PlayerStats,
    SessionProgress,
    bundle_key,
    session_key,
)
from cropgen.repositories.progress_rules import apply_answer, apply_completion


class MemoryContentRepository:
    def __init__(self):
        self._items: Dict[str, ContentBundle] = {}
        self._lock = asyncio.Lock()

    async def get(self, day: str, crop: str, language: str) -> Optional[ContentBundle]:
        return self._items.get(bundle_key(day, crop, language))

    async def create_if_absent(self, bundle: ContentBundle) -> ContentBundle:
        async with self._lock:
            return self._items.setdefault(bundle.key, bundle)

    async def replace(self, bundle: ContentBundle) -> ContentBundle:
        async with self._lock:
            self._items[bundle.key] = bundle
        return bundle

    async def delete_except(self, day: str) -> int:
        async with self._lock:
            stale = [k for k, b in self._items.items() if b.date != day]
            for k in stale:
                del self._items[k]
        return len(stale)

    async def delete_all(self) -> int:
        async with self._lock:
            count = len(self._items)
            self._items.clear()
        return count


class MemorySessionRepository:
    def __init__(self):
        self._sessions: Dict[str, SessionProgress] = {}
        self._players: Dict[str, PlayerStats] = {}
        self._lock = asyncio.Lock()

    async def get(self, session_id: str, day: str) -> Optional[SessionProgress]:
        return self._sessions.get(session_key(session_id, day))

    async def save(self, progress: SessionProgress) -> SessionProgress:
        async with self._lock:
            # records from other game dates are unreachable once a new day starts
            self._sessions = {k: s for k, s in self._sessions.items() if s.date == progress.date}
            self._sessions[progress.key] = progress
        return progress

    async def delete(self, session_id: str, day: str) -> None:
        async with self._lock:
            self._sessions.pop(session_key(session_id, day), None)

    async def append_answer(
        self,
        session_id: str,
        day: str,
        answer: AnswerRecord,
        points: int,
        total_questions: int,
        now: datetime,
    ) -> SessionProgress:
        async with self._lock:
            current = self._sessions.get(session_key(session_id, day))
            if current is None:
                raise NotFound()
            updated = apply_answer(current, answer, points, total_questions, now)
            self._sessions[updated.key] = updated
            return updated

    async def get_player(self, session_id: str) -> Optional[PlayerStats]:
        return self._players.get(session_id)

    async def record_completion(self, session_id: str, day: str, score: int) -> PlayerStats:
        async with self._lock:
            stats = self._players.get(session_id) or PlayerStats(session_id=session_id)
            updated = apply_completion(stats, day, score)
            self._players[session_id] = updated
            return updated
