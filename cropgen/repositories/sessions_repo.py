from datetime import datetime
from typing import Optional

from google.cloud import firestore

from cropgen.core.errors import NotFound
from cropgen.models.schemas import (
    AnswerRecord,
    PlayerStats,
    SessionProgress,
    session_key,
)
from cropgen.repositories.progress_rules import apply_answer, apply_completion


class FirestoreSessionRepository:
    """Session progress keyed by `{session_id}_{date}`, player stats keyed by session id.

    Expired progress documents are removed by a Firestore TTL policy on
    `expires_at`; reads still check the timestamp because TTL deletion lags.
    """

    def __init__(
        self,
        db: firestore.AsyncClient,
        collection: str = "game_sessions",
        players_collection: str = "players",
    ):
        self.db = db
        self.collection = collection
        self.players_collection = players_collection

    def _doc(self, session_id: str, day: str):
        return self.db.collection(self.collection).document(session_key(session_id, day))

    def _player(self, session_id: str):
        return self.db.collection(self.players_collection).document(session_id)

    async def get(self, session_id: str, day: str) -> Optional[SessionProgress]:
        doc = await self._doc(session_id, day).get()
        return SessionProgress(**doc.to_dict()) if doc.exists else None

    async def save(self, progress: SessionProgress) -> SessionProgress:
        await self._doc(progress.session_id, progress.date).set(progress.model_dump())
        return progress

    async def delete(self, session_id: str, day: str) -> None:
        await self._doc(session_id, day).delete()

    async def append_answer(
        self,
        session_id: str,
        day: str,
        answer: AnswerRecord,
        points: int,
        total_questions: int,
        now: datetime,
    ) -> SessionProgress:
        ref = self._doc(session_id, day)
        transaction = self.db.transaction()

        @firestore.async_transactional
        async def _apply(transaction, ref):
            snap = await ref.get(transaction=transaction)
            if not snap.exists:
                raise NotFound()
            updated = apply_answer(SessionProgress(**snap.to_dict()), answer, points, total_questions, now)
            transaction.update(ref, {
                "answers": [a.model_dump() for a in updated.answers],
                "score": updated.score,
                "is_completed": updated.is_completed,
                "completed_at": updated.completed_at,
            })
            return updated

        return await _apply(transaction, ref)

    async def get_player(self, session_id: str) -> Optional[PlayerStats]:
        doc = await self._player(session_id).get()
        return PlayerStats(**doc.to_dict()) if doc.exists else None

    async def record_completion(self, session_id: str, day: str, score: int) -> PlayerStats:
        ref = self._player(session_id)
        transaction = self.db.transaction()

        @firestore.async_transactional
        async def _apply(transaction, ref):
            snap = await ref.get(transaction=transaction)
            stats = PlayerStats(**snap.to_dict()) if snap.exists else PlayerStats(session_id=session_id)
            updated = apply_completion(stats, day, score)
            transaction.set(ref, updated.model_dump())
            return updated

        return await _apply(transaction, ref)
