"""Per-session, per-day progress over a shared content bundle.

States: no record (unstarted) -> active -> completed. A record older than the
game window is expired and treated as absent; reading it deletes it so the
next start creates a fresh active record.
"""
import logging
from datetime import datetime, timedelta
from typing import Optional

from cropgen.core.errors import NotFound, QuestionNotFound
from cropgen.core.gameday import GAME_WINDOW, is_expired, previous_game_date, utcnow
from cropgen.models.schemas import (
    POINTS_PER_CORRECT,
    AnswerRecord,
    AnswerResult,
    ContentBundle,
    PlayerStats,
    SessionProgress,
)

logger = logging.getLogger("cropgen.sessions")


class SessionTracker:
    def __init__(self, repo, window: timedelta = GAME_WINDOW):
        self.repo = repo
        self.window = window

    async def get_active(self, session_id: str, day: str, now: Optional[datetime] = None) -> Optional[SessionProgress]:
        now = now or utcnow()
        progress = await self.repo.get(session_id, day)
        if progress is None:
            return None
        if is_expired(progress.created_at, now, self.window):
            logger.info("Session %s for %s expired; discarding", session_id, day)
            await self.repo.delete(session_id, day)
            return None
        return progress

    async def start(
        self,
        session_id: str,
        day: str,
        crop: str,
        language: str,
        now: Optional[datetime] = None,
    ) -> tuple[SessionProgress, bool]:
        """Return (progress, created). Creates an active record when none is live."""
        now = now or utcnow()
        progress = await self.get_active(session_id, day, now)
        if progress is not None:
            return progress, False

        player = await self.repo.get_player(session_id)
        progress = SessionProgress(
            session_id=session_id,
            date=day,
            crop=crop,
            language=language,
            streak=self._carried_streak(player, day),
            created_at=now,
            expires_at=now + self.window,
        )
        await self.repo.save(progress)
        logger.info("New session %s for %s (%s, %s)", session_id, day, crop, language)
        return progress, True

    @staticmethod
    def _carried_streak(player: Optional[PlayerStats], day: str) -> int:
        if player and player.last_completed_date in (day, previous_game_date(day)):
            return player.streak
        return 0

    async def submit_answer(
        self,
        session_id: str,
        day: str,
        question_index: int,
        selected_option: int,
        bundle: ContentBundle,
        now: Optional[datetime] = None,
    ) -> AnswerResult:
        now = now or utcnow()
        if await self.get_active(session_id, day, now) is None:
            raise NotFound()
        if not 0 <= question_index < len(bundle.questions):
            raise QuestionNotFound()

        question = bundle.questions[question_index]
        is_correct = selected_option == question.correct_answer
        points = POINTS_PER_CORRECT if is_correct else 0

        # uniqueness of question_index is enforced inside the repository write
        progress = await self.repo.append_answer(
            session_id,
            day,
            AnswerRecord(
                question_index=question_index,
                selected_option=selected_option,
                is_correct=is_correct,
                answered_at=now,
            ),
            points,
            len(bundle.questions),
            now,
        )

        streak = progress.streak
        if progress.is_completed:
            stats = await self.repo.record_completion(session_id, day, progress.score)
            streak = stats.streak
            logger.info("Session %s completed %s with score %d (streak %d)", session_id, day, progress.score, streak)

        tip = bundle.tips[question_index] if is_correct and question_index < len(bundle.tips) else None
        return AnswerResult(
            question_index=question_index,
            selected_option=selected_option,
            is_correct=is_correct,
            correct_answer=question.correct_answer,
            explanation=question.explanation,
            tip=tip,
            points_earned=points,
            total_score=progress.score,
            answered_count=len(progress.answers),
            is_game_complete=progress.is_completed,
            streak=streak,
            message=(
                "Correct! You unlocked a farming tip!"
                if is_correct
                else "Wrong answer. Try the next question!"
            ),
        )

    async def reset(self, session_id: str, day: str) -> None:
        await self.repo.delete(session_id, day)
        logger.info("Session %s for %s reset", session_id, day)

    async def stats(self, session_id: str) -> PlayerStats:
        return await self.repo.get_player(session_id) or PlayerStats(session_id=session_id)
