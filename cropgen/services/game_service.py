import logging
from datetime import datetime
from typing import Optional

from cropgen.core.errors import NotFound
from cropgen.core.gameday import crop_of_the_day, game_date, time_remaining, utcnow
from cropgen.core.languages import resolve_language
from cropgen.models.schemas import (
    AnswerResult,
    ContentBundle,
    GameView,
    QuestionView,
    SessionProgress,
    StatsView,
    StatusView,
)
from cropgen.services.content_store import ContentStore
from cropgen.services.session_tracker import SessionTracker

logger = logging.getLogger("cropgen.game")


def build_game_view(bundle: ContentBundle, progress: SessionProgress, is_new_game: bool, now: datetime) -> GameView:
    """Overlay a session's answers on the shared bundle.

    Answer keys and explanations are only shown for answered questions, and
    a tip is only shown once the question at the same index was answered
    correctly.
    """
    questions, tips = [], []
    for i, q in enumerate(bundle.questions):
        answer = progress.answer_for(i)
        view = QuestionView(index=i, question=q.question, options=q.options)
        if answer is not None:
            view.is_answered = True
            view.correct_answer = q.correct_answer
            view.explanation = q.explanation
            view.user_answer = answer.selected_option
            view.is_correct = answer.is_correct
        questions.append(view)
        unlocked = answer is not None and answer.is_correct and i < len(bundle.tips)
        tips.append(bundle.tips[i] if unlocked else None)

    return GameView(
        is_new_game=is_new_game,
        date=bundle.date,
        crop=bundle.crop,
        language=bundle.language,
        questions=questions,
        tips=tips,
        score=progress.score,
        answered_count=len(progress.answers),
        total_questions=len(bundle.questions),
        is_completed=progress.is_completed,
        streak=progress.streak,
        timer=time_remaining(progress.created_at, now),
    )


class GameService:
    def __init__(self, content: ContentStore, tracker: SessionTracker, timezone: str = "UTC"):
        self.content = content
        self.tracker = tracker
        self.timezone = timezone

    def today(self, now: datetime) -> str:
        return game_date(now, self.timezone)

    async def start(self, session_id: str, language: Optional[str], now: Optional[datetime] = None) -> GameView:
        now = now or utcnow()
        day = self.today(now)

        progress = await self.tracker.get_active(session_id, day, now)
        if progress is not None:
            # resume in the language the session started with
            bundle = await self.content.get_or_generate(day, progress.crop, progress.language)
            return build_game_view(bundle, progress, False, now)

        lang = resolve_language(language)
        bundle = await self.content.get_or_generate(day, crop_of_the_day(day), lang.code)
        progress, created = await self.tracker.start(session_id, day, bundle.crop, bundle.language, now)
        return build_game_view(bundle, progress, created, now)

    async def answer(
        self,
        session_id: str,
        question_index: int,
        selected_option: int,
        now: Optional[datetime] = None,
    ) -> AnswerResult:
        now = now or utcnow()
        day = self.today(now)
        progress = await self.tracker.get_active(session_id, day, now)
        if progress is None:
            raise NotFound()
        bundle = await self.content.get(day, progress.crop, progress.language)
        if bundle is None:
            logger.error("No stored bundle for active session %s (%s, %s)", session_id, progress.crop, progress.language)
            raise NotFound()
        return await self.tracker.submit_answer(session_id, day, question_index, selected_option, bundle, now)

    async def status(self, session_id: str, now: Optional[datetime] = None) -> StatusView:
        now = now or utcnow()
        day = self.today(now)
        progress = await self.tracker.get_active(session_id, day, now)
        if progress is None:
            return StatusView(has_active_game=False, date=day, crop=crop_of_the_day(day))
        return StatusView(
            has_active_game=True,
            date=day,
            crop=progress.crop,
            language=progress.language,
            score=progress.score,
            answered_count=len(progress.answers),
            is_completed=progress.is_completed,
            streak=progress.streak,
            timer=time_remaining(progress.created_at, now),
        )

    async def reset(self, session_id: str, now: Optional[datetime] = None) -> None:
        await self.tracker.reset(session_id, self.today(now or utcnow()))

    async def regenerate(self, language: Optional[str], now: Optional[datetime] = None) -> ContentBundle:
        day = self.today(now or utcnow())
        return await self.content.regenerate(day, crop_of_the_day(day), resolve_language(language).code)

    async def clear_content(self) -> int:
        return await self.content.clear_all()

    async def stats(self, session_id: str) -> StatsView:
        s = await self.tracker.stats(session_id)
        return StatsView(
            total_games=s.games_completed,
            total_score=s.total_score,
            best_score=s.best_score,
            current_streak=s.streak,
            average_score=s.average_score,
        )
