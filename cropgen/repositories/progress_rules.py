"""Progress state transitions shared by every session backend."""
from datetime import datetime

from cropgen.core.errors import AlreadyAnswered
from cropgen.core.gameday import previous_game_date
from cropgen.models.schemas import AnswerRecord, PlayerStats, SessionProgress


def apply_answer(
    progress: SessionProgress,
    answer: AnswerRecord,
    points: int,
    total_questions: int,
    now: datetime,
) -> SessionProgress:
    if progress.answer_for(answer.question_index) is not None:
        raise AlreadyAnswered()
    updated = progress.model_copy(deep=True)
    updated.answers.append(answer)
    updated.score += points
    if len(updated.answers) >= total_questions:
        updated.is_completed = True
        updated.completed_at = now
    return updated


def apply_completion(stats: PlayerStats, day: str, score: int) -> PlayerStats:
    updated = stats.model_copy()
    # a second completion on the same day (after a reset) keeps the streak
    if stats.last_completed_date == previous_game_date(day):
        updated.streak = stats.streak + 1
    elif stats.last_completed_date != day:
        updated.streak = 1
    updated.last_completed_date = day
    updated.games_completed += 1
    updated.total_score += score
    updated.best_score = max(stats.best_score, score)
    return updated


