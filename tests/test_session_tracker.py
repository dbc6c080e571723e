import asyncio
from datetime import timedelta

import pytest

from conftest import DAY, NOW
from cropgen.core.errors import AlreadyAnswered, NotFound, QuestionNotFound

pytestmark = pytest.mark.anyio

SID = "session-1"
NEXT_DAY = "2026-03-02"


async def start(tracker, day=DAY, now=NOW):
    progress, _ = await tracker.start(SID, day, "Rice", "en", now)
    return progress


async def test_start_creates_then_resumes(tracker):
    progress, created = await tracker.start(SID, DAY, "Rice", "en", NOW)
    assert created
    assert progress.expires_at == NOW + timedelta(hours=24)
    again, created = await tracker.start(SID, DAY, "Rice", "hi", NOW + timedelta(hours=1))
    assert not created
    assert again.language == "en"


async def test_correct_answer_unlocks_matching_tip(tracker, bundle):
    await start(tracker)
    result = await tracker.submit_answer(SID, DAY, 3, 2, bundle, NOW)
    assert result.is_correct
    assert result.points_earned == 10
    assert result.total_score == 10
    assert result.tip.text == "Tip 3"
    assert result.correct_answer == 2
    assert result.message == "Correct! You unlocked a farming tip!"


async def test_wrong_answer_scores_nothing(tracker, bundle):
    await start(tracker)
    result = await tracker.submit_answer(SID, DAY, 3, 0, bundle, NOW)
    assert not result.is_correct
    assert result.points_earned == 0
    assert result.tip is None
    assert result.explanation == "Explanation 3"


async def test_duplicate_answer_is_rejected_without_score_change(tracker, sessions_repo, bundle):
    await start(tracker)
    await tracker.submit_answer(SID, DAY, 0, 0, bundle, NOW)
    with pytest.raises(AlreadyAnswered):
        await tracker.submit_answer(SID, DAY, 0, 1, bundle, NOW)
    progress = await sessions_repo.get(SID, DAY)
    assert progress.score == 10
    assert len(progress.answers) == 1


async def test_concurrent_duplicates_score_once(tracker, sessions_repo, bundle):
    await start(tracker)
    results = await asyncio.gather(
        *[tracker.submit_answer(SID, DAY, 5, 0, bundle, NOW) for _ in range(3)],
        return_exceptions=True,
    )
    assert sum(not isinstance(r, Exception) for r in results) == 1
    assert sum(isinstance(r, AlreadyAnswered) for r in results) == 2
    assert (await sessions_repo.get(SID, DAY)).score == 10


async def test_out_of_range_question(tracker, bundle):
    await start(tracker)
    for index in (-1, 12):
        with pytest.raises(QuestionNotFound):
            await tracker.submit_answer(SID, DAY, index, 0, bundle, NOW)


async def test_answer_without_session(tracker, bundle):
    with pytest.raises(NotFound):
        await tracker.submit_answer(SID, DAY, 0, 0, bundle, NOW)


async def test_completion_after_all_questions(tracker, sessions_repo, bundle):
    await start(tracker)
    # 0 is correct everywhere except question 3
    for i in range(12):
        result = await tracker.submit_answer(SID, DAY, i, 0, bundle, NOW)
    assert result.is_game_complete
    assert result.total_score == 110
    assert result.answered_count == 12
    assert result.streak == 1

    progress = await sessions_repo.get(SID, DAY)
    assert progress.is_completed
    assert progress.score == 10 * sum(a.is_correct for a in progress.answers)

    stats = await tracker.stats(SID)
    assert (stats.games_completed, stats.total_score, stats.best_score) == (1, 110, 110)
    assert stats.last_completed_date == DAY


async def test_expired_session_is_discarded(tracker, sessions_repo, bundle):
    await start(tracker)
    later = NOW + timedelta(hours=25)
    assert await tracker.get_active(SID, DAY, later) is None
    assert await sessions_repo.get(SID, DAY) is None
    with pytest.raises(NotFound):
        await tracker.submit_answer(SID, DAY, 0, 0, bundle, later)
    _, created = await tracker.start(SID, DAY, "Rice", "en", later)
    assert created


async def test_expiry_keeps_completion_stats(tracker, bundle):
    await start(tracker)
    for i in range(12):
        await tracker.submit_answer(SID, DAY, i, 0, bundle, NOW)
    assert await tracker.get_active(SID, DAY, NOW + timedelta(hours=25)) is None
    assert (await tracker.stats(SID)).games_completed == 1


async def test_streak_carries_over_consecutive_days(tracker, bundle):
    await start(tracker)
    for i in range(12):
        await tracker.submit_answer(SID, DAY, i, 0, bundle, NOW)

    tomorrow = NOW + timedelta(days=1)
    progress = await start(tracker, NEXT_DAY, tomorrow)
    assert progress.streak == 1
    for i in range(12):
        result = await tracker.submit_answer(SID, NEXT_DAY, i, 0, bundle, tomorrow)
    assert result.streak == 2


async def test_streak_resets_after_missed_day(tracker, bundle):
    await start(tracker)
    for i in range(12):
        await tracker.submit_answer(SID, DAY, i, 0, bundle, NOW)
    progress = await start(tracker, "2026-03-03", NOW + timedelta(days=2))
    assert progress.streak == 0


async def test_reset_removes_progress(tracker, sessions_repo):
    await start(tracker)
    await tracker.reset(SID, DAY)
    assert await sessions_repo.get(SID, DAY) is None
