from datetime import timedelta

import pytest

from conftest import DAY, NOW
from cropgen.models.schemas import SessionProgress

pytestmark = pytest.mark.anyio


def progress(session_id, day, now=NOW):
    return SessionProgress(
        session_id=session_id, date=day, crop="Rice", language="en",
        created_at=now, expires_at=now + timedelta(hours=24),
    )


async def test_saving_a_new_day_drops_older_sessions(sessions_repo):
    await sessions_repo.save(progress("a", "2026-02-27"))
    await sessions_repo.save(progress("b", "2026-02-28"))
    await sessions_repo.save(progress("c", DAY))

    assert await sessions_repo.get("a", "2026-02-27") is None
    assert await sessions_repo.get("b", "2026-02-28") is None
    assert await sessions_repo.get("c", DAY) is not None
    assert len(sessions_repo._sessions) == 1


async def test_same_day_sessions_are_kept(sessions_repo):
    await sessions_repo.save(progress("a", DAY))
    await sessions_repo.save(progress("b", DAY))
    assert await sessions_repo.get("a", DAY) is not None
    assert await sessions_repo.get("b", DAY) is not None


async def test_player_stats_survive_pruning(sessions_repo):
    await sessions_repo.save(progress("a", "2026-02-28"))
    await sessions_repo.record_completion("a", "2026-02-28", 90)
    await sessions_repo.save(progress("b", DAY))
    stats = await sessions_repo.get_player("a")
    assert stats.games_completed == 1
    assert stats.last_completed_date == "2026-02-28"
