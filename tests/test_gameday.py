from datetime import datetime, timedelta, timezone

from cropgen.core.gameday import (
    CROPS,
    crop_of_the_day,
    game_date,
    is_expired,
    previous_game_date,
    time_remaining,
)

T0 = datetime(2026, 3, 1, 6, 0, tzinfo=timezone.utc)


def test_game_date_follows_timezone():
    late_utc = datetime(2026, 3, 1, 20, 0, tzinfo=timezone.utc)
    assert game_date(late_utc, "UTC") == "2026-03-01"
    assert game_date(late_utc, "Asia/Kolkata") == "2026-03-02"


def test_previous_game_date_crosses_month():
    assert previous_game_date("2026-03-01") == "2026-02-28"


def test_crop_of_the_day_is_stable_and_rotates():
    assert crop_of_the_day("2026-03-01") == crop_of_the_day("2026-03-01")
    assert crop_of_the_day("2026-03-01") in CROPS
    assert crop_of_the_day("2026-03-01") != crop_of_the_day("2026-03-02")


def test_expiry_boundary():
    assert not is_expired(T0, T0 + timedelta(hours=23, minutes=59))
    assert is_expired(T0, T0 + timedelta(hours=24))
    assert is_expired(T0, T0 + timedelta(hours=25))


def test_naive_timestamps_are_treated_as_utc():
    naive = T0.replace(tzinfo=None)
    assert not is_expired(naive, T0 + timedelta(hours=1))


def test_time_remaining_breakdown():
    t = time_remaining(T0, T0 + timedelta(hours=22, minutes=30, seconds=15))
    assert (t["hours"], t["minutes"], t["seconds"]) == (1, 29, 45)
    assert t["total_seconds"] == 5385
    assert t["is_expired"] is False

    done = time_remaining(T0, T0 + timedelta(hours=30))
    assert done["total_seconds"] == 0
    assert done["is_expired"] is True
