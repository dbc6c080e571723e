from datetime import date, datetime, timedelta, timezone
from typing import Any, Dict, Optional
from zoneinfo import ZoneInfo

GAME_WINDOW = timedelta(hours=24)

CROPS = [
    "Rice", "Wheat", "Cotton", "Sugarcane", "Maize",
    "Potato", "Tomato", "Onion", "Soybean", "Groundnut",
    "Mustard", "Chilli", "Turmeric", "Banana", "Mango",
]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def game_date(now: Optional[datetime] = None, tz: str = "UTC") -> str:
    """Calendar day key (YYYY-MM-DD) of `now` in the game timezone."""
    now = now or utcnow()
    return now.astimezone(ZoneInfo(tz)).date().isoformat()


def previous_game_date(day: str) -> str:
    return (date.fromisoformat(day) - timedelta(days=1)).isoformat()


def crop_of_the_day(day: str) -> str:
    d = date.fromisoformat(day)
    return CROPS[d.timetuple().tm_yday % len(CROPS)]


def _aware(dt: datetime) -> datetime:
    # Firestore returns aware datetimes; the memory backend may not.
    return dt if dt.tzinfo else dt.replace(tzinfo=timezone.utc)


def is_expired(created_at: datetime, now: Optional[datetime] = None, window: timedelta = GAME_WINDOW) -> bool:
    now = now or utcnow()
    return _aware(now) - _aware(created_at) >= window


def time_remaining(created_at: datetime, now: Optional[datetime] = None, window: timedelta = GAME_WINDOW) -> Dict[str, Any]:
    now = _aware(now or utcnow())
    expires_at = _aware(created_at) + window
    remaining = max(timedelta(0), expires_at - now)
    total = int(remaining.total_seconds())
    return {
        "hours": total // 3600,
        "minutes": (total % 3600) // 60,
        "seconds": total % 60,
        "total_seconds": total,
        "expires_at": expires_at.isoformat(),
        "is_expired": total <= 0,
    }
