"""Fixed interval table mapping mastery level to review wait time."""
from typing import Optional

MIN_LEVEL = 0
MAX_LEVEL = 5

HOUR_MS = 60 * 60 * 1000
DAY_MS = 24 * HOUR_MS

# Wait before a card is eligible again, in milliseconds, by mastery level.
INTERVAL_BY_LEVEL = {
    0: 0,
    1: HOUR_MS,
    2: 8 * HOUR_MS,
    3: DAY_MS,
    4: 3 * DAY_MS,
    5: 7 * DAY_MS,
}

_DESCRIPTIONS = {
    0: "Immediate",
    1: "1 hour",
    2: "8 hours",
    3: "1 day",
    4: "3 days",
    5: "7 days",
}


def interval_for(level: int) -> Optional[int]:
    """Wait in milliseconds for a mastery level, or None if the level is unknown."""
    return INTERVAL_BY_LEVEL.get(level)


def interval_description(level: int) -> str:
    return _DESCRIPTIONS.get(level, "Unknown")


def is_mastered(level: int) -> bool:
    return level >= MAX_LEVEL
