"""Review scheduling over the fixed interval table."""
from enum import IntEnum
from typing import NamedTuple, Optional

from flashdeck.intervals import MAX_LEVEL, MIN_LEVEL, interval_for


class ReviewOutcome(IntEnum):
    AGAIN = 0  # failed to recall
    LATER = 1  # defer within this session
    KNOWN = 2  # recalled correctly

    @classmethod
    def from_value(cls, value) -> Optional["ReviewOutcome"]:
        """Return the outcome for an integer code, or None if it is not one."""
        if isinstance(value, cls):
            return value
        if isinstance(value, bool) or not isinstance(value, int):
            return None
        try:
            return cls(value)
        except ValueError:
            return None


class Schedule(NamedTuple):
    new_level: int
    next_eligible_at: int


def schedule(current_level: int, outcome, now: int) -> Schedule:
    """Calculate the next mastery level and eligibility time for a card.

    Args:
        current_level: Mastery level before this review (0-5)
        outcome: A ReviewOutcome or its integer code. Anything else keeps
            the level unchanged.
        now: Review time in epoch milliseconds

    Returns:
        Schedule with the new level and the epoch-ms time the card is next due.
    """
    result = ReviewOutcome.from_value(outcome)
    if result is ReviewOutcome.KNOWN:
        new_level = min(MAX_LEVEL, current_level + 1)
    elif result is ReviewOutcome.AGAIN:
        new_level = max(MIN_LEVEL, current_level - 1)
    else:
        # LATER and unrecognised outcomes leave the level alone
        new_level = current_level

    wait = interval_for(new_level)
    return Schedule(new_level, now + (wait or 0))
