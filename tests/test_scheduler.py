# tests/test_scheduler.py
import pytest

from flashdeck.intervals import interval_for
from flashdeck.scheduler import ReviewOutcome, schedule

LEVELS = range(0, 6)
T = 1_000


@pytest.mark.parametrize("level", LEVELS)
def test_known_raises_level_capped_at_five(level):
    assert schedule(level, ReviewOutcome.KNOWN, T).new_level == min(5, level + 1)


@pytest.mark.parametrize("level", LEVELS)
def test_again_lowers_level_floored_at_zero(level):
    assert schedule(level, ReviewOutcome.AGAIN, T).new_level == max(0, level - 1)


@pytest.mark.parametrize("level", LEVELS)
def test_later_keeps_level(level):
    assert schedule(level, ReviewOutcome.LATER, T).new_level == level


@pytest.mark.parametrize("level", LEVELS)
@pytest.mark.parametrize("outcome", list(ReviewOutcome))
def test_next_eligible_is_now_plus_interval_of_new_level(level, outcome):
    result = schedule(level, outcome, T)
    assert result.next_eligible_at - T == interval_for(result.new_level)


def test_boundaries():
    assert schedule(5, ReviewOutcome.KNOWN, T).new_level == 5
    assert schedule(0, ReviewOutcome.AGAIN, T).new_level == 0


@pytest.mark.parametrize("level", LEVELS)
@pytest.mark.parametrize("code", [-1, 3, 99, None, "KNOWN", 2.0, True])
def test_invalid_outcome_never_changes_level(level, code):
    result = schedule(level, code, T)
    assert result.new_level == level
    assert result.next_eligible_at == T + interval_for(level)


def test_integer_codes_are_accepted():
    assert schedule(2, 2, T).new_level == 3
    assert schedule(2, 0, T).new_level == 1
    assert schedule(2, 1, T).new_level == 2


def test_known_from_level_two_waits_one_day():
    assert schedule(2, ReviewOutcome.KNOWN, 1000) == (3, 1000 + 86_400_000)


def test_again_from_level_zero_is_immediate():
    assert schedule(0, ReviewOutcome.AGAIN, 1000) == (0, 1000)


def test_schedule_is_deterministic():
    assert schedule(3, ReviewOutcome.KNOWN, T) == schedule(3, ReviewOutcome.KNOWN, T)


def test_unknown_level_does_not_crash():
    assert schedule(9, ReviewOutcome.LATER, T) == (9, T)


def test_from_value():
    assert ReviewOutcome.from_value(0) is ReviewOutcome.AGAIN
    assert ReviewOutcome.from_value(ReviewOutcome.KNOWN) is ReviewOutcome.KNOWN
    assert ReviewOutcome.from_value(7) is None
    assert ReviewOutcome.from_value("1") is None
