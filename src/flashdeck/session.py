"""Study session queue: card order, in-session requeueing and persistence.

The transitions (``build_session``, ``reveal``, ``advance``) are pure
functions over ``SessionState``. ``StudySession`` wraps them with the store:
every evaluation is written as one transaction before the in-memory state
moves on, so an interrupted session resumes from the last evaluated card.

Cards marked LATER during the primary pass are appended to the deferred
queue. When the primary queue runs out, the deferred queue is replayed front
to back. Each deferred card is shown exactly once more, and its tally moves
to whatever it is rated on that replay.
"""
import logging
import sqlite3
from dataclasses import replace
from datetime import datetime
from typing import Iterable, Optional

from flashdeck.cards import get_card, get_cards_by_ids, get_due_cards, now_ms
from flashdeck.errors import EmptySessionError, PersistenceError
from flashdeck.models import Card, ReviewEvent, SessionState, SessionSummary
from flashdeck.scheduler import ReviewOutcome, schedule
from flashdeck.stats import on_session_completed
from flashdeck.study import (
    cleanup_old_incomplete_sessions, create_session, delete_session,
    get_direction_reversed, get_incomplete_session, get_session_limit,
    record_evaluation, save_session_progress,
)

logger = logging.getLogger(__name__)


def select_cards(cards: Iterable[Card], limit: int, now: int) -> list[Card]:
    """Never-studied cards in given order, then due cards soonest first."""
    unique = list({c.id: c for c in cards}.values())
    fresh = [c for c in unique if c.next_eligible_at is None]
    due = sorted(
        (c for c in unique if c.next_eligible_at is not None and c.next_eligible_at <= now),
        key=lambda c: c.next_eligible_at,
    )
    return (fresh + due)[:max(limit, 0)]


def build_session(
    cards: Iterable[Card],
    limit: int,
    direction: bool = False,
    now: Optional[int] = None,
    deck_id: Optional[int] = None,
) -> SessionState:
    now = now if now is not None else now_ms()
    chosen = select_cards(cards, limit, now)
    if not chosen:
        raise EmptySessionError("no cards are due for study")
    return SessionState(
        primary_queue=[c.id for c in chosen],
        direction=direction,
        started_at=now,
        deck_id=deck_id,
    )


def reveal(state: SessionState) -> SessionState:
    if state.revealed or state.is_completed:
        return state
    return replace(state, revealed=True)


def _tally(state: SessionState, outcome: ReviewOutcome, delta: int = 1) -> None:
    if outcome is ReviewOutcome.KNOWN:
        state.known_count += delta
    elif outcome is ReviewOutcome.AGAIN:
        state.again_count += delta
    else:
        state.later_count = max(0, state.later_count + delta)


def advance(state: SessionState, outcome, now: int) -> SessionState:
    """State after rating the current card.

    Returns ``state`` itself when the rating cannot apply: the answer is not
    revealed, the session is over, or ``outcome`` is not a ReviewOutcome.
    """
    result = ReviewOutcome.from_value(outcome)
    if result is None or not state.revealed or state.is_completed:
        return state

    nxt = replace(state, deferred_queue=list(state.deferred_queue), revealed=False)
    if state.in_deferred_pass:
        nxt.deferred_queue.pop(0)
        if result is not ReviewOutcome.LATER:
            _tally(nxt, ReviewOutcome.LATER, -1)
            _tally(nxt, result)
    else:
        _tally(nxt, result)
        if result is ReviewOutcome.LATER:
            nxt.deferred_queue.append(state.current_card_id)
        nxt.cursor += 1

    if nxt.is_completed:
        nxt.completed_at = now
    return nxt


class StudySession:
    """Handle on one study session for a deck."""

    def __init__(self, db_path: str, state: SessionState):
        self.db_path = db_path
        self.state = state
        self.daily_stat = None
        self._revealed_at = None
        self._completion_pending = False

    @classmethod
    def start(cls, db_path: str, deck_id: int, limit: Optional[int] = None,
              direction: Optional[bool] = None, now: Optional[int] = None) -> "StudySession":
        """Resume the deck's unfinished session, or begin a new one."""
        now = now if now is not None else now_ms()
        cleanup_old_incomplete_sessions(db_path, now)
        session = cls.resume(db_path, deck_id)
        if session is not None:
            return session
        return cls.begin(db_path, deck_id, limit, direction, now)

    @classmethod
    def begin(cls, db_path: str, deck_id: int, limit: Optional[int] = None,
              direction: Optional[bool] = None, now: Optional[int] = None) -> "StudySession":
        now = now if now is not None else now_ms()
        if limit is None:
            limit = get_session_limit(db_path)
        if direction is None:
            direction = get_direction_reversed(db_path)
        cards = get_due_cards(db_path, deck_id, now, limit)
        state = build_session(cards, limit, direction, now, deck_id)
        state.session_id = create_session(db_path, state)
        logger.info("Started session %d with %d card(s)", state.session_id, len(state.primary_queue))
        return cls(db_path, state)

    @classmethod
    def resume(cls, db_path: str, deck_id: int) -> Optional["StudySession"]:
        state = get_incomplete_session(db_path, deck_id)
        if state is None:
            return None
        ids = set(state.primary_queue) | set(state.deferred_queue)
        present = get_cards_by_ids(db_path, list(ids))
        if (not state.primary_queue or len(present) != len(ids)
                or state.cursor > len(state.primary_queue) or state.is_completed):
            logger.warning("Discarding unusable snapshot of session %d", state.session_id)
            delete_session(db_path, state.session_id)
            return None
        logger.info("Resuming session %d at card %d", state.session_id, state.current_card_id)
        return cls(db_path, state)

    @property
    def current_card_id(self) -> Optional[int]:
        return self.state.current_card_id

    @property
    def is_completed(self) -> bool:
        return self.state.is_completed

    @property
    def is_last_card(self) -> bool:
        return self.state.is_last_card

    @property
    def progress(self) -> float:
        return self.state.progress

    def current_card(self) -> Optional[Card]:
        card_id = self.state.current_card_id
        return get_card(self.db_path, card_id) if card_id is not None else None

    def reveal(self, now: Optional[int] = None) -> SessionState:
        """Show the answer and start timing the response."""
        nxt = reveal(self.state)
        if nxt is self.state:
            logger.debug("Ignoring reveal in session %s", self.state.session_id)
            return self.state
        self.state = nxt
        self._revealed_at = now if now is not None else now_ms()
        return self.state

    def toggle_direction(self) -> SessionState:
        if self.state.is_completed:
            return self.state
        nxt = replace(self.state, direction=not self.state.direction, revealed=False)
        save_session_progress(self.db_path, nxt)
        self.state = nxt
        return self.state

    def evaluate(self, outcome, now: Optional[int] = None) -> SessionState:
        """Rate the current card, persist the result and move on.

        Raises PersistenceError if the write fails; the session then stays
        on the same card so the rating can be retried.
        """
        now = now if now is not None else now_ms()
        nxt = advance(self.state, outcome, now)
        if nxt is self.state:
            logger.debug("Ignoring evaluation %r in session %s", outcome, self.state.session_id)
            return self.state

        card_id = self.state.current_card_id
        try:
            card = get_card(self.db_path, card_id)
        except sqlite3.Error as e:
            raise PersistenceError(f"could not read card {card_id}: {e}") from e
        if card is None:
            raise PersistenceError(f"card {card_id} does not exist")

        result = ReviewOutcome.from_value(outcome)
        new_level, next_eligible_at = schedule(card.mastery_level, result, now)
        event = ReviewEvent(
            session_id=self.state.session_id,
            card_id=card_id,
            outcome=int(result),
            previous_level=card.mastery_level,
            new_level=new_level,
            reviewed_at=now,
            response_time_ms=max(0, now - self._revealed_at) if self._revealed_at is not None else 0,
        )
        record_evaluation(self.db_path, event, next_eligible_at, nxt, mastered_count=nxt.known_count)

        self.state = nxt
        if nxt.is_completed:
            logger.info("Completed session %s: %d known, %d again, %d later",
                        nxt.session_id, nxt.known_count, nxt.again_count, nxt.later_count)
            self._completion_pending = True
            self.record_completion()
        return self.state

    def record_completion(self):
        """Add the finished session to the day's stats. Safe to retry."""
        if not self._completion_pending:
            return self.daily_stat
        day = datetime.fromtimestamp(self.state.completed_at / 1000).date()
        self.daily_stat = on_session_completed(self.db_path, day, len(self.state.primary_queue))
        self._completion_pending = False
        return self.daily_stat

    def abandon(self) -> bool:
        """Drop the stored snapshot if nothing was evaluated yet.

        Once a card has been rated the snapshot is kept so the session can be
        resumed later.
        """
        s = self.state
        if s.session_id is None or s.is_completed:
            return False
        if s.cursor == 0 and not (s.known_count or s.again_count or s.later_count):
            delete_session(self.db_path, s.session_id)
            return True
        return False

    def summary(self) -> SessionSummary:
        s = self.state
        end = s.completed_at if s.completed_at is not None else now_ms()
        return SessionSummary(
            total_cards=len(s.primary_queue),
            known_count=s.known_count,
            again_count=s.again_count,
            later_count=s.later_count,
            duration_ms=max(0, end - (s.started_at or end)),
            deck_id=s.deck_id,
            streak=self.daily_stat.streak if self.daily_stat else 0,
        )
