"""Daily study totals, streaks and progress statistics."""
import logging
import sqlite3
from datetime import date, timedelta

from flashdeck.db import get_connection
from flashdeck.errors import PersistenceError
from flashdeck.intervals import is_mastered
from flashdeck.models import DailyStat, ReviewEvent
from flashdeck.scheduler import ReviewOutcome

logger = logging.getLogger(__name__)

MASTERY_LABELS = ("Not started", "Learning", "Mastered")


def _row_to_stat(row) -> DailyStat:
    return DailyStat(date=row["date"], studied_count=row["studied_count"], streak=row["streak"])


def _is_consecutive(previous: str, day: date) -> bool:
    """True if ``previous`` is the calendar day right before ``day``."""
    return date.fromisoformat(previous) == day - timedelta(days=1)


def on_session_completed(db_path: str, day: date, studied_delta: int) -> DailyStat:
    """Fold a completed session into the stats row for ``day``.

    The first completion of a day creates the row and settles its streak:
    one more than the most recent earlier row if that row is for the day
    before, otherwise 1. Later completions that day only add to the count.
    """
    key = day.isoformat()
    conn = get_connection(db_path)
    try:
        conn.execute("BEGIN IMMEDIATE")
        with conn:
            existing = conn.execute(
                "SELECT * FROM daily_stats WHERE date = ?", (key,)
            ).fetchone()
            if existing:
                conn.execute(
                    "UPDATE daily_stats SET studied_count = studied_count + ? WHERE date = ?",
                    (studied_delta, key),
                )
            else:
                previous = conn.execute(
                    "SELECT * FROM daily_stats WHERE date < ? ORDER BY date DESC LIMIT 1",
                    (key,),
                ).fetchone()
                if previous and _is_consecutive(previous["date"], day):
                    streak = previous["streak"] + 1
                else:
                    streak = 1
                conn.execute(
                    "INSERT INTO daily_stats (date, studied_count, streak) VALUES (?, ?, ?)",
                    (key, studied_delta, streak),
                )
                logger.info("Streak for %s is %d", key, streak)
            row = conn.execute("SELECT * FROM daily_stats WHERE date = ?", (key,)).fetchone()
    except sqlite3.Error as e:
        raise PersistenceError(f"could not update stats for {key}: {e}") from e
    finally:
        conn.close()
    return _row_to_stat(row)


def get_daily_stat(db_path: str, day: date) -> DailyStat | None:
    conn = get_connection(db_path)
    row = conn.execute(
        "SELECT * FROM daily_stats WHERE date = ?", (day.isoformat(),)
    ).fetchone()
    conn.close()
    return _row_to_stat(row) if row else None


def get_recent_stats(db_path: str, days: int = 7) -> list[DailyStat]:
    """Latest ``days`` stats rows, newest first."""
    conn = get_connection(db_path)
    rows = conn.execute(
        "SELECT * FROM daily_stats ORDER BY date DESC LIMIT ?", (days,)
    ).fetchall()
    conn.close()
    return [_row_to_stat(r) for r in rows]


def get_current_streak(db_path: str, today: date | None = None) -> int:
    """Streak still alive as of ``today``; 0 once a whole day has been missed."""
    today = today or date.today()
    conn = get_connection(db_path)
    row = conn.execute(
        "SELECT * FROM daily_stats WHERE date <= ? ORDER BY date DESC LIMIT 1",
        (today.isoformat(),),
    ).fetchone()
    conn.close()
    if row is None:
        return 0
    if row["date"] == today.isoformat() or _is_consecutive(row["date"], today):
        return row["streak"]
    return 0


def get_max_streak(db_path: str) -> int:
    conn = get_connection(db_path)
    value = conn.execute("SELECT MAX(streak) FROM daily_stats").fetchone()[0]
    conn.close()
    return value or 0


def get_total_studied(db_path: str) -> int:
    conn = get_connection(db_path)
    value = conn.execute("SELECT SUM(studied_count) FROM daily_stats").fetchone()[0]
    conn.close()
    return value or 0


def get_average_studied(db_path: str) -> float:
    conn = get_connection(db_path)
    value = conn.execute("SELECT AVG(studied_count) FROM daily_stats").fetchone()[0]
    conn.close()
    return round(value, 1) if value else 0.0


def get_mastery_distribution(db_path: str, deck_id: int | None = None) -> list[dict]:
    """Card counts bucketed as not started (level 0), learning and mastered."""
    conn = get_connection(db_path)
    if deck_id is None:
        rows = conn.execute(
            "SELECT mastery_level, COUNT(*) AS n FROM cards GROUP BY mastery_level"
        ).fetchall()
    else:
        rows = conn.execute(
            "SELECT mastery_level, COUNT(*) AS n FROM cards WHERE deck_id = ? GROUP BY mastery_level",
            (deck_id,),
        ).fetchall()
    conn.close()
    counts = [0, 0, 0]
    for r in rows:
        if r["mastery_level"] <= 0:
            counts[0] += r["n"]
        elif not is_mastered(r["mastery_level"]):
            counts[1] += r["n"]
        else:
            counts[2] += r["n"]
    return [
        {"bucket": i, "label": MASTERY_LABELS[i], "count": counts[i]}
        for i in range(len(MASTERY_LABELS))
    ]


def get_completed_session_count(db_path: str) -> int:
    conn = get_connection(db_path)
    count = conn.execute(
        "SELECT COUNT(*) FROM study_sessions WHERE completed_at IS NOT NULL"
    ).fetchone()[0]
    conn.close()
    return count


def get_session_accuracy(db_path: str, session_id: int) -> float:
    """Percentage of a session's evaluations that were KNOWN."""
    conn = get_connection(db_path)
    row = conn.execute(
        """SELECT COUNT(*) AS t,
            SUM(CASE WHEN outcome = ? THEN 1 ELSE 0 END) AS c
        FROM review_events WHERE session_id = ?""",
        (int(ReviewOutcome.KNOWN), session_id),
    ).fetchone()
    conn.close()
    if not row["t"]:
        return 0.0
    return round(row["c"] / row["t"] * 100, 1)


def get_card_accuracy(db_path: str, card_id: int) -> float:
    """Percentage of a card's evaluations, across all sessions, that were KNOWN."""
    conn = get_connection(db_path)
    row = conn.execute(
        """SELECT COUNT(*) AS t,
            SUM(CASE WHEN outcome = ? THEN 1 ELSE 0 END) AS c
        FROM review_events WHERE card_id = ?""",
        (int(ReviewOutcome.KNOWN), card_id),
    ).fetchone()
    conn.close()
    if not row["t"]:
        return 0.0
    return round(row["c"] / row["t"] * 100, 1)


def get_card_history(db_path: str, card_id: int) -> list[ReviewEvent]:
    """Every evaluation of a card, oldest first."""
    conn = get_connection(db_path)
    rows = conn.execute(
        "SELECT * FROM review_events WHERE card_id = ? ORDER BY reviewed_at, id",
        (card_id,),
    ).fetchall()
    conn.close()
    return [
        ReviewEvent(
            session_id=r["session_id"],
            card_id=r["card_id"],
            outcome=r["outcome"],
            previous_level=r["previous_level"],
            new_level=r["new_level"],
            reviewed_at=r["reviewed_at"],
            response_time_ms=r["response_time_ms"],
        )
        for r in rows
    ]


def get_study_summary(db_path: str, today: date | None = None) -> dict:
    today = today or date.today()
    todays = get_daily_stat(db_path, today)
    conn = get_connection(db_path)
    reviews = conn.execute("SELECT COUNT(*) FROM review_events").fetchone()[0]
    mastered = conn.execute(
        "SELECT SUM(mastered_count) FROM study_sessions WHERE completed_at IS NOT NULL"
    ).fetchone()[0]
    conn.close()
    return {
        "studied_today": todays.studied_count if todays else 0,
        "current_streak": get_current_streak(db_path, today),
        "max_streak": get_max_streak(db_path),
        "total_studied": get_total_studied(db_path),
        "average_studied": get_average_studied(db_path),
        "sessions_completed": get_completed_session_count(db_path),
        "reviews_logged": reviews,
        "known_in_sessions": mastered or 0,
    }
