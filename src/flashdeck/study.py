"""Study session persistence, progress snapshots and settings."""
import json
import logging
import sqlite3

from flashdeck.db import get_connection
from flashdeck.errors import PersistenceError
from flashdeck.models import ReviewEvent, SessionState

logger = logging.getLogger(__name__)

DEFAULT_SESSION_LIMIT = 20
STALE_SESSION_MS = 24 * 60 * 60 * 1000


def get_setting(db_path: str, key: str, default: str = None) -> str | None:
    conn = get_connection(db_path)
    row = conn.execute("SELECT value FROM user_settings WHERE key = ?", (key,)).fetchone()
    conn.close()
    return row["value"] if row else default


def set_setting(db_path: str, key: str, value: str) -> None:
    conn = get_connection(db_path)
    conn.execute(
        "INSERT INTO user_settings (key, value) VALUES (?, ?) ON CONFLICT(key) DO UPDATE SET value=?",
        (key, value, value),
    )
    conn.commit()
    conn.close()


def get_session_limit(db_path: str) -> int:
    value = get_setting(db_path, "session_limit")
    try:
        limit = int(value) if value is not None else DEFAULT_SESSION_LIMIT
    except ValueError:
        logger.warning("Ignoring malformed session_limit setting %r", value)
        return DEFAULT_SESSION_LIMIT
    return limit if limit > 0 else DEFAULT_SESSION_LIMIT


def get_direction_reversed(db_path: str) -> bool:
    return get_setting(db_path, "direction_reversed", "0") == "1"


def set_direction_reversed(db_path: str, reversed_: bool) -> None:
    set_setting(db_path, "direction_reversed", "1" if reversed_ else "0")


def _snapshot_params(state: SessionState) -> tuple:
    return (
        state.cursor,
        state.known_count,
        state.again_count,
        state.later_count,
        json.dumps(state.primary_queue),
        json.dumps(state.deferred_queue),
        int(state.direction),
    )


def _row_to_state(row) -> SessionState:
    return SessionState(
        primary_queue=json.loads(row["card_ids"] or "[]"),
        deferred_queue=json.loads(row["deferred_ids"] or "[]"),
        cursor=row["cursor"],
        known_count=row["known_count"],
        again_count=row["again_count"],
        later_count=row["later_count"],
        direction=bool(row["direction_reversed"]),
        started_at=row["started_at"],
        completed_at=row["completed_at"],
        session_id=row["id"],
        deck_id=row["deck_id"],
    )


def create_session(db_path: str, state: SessionState) -> int:
    """Insert the initial snapshot of a freshly built session and return its id."""
    conn = get_connection(db_path)
    try:
        with conn:
            cur = conn.execute(
                """INSERT INTO study_sessions
                (deck_id, started_at, cursor, known_count, again_count, later_count,
                 card_ids, deferred_ids, direction_reversed)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)""",
                (state.deck_id, state.started_at) + _snapshot_params(state),
            )
    except sqlite3.Error as e:
        raise PersistenceError(f"could not create session: {e}") from e
    finally:
        conn.close()
    return cur.lastrowid


def save_session_progress(db_path: str, state: SessionState) -> None:
    """Overwrite the stored snapshot of a session with the given state."""
    conn = get_connection(db_path)
    try:
        with conn:
            _write_snapshot(conn, state)
    except sqlite3.Error as e:
        raise PersistenceError(f"could not save session {state.session_id}: {e}") from e
    finally:
        conn.close()


def _write_snapshot(conn: sqlite3.Connection, state: SessionState) -> None:
    cur = conn.execute(
        """UPDATE study_sessions
        SET cursor = ?, known_count = ?, again_count = ?, later_count = ?,
            card_ids = ?, deferred_ids = ?, direction_reversed = ?
        WHERE id = ?""",
        _snapshot_params(state) + (state.session_id,),
    )
    if cur.rowcount != 1:
        raise PersistenceError(f"session {state.session_id} does not exist")


def record_evaluation(
    db_path: str,
    event: ReviewEvent,
    next_eligible_at: int,
    state: SessionState,
    mastered_count: int = 0,
) -> None:
    """Apply one evaluation as a single transaction.

    Inserts the review event, updates the card's mastery, eligibility and
    review count, and overwrites the session snapshot with ``state``. When
    ``state`` is completed the session row is closed out as well. Either all
    of it is committed or none of it is.
    """
    conn = get_connection(db_path)
    try:
        conn.execute("BEGIN IMMEDIATE")
        with conn:
            conn.execute(
                """INSERT INTO review_events
                (session_id, card_id, outcome, previous_level, new_level,
                 reviewed_at, response_time_ms)
                VALUES (?, ?, ?, ?, ?, ?, ?)""",
                (
                    event.session_id, event.card_id, event.outcome, event.previous_level,
                    event.new_level, event.reviewed_at, event.response_time_ms,
                ),
            )
            cur = conn.execute(
                """UPDATE cards
                SET mastery_level = ?, next_eligible_at = ?,
                    review_count = review_count + 1, updated_at = ?
                WHERE id = ?""",
                (event.new_level, next_eligible_at, event.reviewed_at, event.card_id),
            )
            if cur.rowcount != 1:
                raise PersistenceError(f"card {event.card_id} does not exist")
            _write_snapshot(conn, state)
            if state.completed_at is not None:
                conn.execute(
                    """UPDATE study_sessions
                    SET completed_at = ?, card_count = ?, mastered_count = ?
                    WHERE id = ?""",
                    (state.completed_at, len(state.primary_queue), mastered_count,
                     state.session_id),
                )
    except sqlite3.Error as e:
        raise PersistenceError(f"could not record review of card {event.card_id}: {e}") from e
    finally:
        conn.close()


def get_session(db_path: str, session_id: int) -> SessionState | None:
    conn = get_connection(db_path)
    row = conn.execute("SELECT * FROM study_sessions WHERE id = ?", (session_id,)).fetchone()
    conn.close()
    return _row_to_state(row) if row else None


def get_incomplete_session(db_path: str, deck_id: int) -> SessionState | None:
    """Most recent unfinished session snapshot for a deck, if any."""
    conn = get_connection(db_path)
    row = conn.execute(
        """SELECT * FROM study_sessions
        WHERE deck_id = ? AND completed_at IS NULL
        ORDER BY started_at DESC, id DESC LIMIT 1""",
        (deck_id,),
    ).fetchone()
    conn.close()
    return _row_to_state(row) if row else None


def delete_session(db_path: str, session_id: int) -> None:
    """Remove a session snapshot. Its review events are kept, detached."""
    conn = get_connection(db_path)
    with conn:
        conn.execute("DELETE FROM study_sessions WHERE id = ?", (session_id,))
    conn.close()


def cleanup_old_incomplete_sessions(db_path: str, now: int, max_age_ms: int = STALE_SESSION_MS) -> int:
    """Drop unfinished sessions started more than ``max_age_ms`` ago.

    Review events and card updates already applied by those sessions stay.
    Only the resumable snapshot goes away.
    """
    conn = get_connection(db_path)
    with conn:
        cur = conn.execute(
            "DELETE FROM study_sessions WHERE completed_at IS NULL AND started_at < ?",
            (now - max_age_ms,),
        )
    conn.close()
    if cur.rowcount:
        logger.info("Removed %d stale incomplete session(s)", cur.rowcount)
    return cur.rowcount


def get_session_events(db_path: str, session_id: int) -> list[ReviewEvent]:
    conn = get_connection(db_path)
    rows = conn.execute(
        "SELECT * FROM review_events WHERE session_id = ? ORDER BY reviewed_at, id",
        (session_id,),
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
