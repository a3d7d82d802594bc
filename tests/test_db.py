"""Tests for database initialization and connection management."""
import sqlite3

import pytest

from flashdeck.db import init_db, get_connection


def test_init_db_creates_tables(tmp_db):
    init_db(tmp_db)
    conn = get_connection(tmp_db)
    cursor = conn.execute(
        "SELECT name FROM sqlite_master WHERE type='table' ORDER BY name"
    )
    tables = {row[0] for row in cursor.fetchall()}
    expected = {
        "decks", "cards", "study_sessions", "review_events",
        "daily_stats", "user_settings",
    }
    assert expected.issubset(tables)
    conn.close()


def test_init_db_is_idempotent(tmp_db):
    init_db(tmp_db)
    init_db(tmp_db)  # should not raise
    conn = get_connection(tmp_db)
    cursor = conn.execute("SELECT name FROM sqlite_master WHERE type='table'")
    assert len(cursor.fetchall()) > 0
    conn.close()


def test_init_db_uses_wal(tmp_db):
    init_db(tmp_db)
    conn = get_connection(tmp_db)
    mode = conn.execute("PRAGMA journal_mode").fetchone()[0]
    conn.close()
    assert mode.lower() == "wal"


def test_get_connection_returns_row_factory(tmp_db):
    init_db(tmp_db)
    conn = get_connection(tmp_db)
    conn.execute("INSERT INTO user_settings (key, value) VALUES ('test', 'val')")
    row = conn.execute("SELECT key, value FROM user_settings WHERE key='test'").fetchone()
    assert row["key"] == "test"
    conn.close()


def test_daily_stats_date_is_unique(tmp_db):
    init_db(tmp_db)
    conn = get_connection(tmp_db)
    conn.execute("INSERT INTO daily_stats (date, studied_count, streak) VALUES ('2024-01-01', 1, 1)")
    with pytest.raises(sqlite3.IntegrityError):
        conn.execute("INSERT INTO daily_stats (date, studied_count, streak) VALUES ('2024-01-01', 2, 1)")
    conn.close()


def test_mastery_level_is_bounded(tmp_db):
    init_db(tmp_db)
    conn = get_connection(tmp_db)
    conn.execute("INSERT INTO decks (name, created_at) VALUES ('d', 0)")
    with pytest.raises(sqlite3.IntegrityError):
        conn.execute(
            """INSERT INTO cards (deck_id, front, back, mastery_level, created_at, updated_at)
            VALUES (1, 'a', 'b', 6, 0, 0)"""
        )
    conn.close()
