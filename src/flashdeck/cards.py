"""Decks and the due-card source for study sessions."""
import time

from flashdeck.db import get_connection
from flashdeck.intervals import MAX_LEVEL
from flashdeck.models import Card, Deck


def now_ms() -> int:
    return int(time.time() * 1000)


def _row_to_card(row) -> Card:
    return Card(
        id=row["id"],
        deck_id=row["deck_id"],
        front=row["front"],
        back=row["back"],
        example=row["example"],
        mastery_level=row["mastery_level"],
        next_eligible_at=row["next_eligible_at"],
        review_count=row["review_count"],
    )


def add_deck(db_path: str, name: str, description: str = "") -> int:
    conn = get_connection(db_path)
    cur = conn.execute(
        "INSERT INTO decks (name, description, created_at) VALUES (?, ?, ?)",
        (name, description, now_ms()),
    )
    conn.commit()
    deck_id = cur.lastrowid
    conn.close()
    return deck_id


def get_decks(db_path: str) -> list[Deck]:
    conn = get_connection(db_path)
    rows = conn.execute("SELECT * FROM decks ORDER BY id").fetchall()
    conn.close()
    return [Deck(id=r["id"], name=r["name"], description=r["description"] or "") for r in rows]


def get_deck(db_path: str, deck_id: int) -> Deck | None:
    conn = get_connection(db_path)
    row = conn.execute("SELECT * FROM decks WHERE id = ?", (deck_id,)).fetchone()
    conn.close()
    if row is None:
        return None
    return Deck(id=row["id"], name=row["name"], description=row["description"] or "")


def add_cards(db_path: str, deck_id: int, cards: list[dict]) -> list[int]:
    """Insert never-studied cards into a deck. Each dict needs front and back."""
    ts = now_ms()
    conn = get_connection(db_path)
    ids = []
    with conn:
        for card in cards:
            cur = conn.execute(
                """INSERT INTO cards (deck_id, front, back, example, created_at, updated_at)
                VALUES (?, ?, ?, ?, ?, ?)""",
                (deck_id, card["front"], card["back"], card.get("example"), ts, ts),
            )
            ids.append(cur.lastrowid)
    conn.close()
    return ids


def get_card(db_path: str, card_id: int) -> Card | None:
    conn = get_connection(db_path)
    row = conn.execute("SELECT * FROM cards WHERE id = ?", (card_id,)).fetchone()
    conn.close()
    return _row_to_card(row) if row else None


def get_cards_by_ids(db_path: str, card_ids: list[int]) -> dict[int, Card]:
    if not card_ids:
        return {}
    placeholders = ",".join("?" * len(card_ids))
    conn = get_connection(db_path)
    rows = conn.execute(
        f"SELECT * FROM cards WHERE id IN ({placeholders})", list(card_ids)
    ).fetchall()
    conn.close()
    return {r["id"]: _row_to_card(r) for r in rows}


def get_cards_for_deck(db_path: str, deck_id: int) -> list[Card]:
    conn = get_connection(db_path)
    rows = conn.execute(
        "SELECT * FROM cards WHERE deck_id = ? ORDER BY id", (deck_id,)
    ).fetchall()
    conn.close()
    return [_row_to_card(r) for r in rows]


def get_due_cards(db_path: str, deck_id: int, now: int, limit: int = 20) -> list[Card]:
    """Never-studied cards first, then those eligible by ``now``, soonest first."""
    conn = get_connection(db_path)
    rows = conn.execute(
        """SELECT * FROM cards
        WHERE deck_id = ? AND (next_eligible_at IS NULL OR next_eligible_at <= ?)
        ORDER BY next_eligible_at ASC NULLS FIRST, id ASC
        LIMIT ?""",
        (deck_id, now, limit),
    ).fetchall()
    conn.close()
    return [_row_to_card(r) for r in rows]


def count_due_cards(db_path: str, deck_id: int, now: int) -> int:
    conn = get_connection(db_path)
    count = conn.execute(
        """SELECT COUNT(*) FROM cards
        WHERE deck_id = ? AND (next_eligible_at IS NULL OR next_eligible_at <= ?)""",
        (deck_id, now),
    ).fetchone()[0]
    conn.close()
    return count


def count_mastered_cards(db_path: str, deck_id: int) -> int:
    conn = get_connection(db_path)
    count = conn.execute(
        "SELECT COUNT(*) FROM cards WHERE deck_id = ? AND mastery_level >= ?",
        (deck_id, MAX_LEVEL),
    ).fetchone()[0]
    conn.close()
    return count
