import pytest

from flashdeck.cards import add_cards, add_deck
from flashdeck.db import init_db


@pytest.fixture
def tmp_db(tmp_path):
    """Provide a temporary SQLite database path for tests."""
    db_path = str(tmp_path / "test_flashdeck.db")
    return db_path


@pytest.fixture
def deck(tmp_db):
    """Initialized database with one deck of five never-studied cards.

    Returns (db_path, deck_id, card_ids).
    """
    init_db(tmp_db)
    deck_id = add_deck(tmp_db, "Basics")
    card_ids = add_cards(
        tmp_db, deck_id,
        [{"front": f"word{i}", "back": f"meaning{i}"} for i in range(1, 6)],
    )
    return tmp_db, deck_id, card_ids
