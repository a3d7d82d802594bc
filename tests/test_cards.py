# tests/test_cards.py
from flashdeck.cards import (
    add_cards, add_deck, count_due_cards, count_mastered_cards, get_card,
    get_cards_by_ids, get_cards_for_deck, get_deck, get_decks, get_due_cards,
)
from flashdeck.db import init_db, get_connection

NOW = 1_700_000_000_000


def _set_eligible(db_path, card_id, value):
    conn = get_connection(db_path)
    conn.execute("UPDATE cards SET next_eligible_at = ? WHERE id = ?", (value, card_id))
    conn.commit()
    conn.close()


def test_add_and_get_decks(tmp_db):
    init_db(tmp_db)
    first = add_deck(tmp_db, "Verbs", "common verbs")
    second = add_deck(tmp_db, "Nouns")
    decks = get_decks(tmp_db)
    assert [d.id for d in decks] == [first, second]
    assert get_deck(tmp_db, first).description == "common verbs"
    assert get_deck(tmp_db, 999) is None


def test_new_cards_start_unstudied(deck):
    db_path, deck_id, card_ids = deck
    card = get_card(db_path, card_ids[0])
    assert card.deck_id == deck_id
    assert card.mastery_level == 0
    assert card.next_eligible_at is None
    assert card.review_count == 0


def test_get_card_missing_returns_none(deck):
    db_path, _, _ = deck
    assert get_card(db_path, 12345) is None


def test_get_cards_by_ids(deck):
    db_path, _, card_ids = deck
    found = get_cards_by_ids(db_path, [card_ids[1], card_ids[3], 999])
    assert set(found) == {card_ids[1], card_ids[3]}
    assert get_cards_by_ids(db_path, []) == {}


def test_get_due_cards_new_first_then_soonest(deck):
    db_path, deck_id, ids = deck
    _set_eligible(db_path, ids[0], NOW - 10)
    _set_eligible(db_path, ids[1], NOW - 500)
    _set_eligible(db_path, ids[2], NOW + 5000)  # not due yet
    # ids[3] and ids[4] are new
    cards = get_due_cards(db_path, deck_id, NOW, limit=10)
    assert [c.id for c in cards] == [ids[3], ids[4], ids[1], ids[0]]


def test_get_due_cards_includes_exactly_now(deck):
    db_path, deck_id, ids = deck
    for card_id in ids:
        _set_eligible(db_path, card_id, NOW + 1)
    _set_eligible(db_path, ids[2], NOW)
    cards = get_due_cards(db_path, deck_id, NOW)
    assert [c.id for c in cards] == [ids[2]]


def test_get_due_cards_respects_limit(deck):
    db_path, deck_id, _ = deck
    assert len(get_due_cards(db_path, deck_id, NOW, limit=3)) == 3


def test_get_due_cards_only_from_deck(deck):
    db_path, deck_id, _ = deck
    other = add_deck(db_path, "Other")
    add_cards(db_path, other, [{"front": "x", "back": "y"}])
    cards = get_due_cards(db_path, deck_id, NOW, limit=50)
    assert len(cards) == 5
    assert all(c.deck_id == deck_id for c in cards)


def test_get_due_cards_empty_deck(tmp_db):
    init_db(tmp_db)
    deck_id = add_deck(tmp_db, "Empty")
    assert get_due_cards(tmp_db, deck_id, NOW) == []


def test_count_due_and_mastered(deck):
    db_path, deck_id, ids = deck
    _set_eligible(db_path, ids[0], NOW + 10_000)
    conn = get_connection(db_path)
    conn.execute("UPDATE cards SET mastery_level = 5 WHERE id = ?", (ids[1],))
    conn.commit()
    conn.close()
    assert count_due_cards(db_path, deck_id, NOW) == 4
    assert count_mastered_cards(db_path, deck_id) == 1


def test_add_cards_keeps_example(tmp_db):
    init_db(tmp_db)
    deck_id = add_deck(tmp_db, "Examples")
    add_cards(tmp_db, deck_id, [{"front": "run", "back": "to move fast", "example": "I run daily."}])
    cards = get_cards_for_deck(tmp_db, deck_id)
    assert cards[0].example == "I run daily."
