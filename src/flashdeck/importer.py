"""Import decks of cards from JSON, YAML or CSV/TSV files."""
import csv
import json
import logging
from pathlib import Path

from flashdeck.cards import add_cards, add_deck

logger = logging.getLogger(__name__)


def _load_structured(data) -> tuple[str | None, str, list]:
    """Accept either a bare list of cards or {"name", "description", "cards"}."""
    if isinstance(data, dict):
        return data.get("name"), data.get("description", ""), data.get("cards") or []
    if isinstance(data, list):
        return None, "", data
    raise ValueError("expected a list of cards or a mapping with a 'cards' key")


def read_deck_file(file_path: str) -> tuple[str | None, str, list]:
    """Return (deck name or None, description, raw card entries) from a file."""
    path = Path(file_path)
    suffix = path.suffix.lower()

    if suffix == ".json":
        return _load_structured(json.loads(path.read_text(encoding="utf-8")))
    elif suffix in (".yaml", ".yml"):
        import yaml
        return _load_structured(yaml.safe_load(path.read_text(encoding="utf-8")))
    elif suffix in (".csv", ".tsv", ".txt"):
        delimiter = "," if suffix == ".csv" else "\t"
        with path.open(newline="", encoding="utf-8") as f:
            rows = [row for row in csv.reader(f, delimiter=delimiter) if row]
        if rows and [c.strip().lower() for c in rows[0][:2]] == ["front", "back"]:
            rows = rows[1:]
        entries = []
        for row in rows:
            entry = {"front": row[0], "back": row[1] if len(row) > 1 else ""}
            if len(row) > 2 and row[2]:
                entry["example"] = row[2]
            entries.append(entry)
        return None, "", entries
    raise ValueError(f"unsupported deck file type: {suffix or path.name}")


def normalize_cards(entries: list) -> list[dict]:
    """Keep entries with non-empty front and back; skip the rest with a warning."""
    cards = []
    for i, entry in enumerate(entries, 1):
        if not isinstance(entry, dict):
            logger.warning("Skipping card %d: not a mapping", i)
            continue
        front = str(entry.get("front") or "").strip()
        back = str(entry.get("back") or "").strip()
        if not front or not back:
            logger.warning("Skipping card %d: front and back are required", i)
            continue
        example = entry.get("example")
        cards.append({"front": front, "back": back, "example": str(example).strip() if example else None})
    return cards


def import_deck(db_path: str, file_path: str, name: str | None = None) -> dict:
    """Create a deck from a file. The deck is named after the file unless given."""
    file_name, description, entries = read_deck_file(file_path)
    cards = normalize_cards(entries)
    deck_name = name or file_name or Path(file_path).stem
    deck_id = add_deck(db_path, deck_name, description or "")
    add_cards(db_path, deck_id, cards)
    logger.info("Imported %d card(s) into deck %r", len(cards), deck_name)
    return {
        "deck_id": deck_id,
        "name": deck_name,
        "imported": len(cards),
        "skipped": len(entries) - len(cards),
    }
