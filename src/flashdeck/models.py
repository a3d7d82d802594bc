"""Data classes for the study domain model."""
from dataclasses import dataclass, field
from typing import Optional


@dataclass
class Deck:
    id: int
    name: str
    description: str = ""


@dataclass
class Card:
    id: int
    deck_id: int
    front: str
    back: str
    example: Optional[str] = None
    mastery_level: int = 0  # 0=new, 1-4=learning, 5=mastered
    next_eligible_at: Optional[int] = None  # epoch ms, None = never studied
    review_count: int = 0


@dataclass(frozen=True)
class ReviewEvent:
    session_id: Optional[int]  # None once the session snapshot is deleted
    card_id: int
    outcome: int
    previous_level: int
    new_level: int
    reviewed_at: int
    response_time_ms: int = 0


@dataclass
class SessionState:
    """Progress of one study session.

    Cards are addressed by id. ``cursor`` walks ``primary_queue``; once it
    reaches the end, the card shown is the front of ``deferred_queue`` until
    that queue is drained too.
    """

    primary_queue: list[int]
    deferred_queue: list[int] = field(default_factory=list)
    cursor: int = 0
    revealed: bool = False
    known_count: int = 0
    again_count: int = 0
    later_count: int = 0
    direction: bool = False  # True = back shown first
    started_at: Optional[int] = None
    completed_at: Optional[int] = None
    session_id: Optional[int] = None
    deck_id: Optional[int] = None

    @property
    def in_deferred_pass(self) -> bool:
        return self.cursor >= len(self.primary_queue)

    @property
    def is_completed(self) -> bool:
        return self.in_deferred_pass and not self.deferred_queue

    @property
    def current_card_id(self) -> Optional[int]:
        if not self.in_deferred_pass:
            return self.primary_queue[self.cursor]
        if self.deferred_queue:
            return self.deferred_queue[0]
        return None

    @property
    def remaining(self) -> int:
        """Presentations left, counting owed replays."""
        if self.in_deferred_pass:
            return len(self.deferred_queue)
        return len(self.primary_queue) - self.cursor + len(self.deferred_queue)

    @property
    def resolved_count(self) -> int:
        """Cards with no presentation left in this session."""
        return min(self.cursor, len(self.primary_queue)) - len(self.deferred_queue)

    @property
    def progress(self) -> float:
        """Fraction of the session done, 0.0 to 1.0."""
        if not self.primary_queue:
            return 0.0
        return self.resolved_count / len(self.primary_queue)

    @property
    def progress_text(self) -> str:
        return f"{self.resolved_count}/{len(self.primary_queue)}"

    @property
    def is_last_card(self) -> bool:
        return self.remaining == 1


@dataclass
class DailyStat:
    date: str  # YYYY-MM-DD
    studied_count: int = 0
    streak: int = 0


@dataclass
class SessionSummary:
    total_cards: int
    known_count: int
    again_count: int
    later_count: int
    duration_ms: int = 0
    deck_id: Optional[int] = None
    streak: int = 0

    @property
    def accuracy_percent(self) -> int:
        if self.total_cards == 0:
            return 0
        return self.known_count * 100 // self.total_cards

    @property
    def is_perfect(self) -> bool:
        return self.total_cards > 0 and self.known_count == self.total_cards

    @property
    def duration_formatted(self) -> str:
        seconds = self.duration_ms // 1000
        return f"{seconds // 60}:{seconds % 60:02d}"
