"""Data classes for the flashcard domain model."""
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional


@dataclass
class CardPerformance:
    ease_factor: float
    interval: int  # days
    repetitions: int
    next_review: datetime
    last_reviewed: datetime


@dataclass
class ReviewResult:
    correct: bool
    difficulty: int  # 1 (easiest) .. 5 (hardest)
    response_time: int  # milliseconds


@dataclass
class StudyStats:
    total_cards: int = 0
    new_cards: int = 0
    review_cards: int = 0
    due_cards: int = 0
    overdue_cards: int = 0
    average_ease_factor: float = 2.5


@dataclass
class Profile:
    id: int
    email: str
    name: str
    created_at: str
    last_login: Optional[str] = None
    study_goal: int = 20
    theme: str = "system"
    notifications: bool = True
    total_study_sessions: int = 0
    current_streak: int = 0
    longest_streak: int = 0
    total_cards_studied: int = 0
    last_study_date: Optional[str] = None


@dataclass
class Flashcard:
    id: int
    set_id: int
    user_id: int
    front: str
    back: str
    starred: bool = False
    review_count: int = 0
    position: Optional[int] = None
    created_at: str = ""
    updated_at: Optional[str] = None
    performance: Optional[CardPerformance] = None


@dataclass
class FlashcardSet:
    id: int
    user_id: int
    name: str
    description: str = ""
    difficulty: int = 3  # 1 (very easy) .. 5 (very hard)
    starred: bool = False
    created_at: str = ""
    updated_at: Optional[str] = None
    card_count: int = 0
    flashcards: Optional[list[Flashcard]] = None


@dataclass
class CardReview:
    card_id: int
    correct: bool
    difficulty: int
    response_time: int
    timestamp: datetime


@dataclass
class StudySession:
    id: int
    user_id: int
    set_id: int
    set_name: str
    total_cards: int
    session_type: str  # "review" | "new" | "mixed" | "all"
    start_time: datetime
    end_time: Optional[datetime] = None
    cards_reviewed: list[CardReview] = field(default_factory=list)
    is_active: bool = True


@dataclass
class ParsedFlashcard:
    front: str
    back: str
    starred: bool = False
    error: Optional[str] = None


@dataclass
class BulkCreateFailure:
    index: int
    card: dict
    error: str


@dataclass
class BulkCreateResult:
    created: list[Flashcard] = field(default_factory=list)
    failed: list[BulkCreateFailure] = field(default_factory=list)

    @property
    def success_count(self) -> int:
        return len(self.created)

    @property
    def failure_count(self) -> int:
        return len(self.failed)
