"""Data models for passages, references and subscribers."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, Optional

SLOT_NAMES = ("morning", "midday", "afternoon", "evening")

DEFAULT_TOPIC = "encouragement"

DEFAULT_SLOTS: Dict[str, str] = {
    "morning": "07:30",
    "midday": "12:00",
    "afternoon": "16:30",
    "evening": "21:00",
}


def normalize_book(book) -> str:
    """Strip all whitespace from a book name ("1 John" -> "1John")."""
    return "".join(str(book).split())


@dataclass(frozen=True)
class PassageRef:
    """Identity of a single passage, without its text."""

    book: str
    chapter: int
    verse: int

    @property
    def key(self) -> str:
        """Normalized lookup key used by the corpus index."""
        return f"{normalize_book(self.book)}|{self.chapter}|{self.verse}"

    def __str__(self) -> str:
        return f"{self.book} {self.chapter}:{self.verse}"

    @staticmethod
    def from_dict(data: dict) -> "PassageRef":
        return PassageRef(
            book=str(data["book"]),
            chapter=int(data["chapter"]),
            verse=int(data["verse"]),
        )


@dataclass(frozen=True)
class PassageRecord:
    """A passage as loaded from the corpus. Immutable once built."""

    book: str
    chapter: int
    verse: int
    text: str

    @property
    def ref(self) -> PassageRef:
        return PassageRef(self.book, self.chapter, self.verse)


@dataclass(frozen=True)
class Passage:
    """A (ref, text) pair as returned by search and selection."""

    ref: PassageRef
    text: str

    def to_dict(self) -> dict:
        return {"ref": str(self.ref), "text": self.text}


@dataclass
class Subscriber:
    """Represents a subscriber and their delivery preferences."""

    user_id: str
    username: str = ""
    topic: str = DEFAULT_TOPIC

    # Local-time delivery slots (HH:MM)
    morning: str = DEFAULT_SLOTS["morning"]
    midday: str = DEFAULT_SLOTS["midday"]
    afternoon: str = DEFAULT_SLOTS["afternoon"]
    evening: str = DEFAULT_SLOTS["evening"]

    registered_at: Optional[str] = field(
        default_factory=lambda: datetime.now().isoformat()
    )

    def slots(self) -> Dict[str, str]:
        return {name: getattr(self, name) for name in SLOT_NAMES}

    def has_slot(self, hhmm: str) -> bool:
        """True if any of the four slots equals hhmm."""
        return hhmm in self.slots().values()

    def to_dict(self) -> dict:
        """Convert subscriber to dictionary for JSON serialization."""
        return {
            "user_id": self.user_id,
            "username": self.username,
            "topic": self.topic,
            "morning": self.morning,
            "midday": self.midday,
            "afternoon": self.afternoon,
            "evening": self.evening,
            "registered_at": self.registered_at,
        }

    @staticmethod
    def from_dict(data: dict) -> "Subscriber":
        """
        Create a Subscriber from a stored record.

        Missing fields fall back to the defaults, so a partially written
        record still yields a usable subscriber.
        """
        return Subscriber(
            user_id=str(data.get("user_id", "")),
            username=str(data.get("username") or ""),
            topic=str(data.get("topic") or DEFAULT_TOPIC),
            morning=str(data.get("morning") or DEFAULT_SLOTS["morning"]),
            midday=str(data.get("midday") or DEFAULT_SLOTS["midday"]),
            afternoon=str(data.get("afternoon") or DEFAULT_SLOTS["afternoon"]),
            evening=str(data.get("evening") or DEFAULT_SLOTS["evening"]),
            registered_at=data.get("registered_at"),
        )


@dataclass
class DeliveryConfig:
    """Configuration for passage selection."""

    count: int = 2
    search_pool: int = 20
    default_topic: str = DEFAULT_TOPIC
