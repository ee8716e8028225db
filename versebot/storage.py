"""JSON-file persistence for subscribers and the sent-passage ledger."""

import json
import logging
import os
import re
import threading
from datetime import date, datetime, timedelta
from pathlib import Path
from typing import Dict, List, Optional, Set, Union

from .models import DEFAULT_SLOTS, DEFAULT_TOPIC, SLOT_NAMES, Subscriber

logger = logging.getLogger(__name__)

RETENTION_DAYS = 7

HHMM_PATTERN = re.compile(r"^\d{2}:\d{2}$")

DateLike = Union[date, str]


class DirectoryError(ValueError):
    """Raised when a subscriber update carries an invalid slot or time."""


def read_json(path: Path, fallback: dict) -> dict:
    """
    Read a JSON object from disk.

    Missing, empty, corrupt or non-object files all yield ``fallback``:
    losing stored state is recoverable, crashing the dispatcher is not.
    """
    if not path.exists():
        return fallback
    try:
        raw = path.read_text(encoding="utf-8").strip()
        if not raw:
            return fallback
        data = json.loads(raw)
    except (OSError, json.JSONDecodeError) as e:
        logger.warning(f"Ignoring unreadable store {path.name}: {e}")
        return fallback
    if not isinstance(data, dict):
        return fallback
    return data


def write_json(path: Path, data: dict) -> None:
    """Write atomically: temp file in the same directory, then replace."""
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_name(path.name + ".tmp")
    with open(tmp, "w", encoding="utf-8") as f:
        json.dump(data, f, indent=2, ensure_ascii=False)
    os.replace(tmp, path)


def _date_str(day: DateLike) -> str:
    return day.isoformat() if isinstance(day, date) else str(day)


class SentLedger:
    """
    Per-subscriber, per-day record of passages already delivered.

    Keys are ``"<subscriber_id>|<YYYY-MM-DD>"``. With ``path=None`` the
    ledger lives in memory only.
    """

    def __init__(self, path: Optional[str] = "data/sent_verses.json"):
        self.path = Path(path) if path else None
        self._lock = threading.Lock()
        self._memory: Dict[str, List[str]] = {}

    def _read(self) -> Dict[str, List[str]]:
        if self.path is None:
            return self._memory
        return read_json(self.path, {})

    def _write(self, log: Dict[str, List[str]]) -> None:
        if self.path is None:
            self._memory = log
        else:
            write_json(self.path, log)

    @staticmethod
    def _key(subscriber_id, day: DateLike) -> str:
        return f"{subscriber_id}|{_date_str(day)}"

    def get(self, subscriber_id, day: DateLike) -> Set[str]:
        """Refs already sent to the subscriber on the given day."""
        with self._lock:
            entries = self._read().get(self._key(subscriber_id, day)) or []
        return {str(ref) for ref in entries} if isinstance(entries, list) else set()

    def append(self, subscriber_id, day: DateLike, ref: str) -> None:
        """
        Record a delivered ref. Idempotent.

        After writing, entries dated more than RETENTION_DAYS before ``day``
        are pruned.
        """
        key = self._key(subscriber_id, day)
        with self._lock:
            log = dict(self._read())
            entries = log.get(key)
            if not isinstance(entries, list):
                entries = []
            if ref in entries:
                return

            log[key] = entries + [ref]
            self._prune(log, day)
            self._write(log)

    @staticmethod
    def _prune(log: Dict[str, List[str]], day: DateLike) -> None:
        current = day if isinstance(day, date) else date.fromisoformat(str(day))
        cutoff = (current - timedelta(days=RETENTION_DAYS)).isoformat()

        for key in list(log):
            entry_date = key.rsplit("|", 1)[-1]
            # ISO dates compare correctly as strings
            if entry_date < cutoff:
                del log[key]


class SubscriberDirectory:
    """Subscriber records stored as a JSON object keyed by subscriber id."""

    def __init__(self, path: str = "data/users.json"):
        """
        Initialize directory with its storage path.

        Args:
            path: Path to the users JSON file
        """
        self.path = Path(path)
        self._lock = threading.Lock()

    def _read(self) -> Dict[str, dict]:
        users = read_json(self.path, {})
        return {k: {**v, "user_id": k} for k, v in users.items() if isinstance(v, dict)}

    def get(self, user_id) -> Optional[Subscriber]:
        """Return the subscriber, or None if unknown."""
        with self._lock:
            record = self._read().get(str(user_id))
        return Subscriber.from_dict(record) if record else None

    def upsert(self, user_id, username: str = "") -> Subscriber:
        """Create the subscriber with default settings if new; return the record."""
        key = str(user_id)
        with self._lock:
            users = self._read()
            if key not in users:
                users[key] = {
                    "user_id": key,
                    "username": username or key,
                    "topic": DEFAULT_TOPIC,
                    **DEFAULT_SLOTS,
                    "registered_at": datetime.now().isoformat(),
                }
                write_json(self.path, users)
                logger.info(f"Registered subscriber {key}")
            return Subscriber.from_dict(users[key])

    def update(self, user_id, fields: dict) -> Optional[Subscriber]:
        """Merge fields into the record. Returns None if the subscriber is unknown."""
        key = str(user_id)
        with self._lock:
            users = self._read()
            if key not in users:
                return None
            users[key] = {**users[key], **fields}
            write_json(self.path, users)
            return Subscriber.from_dict(users[key])

    def set_topic(self, user_id, topic: str) -> Optional[Subscriber]:
        return self.update(user_id, {"topic": topic})

    def set_slot(self, user_id, slot: str, hhmm: str) -> Optional[Subscriber]:
        """Change one delivery slot after validating its name and HH:MM value."""
        slot = (slot or "").lower()
        if slot not in SLOT_NAMES:
            raise DirectoryError(f"Unknown slot {slot!r}; expected one of {', '.join(SLOT_NAMES)}")
        if not hhmm or not HHMM_PATTERN.match(hhmm):
            raise DirectoryError(f"Time must be in HH:MM format, got {hhmm!r}")
        hours, minutes = (int(part) for part in hhmm.split(":"))
        if hours > 23 or minutes > 59:
            raise DirectoryError(f"Time out of range: {hhmm}")
        return self.update(user_id, {slot: hhmm})

    def all(self) -> List[Subscriber]:
        with self._lock:
            users = self._read()
        return [Subscriber.from_dict(record) for record in users.values()]

    def by_slot(self, hhmm: str) -> List[Subscriber]:
        """Subscribers with any slot equal to hhmm; each appears once."""
        return [sub for sub in self.all() if sub.has_slot(hhmm)]
