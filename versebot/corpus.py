"""Corpus index: loads and normalizes the raw passage corpus for lookup."""

import json
import logging
from pathlib import Path
from typing import Dict, Iterator, List, Optional, Tuple

from .models import Passage, PassageRecord, PassageRef, normalize_book

logger = logging.getLogger(__name__)

# Accepted field names for record-shaped corpora, in precedence order.
FIELD_ALIASES: Dict[str, Tuple[str, ...]] = {
    "book": ("book_name", "book", "Book"),
    "chapter": ("chapter", "Chapter"),
    "verse": ("verse", "Verse"),
    "text": ("text", "Text"),
}

KEY_SEPARATOR = "."


class CorpusError(ValueError):
    """Raised when the corpus is missing or yields no usable passages."""


def _pick(record: dict, field_name: str):
    for alias in FIELD_ALIASES[field_name]:
        value = record.get(alias)
        if value:
            return value
    return None


def _to_int(value) -> Optional[int]:
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _record_from_mapping(record: dict) -> Optional[PassageRecord]:
    """Normalize one record-shaped entry; None if any field is unusable."""
    if not isinstance(record, dict):
        return None

    book = _pick(record, "book")
    chapter = _to_int(_pick(record, "chapter"))
    verse = _to_int(_pick(record, "verse"))
    text = _pick(record, "text")

    if not book or not chapter or not verse or not text:
        return None

    text = str(text).strip()
    if not text:
        return None
    return PassageRecord(str(book).strip(), chapter, verse, text)


def _record_from_key(key: str, text) -> Optional[PassageRecord]:
    """Normalize one "Book.Chapter.Verse" -> text entry."""
    if not text:
        return None

    parts = str(key).split(KEY_SEPARATOR)
    if len(parts) < 3:
        return None
    verse = _to_int(parts[-1])
    chapter = _to_int(parts[-2])
    book = "".join(parts[:-2])

    text = str(text).strip()
    if not book or not chapter or not verse or not text:
        return None
    return PassageRecord(book, chapter, verse, text)


class CorpusIndex:
    """
    Read-only passage index.

    Holds a lookup table keyed by ``<BookNoSpaces>|<chapter>|<verse>`` and
    the passages in corpus load order. Build it with :func:`build_index`.
    """

    def __init__(self, records: Dict[str, PassageRecord]):
        self._records = dict(records)
        self._ordered = [Passage(r.ref, r.text) for r in self._records.values()]

    def __len__(self) -> int:
        return len(self._records)

    def __contains__(self, ref: PassageRef) -> bool:
        return ref.key in self._records

    def lookup(self, book: str, chapter, verse) -> Optional[str]:
        """Return passage text, or None if the reference is not indexed."""
        chapter_num = _to_int(chapter)
        verse_num = _to_int(verse)
        if chapter_num is None or verse_num is None:
            return None
        record = self._records.get(f"{normalize_book(book)}|{chapter_num}|{verse_num}")
        return record.text if record else None

    def lookup_ref(self, ref: PassageRef) -> Optional[str]:
        return self.lookup(ref.book, ref.chapter, ref.verse)

    def verify(self, book: str, chapter, verse) -> bool:
        return self.lookup(book, chapter, verse) is not None

    def all(self) -> List[Passage]:
        """All passages in corpus load order (a fresh list on every call)."""
        return list(self._ordered)

    def __iter__(self) -> Iterator[Passage]:
        return iter(self._ordered)


def build_index(raw) -> CorpusIndex:
    """
    Build a CorpusIndex from raw corpus data.

    Args:
        raw: Either a list of passage dicts (field aliases accepted, see
            FIELD_ALIASES) or a dict of ``"Book.Chapter.Verse": text``.

    Returns:
        CorpusIndex

    Raises:
        CorpusError: if the corpus is absent, empty, of an unknown shape,
            or contains no usable passages.
    """
    if raw is None:
        raise CorpusError("Corpus is missing")

    records: Dict[str, PassageRecord] = {}
    skipped = 0

    if isinstance(raw, list):
        if not raw:
            raise CorpusError("Corpus is an empty array")
        candidates = (_record_from_mapping(item) for item in raw)
    elif isinstance(raw, dict):
        candidates = (_record_from_key(key, text) for key, text in raw.items())
    else:
        raise CorpusError(f"Unsupported corpus shape: {type(raw).__name__}")

    for record in candidates:
        if record is None:
            skipped += 1
            continue
        key = record.ref.key
        if key in records:
            logger.debug(f"Duplicate corpus key {key}, keeping later entry")
        records[key] = record

    if not records:
        raise CorpusError("Corpus loaded but contains no usable passages")

    if skipped:
        logger.warning(f"Skipped {skipped} unusable corpus entries")

    index = CorpusIndex(records)
    logger.info(f"Corpus index built: {len(index):,} passages loaded")
    return index


def load_corpus(path: str) -> CorpusIndex:
    """Read a JSON corpus file and build its index."""
    corpus_path = Path(path)
    if not corpus_path.exists():
        raise CorpusError(f"Corpus file not found: {corpus_path}")

    try:
        with open(corpus_path, "r", encoding="utf-8") as f:
            raw = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise CorpusError(f"Corpus file is unreadable: {e}") from e

    return build_index(raw)
