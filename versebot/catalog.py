"""Curated topic catalog and keyword-based topic detection."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple

import yaml

from .corpus import CorpusIndex
from .models import Passage, PassageRef

logger = logging.getLogger(__name__)


class CatalogError(ValueError):
    """Raised when the topic catalog file is missing or malformed."""


@dataclass(frozen=True)
class KeywordRule:
    """One (substring -> topic) detection rule."""

    keyword: str
    topic: str


class TopicCatalog:
    """Topic label -> ordered refs, plus an ordered keyword detection list."""

    def __init__(
        self,
        topics: Dict[str, Sequence[PassageRef]],
        keywords: Sequence[KeywordRule] = (),
    ):
        self._topics: Dict[str, Tuple[PassageRef, ...]] = {
            label: tuple(refs) for label, refs in topics.items()
        }
        self._keywords: Tuple[KeywordRule, ...] = tuple(
            KeywordRule(rule.keyword.lower(), rule.topic) for rule in keywords
        )

    def __contains__(self, label: str) -> bool:
        return label in self._topics

    def list_topics(self) -> List[str]:
        return list(self._topics)

    def topic_refs(self, label: str) -> List[PassageRef]:
        """Refs for a label in definition order; empty if the label is unknown."""
        return list(self._topics.get(label, ()))

    @property
    def keywords(self) -> List[KeywordRule]:
        return list(self._keywords)

    def detect(self, text: str) -> Optional[str]:
        """
        Detect a topic from free text.

        The first rule (in configuration order) whose keyword occurs as a
        substring of the lowercased text wins.
        """
        lower = (text or "").lower()
        for rule in self._keywords:
            if rule.keyword and rule.keyword in lower:
                return rule.topic
        return None

    def resolve(self, label: str, index: CorpusIndex) -> List[Passage]:
        """Passages of a label that exist in the index, in catalog order."""
        passages = []
        for ref in self._topics.get(label, ()):
            text = index.lookup_ref(ref)
            if text is not None:
                passages.append(Passage(ref, text))
        return passages


def _parse_keywords(raw) -> List[KeywordRule]:
    if raw is None:
        return []

    # Legacy form: {keyword: topic}, read in file order.
    if isinstance(raw, dict):
        return [KeywordRule(str(k), str(v)) for k, v in raw.items()]

    if not isinstance(raw, list):
        raise CatalogError("`keywords` must be a list of {keyword, topic} entries")

    rules = []
    for entry in raw:
        if isinstance(entry, dict) and "keyword" in entry and "topic" in entry:
            rules.append(KeywordRule(str(entry["keyword"]), str(entry["topic"])))
        elif isinstance(entry, (list, tuple)) and len(entry) == 2:
            rules.append(KeywordRule(str(entry[0]), str(entry[1])))
        else:
            raise CatalogError(f"Invalid keyword entry: {entry!r}")
    return rules


def _parse_topics(raw) -> Dict[str, List[PassageRef]]:
    if not isinstance(raw, dict):
        raise CatalogError("`topics` must be a mapping of label -> refs")

    topics: Dict[str, List[PassageRef]] = {}
    for label, refs in raw.items():
        parsed = []
        for ref in refs or []:
            try:
                parsed.append(PassageRef.from_dict(ref))
            except (KeyError, TypeError, ValueError) as e:
                raise CatalogError(f"Invalid ref in topic {label!r}: {ref!r}") from e
        topics[str(label)] = parsed
    return topics


def build_catalog(data: dict) -> TopicCatalog:
    """Build a TopicCatalog from parsed config data."""
    if not isinstance(data, dict):
        raise CatalogError("Catalog data must be a mapping")

    topics = _parse_topics(data.get("topics") or {})
    keywords = _parse_keywords(data.get("keywords"))

    unknown = sorted({rule.topic for rule in keywords if rule.topic not in topics})
    if unknown:
        logger.warning(f"Keyword rules point at unknown topics: {', '.join(unknown)}")

    logger.info(f"Topic catalog loaded: {len(topics)} topics, {len(keywords)} keyword rules")
    return TopicCatalog(topics, keywords)


def load_catalog(path: str) -> TopicCatalog:
    """Load the catalog from a YAML or JSON file."""
    catalog_path = Path(path)
    if not catalog_path.exists():
        raise CatalogError(f"Catalog file not found: {catalog_path}")

    try:
        with open(catalog_path, "r", encoding="utf-8") as f:
            if catalog_path.suffix == ".json":
                data = json.load(f)
            else:
                data = yaml.safe_load(f)
    except (OSError, json.JSONDecodeError, yaml.YAMLError) as e:
        raise CatalogError(f"Catalog file is unreadable: {e}") from e

    return build_catalog(data or {})
