"""On-demand path: answering a subscriber's free-text message."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field, replace
from typing import List, Optional

from .catalog import TopicCatalog
from .corpus import CorpusIndex
from .models import Passage, Subscriber
from .notifier import BaseTransport
from .search import SearchEngine
from .selector import DeliverySelector

logger = logging.getLogger(__name__)

# "John 3:16", "1 John 4:8", "Song Of Solomon 2:4"
CITATION_PATTERN = re.compile(r"\b((?:[1-3] )?[A-Z][a-z]+(?:\s[A-Z][a-z]+)*)\s+(\d+):(\d+)\b")


@dataclass(frozen=True)
class Citation:
    """A reference found in free text."""

    raw: str
    book: str
    chapter: int
    verse: int


@dataclass
class CitationReport:
    verified: List[Citation] = field(default_factory=list)
    unverified: List[Citation] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.unverified


def find_citations(text: str) -> List[Citation]:
    """Extract Book Chapter:Verse references from arbitrary text."""
    return [
        Citation(m.group(0), m.group(1), int(m.group(2)), int(m.group(3)))
        for m in CITATION_PATTERN.finditer(text or "")
    ]


def verify_citations(index: CorpusIndex, text: str) -> CitationReport:
    """Split the references in ``text`` into those the corpus has and those it lacks."""
    report = CitationReport()
    for citation in find_citations(text):
        if index.verify(citation.book, citation.chapter, citation.verse):
            report.verified.append(citation)
        else:
            report.unverified.append(citation)
    if report.unverified:
        logger.warning(
            "Unverified references: %s", ", ".join(c.raw for c in report.unverified)
        )
    return report


class LiveResponder:
    """Resolves a free-text message into passages and sends them."""

    def __init__(
        self,
        index: CorpusIndex,
        catalog: TopicCatalog,
        selector: DeliverySelector,
        transport: BaseTransport,
    ):
        self.index = index
        self.catalog = catalog
        self.selector = selector
        self.transport = transport
        self.search_engine = SearchEngine(index)

    def topic_passages(self, label: str) -> List[Passage]:
        return self.catalog.resolve(label, self.index)

    def build_context(self, message: str, limit: int = 10) -> List[Passage]:
        """
        Grounding passages for a message: search hits first, then the
        detected topic's passages, without duplicates.
        """
        passages = self.search_engine.search(message, limit=limit)
        seen = {p.ref for p in passages}

        detected = self.catalog.detect(message)
        if detected:
            for passage in self.topic_passages(detected):
                if passage.ref not in seen:
                    seen.add(passage.ref)
                    passages.append(passage)

        return passages[:limit]

    def resolve_topic(self, subscriber: Subscriber, message: str) -> str:
        detected = self.catalog.detect(message)
        if detected and detected in self.catalog:
            return detected
        return subscriber.topic

    def respond(self, subscriber: Subscriber, message: str, count: Optional[int] = None) -> List[Passage]:
        """
        Pick passages for a message and send them.

        Delivery errors propagate to the caller, which owns the conversation.
        """
        topic = self.resolve_topic(subscriber, message)
        probe = replace(subscriber, topic=topic)
        passages = self.selector.select(probe, count=count)
        if passages:
            self.transport.send_passages(subscriber.user_id, passages)
        else:
            logger.info("No passages for %s (topic %r)", subscriber.user_id, topic)
        return passages
