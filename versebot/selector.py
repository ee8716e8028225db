"""Delivery selector: topic resolution plus the daily anti-repeat policy."""

from __future__ import annotations

import logging
import random
import threading
from datetime import date, datetime
from typing import Dict, List, Optional, Protocol, Sequence

from .catalog import TopicCatalog
from .corpus import CorpusIndex
from .models import DeliveryConfig, Passage, Subscriber
from .search import SearchEngine
from .storage import SentLedger

logger = logging.getLogger(__name__)


class RandomSource(Protocol):
    """Anything with ``random.Random.sample`` semantics."""

    def sample(self, population: Sequence, k: int) -> list:  # pragma: no cover - interface
        ...


def today_in_tz(timezone_name: str) -> date:
    from zoneinfo import ZoneInfo

    tz = ZoneInfo(timezone_name)
    return datetime.now(tz).date()


class DeliverySelector:
    """Picks passages for a subscriber without same-day repeats."""

    def __init__(
        self,
        index: CorpusIndex,
        catalog: TopicCatalog,
        ledger: SentLedger,
        config: Optional[DeliveryConfig] = None,
        timezone: str = "America/Los_Angeles",
        rng: Optional[RandomSource] = None,
    ):
        self.index = index
        self.catalog = catalog
        self.ledger = ledger
        self.config = config or DeliveryConfig()
        self.timezone = timezone
        self.search_engine = SearchEngine(index)
        self.rng = rng or random.Random()

        self._locks: Dict[str, threading.Lock] = {}
        self._locks_guard = threading.Lock()

    def _lock_for(self, subscriber_id: str) -> threading.Lock:
        with self._locks_guard:
            lock = self._locks.get(subscriber_id)
            if lock is None:
                lock = self._locks[subscriber_id] = threading.Lock()
            return lock

    def candidates(self, topic: str) -> List[Passage]:
        """
        Resolve a topic into its candidate pool.

        Catalog labels resolve to their indexed refs; anything else is
        treated as a free-text query.
        """
        if topic in self.catalog:
            return self.catalog.resolve(topic, self.index)
        return self.search_engine.search(topic, limit=self.config.search_pool)

    def _working_pool(self, topic: str, sent_today: set) -> List[Passage]:
        pool = self.candidates(topic)
        unseen = [p for p in pool if str(p.ref) not in sent_today]
        # Repeats are allowed only once every candidate was sent today
        return unseen or pool

    def select(
        self,
        subscriber: Subscriber,
        count: Optional[int] = None,
        today: Optional[date] = None,
    ) -> List[Passage]:
        """
        Select up to ``count`` passages for a subscriber and log them.

        Args:
            subscriber: Subscriber whose topic drives the selection
            count: Number of passages (default from DeliveryConfig)
            today: Ledger day (default: today in the configured timezone)

        Returns:
            Picked passages; empty when neither the topic nor the default
            topic resolves to anything.
        """
        count = self.config.count if count is None else count
        today = today or today_in_tz(self.timezone)
        subscriber_id = str(subscriber.user_id)
        topic = subscriber.topic or self.config.default_topic

        with self._lock_for(subscriber_id):
            sent_today = self.ledger.get(subscriber_id, today)

            pool = self._working_pool(topic, sent_today)
            if not pool and topic != self.config.default_topic:
                logger.info(
                    f"Topic {topic!r} resolved to nothing for {subscriber_id}, "
                    f"falling back to {self.config.default_topic!r}"
                )
                pool = self._working_pool(self.config.default_topic, sent_today)

            if not pool or count <= 0:
                return []

            picked = self.rng.sample(pool, min(count, len(pool)))
            for passage in picked:
                self.ledger.append(subscriber_id, today, str(passage.ref))

        return picked
