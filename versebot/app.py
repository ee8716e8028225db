"""Service assembly: builds the read-only index once and wires collaborators."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from .catalog import TopicCatalog, load_catalog
from .config import AppConfig
from .corpus import CorpusIndex, load_corpus
from .live import LiveResponder
from .notifier import BaseTransport, build_transport
from .scheduler import Scheduler
from .search import SearchEngine
from .selector import DeliverySelector, RandomSource
from .storage import SentLedger, SubscriberDirectory

logger = logging.getLogger(__name__)


@dataclass
class App:
    config: AppConfig
    index: CorpusIndex
    catalog: TopicCatalog
    search_engine: SearchEngine
    ledger: SentLedger
    directory: SubscriberDirectory
    selector: DeliverySelector
    transport: BaseTransport
    scheduler: Scheduler
    responder: LiveResponder


def build_app(
    config: AppConfig,
    transport: Optional[BaseTransport] = None,
    rng: Optional[RandomSource] = None,
) -> App:
    """
    Build every component from configuration.

    Raises CorpusError or CatalogError when the corpus or catalog cannot be
    loaded; the service must not start without them.
    """
    index = load_corpus(config.corpus_path)
    catalog = load_catalog(config.catalog_path)

    missing = [label for label in catalog.list_topics() if not catalog.resolve(label, index)]
    if missing:
        logger.warning(f"Topics with no passages in the corpus: {', '.join(missing)}")

    ledger = SentLedger(config.ledger_path)
    directory = SubscriberDirectory(config.users_path)
    selector = DeliverySelector(
        index,
        catalog,
        ledger,
        config=config.delivery,
        timezone=config.timezone,
        rng=rng,
    )
    transport = transport or build_transport(config.notification)
    scheduler = Scheduler(
        directory,
        selector,
        transport,
        timezone=config.timezone,
        count=config.delivery.count,
        max_workers=config.max_workers,
        overlap=config.overlap,
    )
    responder = LiveResponder(index, catalog, selector, transport)

    return App(
        config=config,
        index=index,
        catalog=catalog,
        search_engine=SearchEngine(index),
        ledger=ledger,
        directory=directory,
        selector=selector,
        transport=transport,
        scheduler=scheduler,
        responder=responder,
    )
