"""versebot - scheduled and on-demand passage delivery from a fixed corpus."""

__version__ = "0.1.0"

from .catalog import CatalogError, KeywordRule, TopicCatalog, build_catalog, load_catalog
from .corpus import CorpusError, CorpusIndex, build_index, load_corpus
from .models import Passage, PassageRecord, PassageRef, Subscriber, DeliveryConfig
from .search import SearchEngine
from .selector import DeliverySelector
from .storage import SentLedger, SubscriberDirectory
from .scheduler import Scheduler
from .notifier import NotificationConfig, NotificationError, build_transport
from .live import LiveResponder, verify_citations

__all__ = [
    "CatalogError",
    "KeywordRule",
    "TopicCatalog",
    "build_catalog",
    "load_catalog",
    "CorpusError",
    "CorpusIndex",
    "build_index",
    "load_corpus",
    "Passage",
    "PassageRecord",
    "PassageRef",
    "Subscriber",
    "DeliveryConfig",
    "SearchEngine",
    "DeliverySelector",
    "SentLedger",
    "SubscriberDirectory",
    "Scheduler",
    "NotificationConfig",
    "NotificationError",
    "build_transport",
    # On-demand path
    "LiveResponder",
    "verify_citations",
]
