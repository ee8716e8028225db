"""Full-text relevance search over the corpus index."""

import logging
from typing import List

from .corpus import CorpusIndex
from .models import Passage

logger = logging.getLogger(__name__)

MIN_TOKEN_LENGTH = 3

STOPWORDS = frozenset(
    {
        "the", "and", "for", "are", "but", "not", "you", "all", "any", "can",
        "had", "her", "was", "one", "our", "out", "has", "him", "his", "how",
        "its", "may", "who", "did", "get", "let", "she", "too", "use", "yet",
        "that", "this", "with", "from", "have", "what", "when", "will", "your",
        "they", "them", "then", "than", "there", "their", "were", "been",
        "into", "some", "just", "very", "also", "about", "which", "would",
        "could", "should", "shall", "unto", "thee", "thou", "thy", "hath",
        "does", "doth", "upon", "these", "those", "where", "while",
    }
)


def tokenize(query: str) -> List[str]:
    """
    Turn a free-text query into distinct search tokens.

    Lowercases, drops every character that is not a letter or whitespace,
    splits on whitespace and discards short tokens and stopwords.
    """
    cleaned = "".join(ch for ch in (query or "").lower() if ch.isalpha() or ch.isspace())

    tokens: List[str] = []
    for token in cleaned.split():
        if len(token) < MIN_TOKEN_LENGTH or token in STOPWORDS:
            continue
        if token not in tokens:
            tokens.append(token)
    return tokens


class SearchEngine:
    """Ranks corpus passages by how many query tokens they contain."""

    def __init__(self, index: CorpusIndex):
        self.index = index

    def search(self, query: str, limit: int = 20) -> List[Passage]:
        """
        Search the corpus.

        Args:
            query: Free-text query
            limit: Maximum number of results

        Returns:
            Passages sorted by score descending; equal scores keep corpus order.
        """
        tokens = tokenize(query)
        if not tokens or limit <= 0:
            return []

        scored = []
        for passage in self.index.all():
            text = passage.text.lower()
            score = sum(1 for token in tokens if token in text)
            if score > 0:
                scored.append((score, passage))

        # sorted() is stable, so ties stay in corpus load order
        ranked = sorted(scored, key=lambda item: item[0], reverse=True)

        logger.debug(
            f"Search {tokens} matched {len(ranked)} passages (limit={limit})"
        )
        return [passage for _, passage in ranked[:limit]]
