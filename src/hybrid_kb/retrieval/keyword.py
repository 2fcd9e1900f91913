"""
Heuristic keyword scorer.

Scores literal matches of the query against a document's title, content and
tags. All comparisons are case-insensitive.

Formula:
    score = 5 × [query ⊂ title]
          + 3 × [query ⊂ content]
          + 2 × |{tag : query ⊂ tag}|
          + Σ_{word ∈ query, len(word) > 2} (2 × count(word, title) + count(word, content))

Where:
    ⊂ = substring test
    count = non-overlapping literal occurrences

Documents scoring 0 are dropped, there is no "no match" placeholder.
"""

import logging
from typing import Iterable, List

from ..models import Document, KeywordHit
from .tokenizer import query_words

logger = logging.getLogger(__name__)


class KeywordScorer:
    """
    Literal substring and word-occurrence scorer.

    Weights are constructor parameters so they can be tuned, but the defaults
    define the ranking behavior callers rely on.
    """

    def __init__(
        self,
        title_weight: float = 5,
        content_weight: float = 3,
        tag_weight: float = 2,
        title_word_weight: float = 2,
        content_word_weight: float = 1
    ):
        """
        Args:
            title_weight: Bonus when the whole query occurs in the title
            content_weight: Bonus when the whole query occurs in the content
            tag_weight: Bonus per tag containing the whole query
            title_word_weight: Per occurrence of a query word in the title
            content_word_weight: Per occurrence of a query word in the content
        """
        self.title_weight = title_weight
        self.content_weight = content_weight
        self.tag_weight = tag_weight
        self.title_word_weight = title_word_weight
        self.content_word_weight = content_word_weight

    def score(self, query: str, document: Document) -> float:
        """
        Compute the keyword relevance of a document for a query.

        Args:
            query: Raw query string
            document: Document to score

        Returns:
            Relevance score (0 = no match)

        Example:
            >>> doc = Document(id="a", title="Alpha Systems",
            ...                content="alpha beta gamma alpha", tags=["alpha"])
            >>> KeywordScorer().score("alpha", doc)
            14.0
        """
        # Empty query would be a substring of everything
        if not query.strip():
            return 0.0

        query_lower = query.lower()
        title = document.title.lower()
        content = document.content.lower()

        score = 0.0

        if query_lower in title:
            score += self.title_weight

        if query_lower in content:
            score += self.content_weight

        for tag in document.tags:
            if query_lower in tag.lower():
                score += self.tag_weight

        for word in query_words(query_lower):
            title_matches = title.count(word)
            content_matches = content.count(word)
            score += title_matches * self.title_word_weight + content_matches * self.content_word_weight

        return score


_default_scorer = KeywordScorer()


def keyword_search(
    query: str,
    documents: Iterable[Document],
    max_results: int = 5,
    scorer: KeywordScorer = None
) -> List[KeywordHit]:
    """
    Score every document and return the best keyword matches.

    Args:
        query: Raw query string
        documents: Corpus in iteration order
        max_results: Maximum number of hits to return
        scorer: Custom scorer (default: KeywordScorer with standard weights)

    Returns:
        List of KeywordHit sorted by relevance (descending)
        Ties keep corpus order
    """
    if max_results < 0:
        raise ValueError(f"max_results must be >= 0, got {max_results}")

    scorer = scorer or _default_scorer

    hits = []
    for document in documents:
        score = scorer.score(query, document)
        if score > 0:
            hits.append(KeywordHit(document=document, relevance_score=score))

    hits = sorted(hits, key=lambda hit: hit.relevance_score, reverse=True)[:max_results]

    logger.debug(f"Keyword search '{query}': {len(hits)} hits (max_results={max_results})")

    return hits
