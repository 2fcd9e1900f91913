"""
Weighted score fusion for combining keyword and vector rankings.

Merges both result sets by document id:

    keyword only:  combined = keyword_score                     (raw, unscaled)
    vector only:   combined = similarity × vector_weight
    both:          combined = keyword_score × keyword_weight + similarity × vector_weight

Defaults: keyword_weight = 0.6, vector_weight = 0.4.

A keyword-only hit keeps its raw score, so it can outrank a document that
matched both ways.

A vector hit with similarity 0 still re-blends a document the keyword side
already found (combined = keyword_score × keyword_weight). It never adds a
new document, so an empty query (or a document with no overlap) never enters
the ranking through the vector side.
"""

import logging
from typing import Dict, List, Mapping

from ..models import Document, KeywordHit, ScoredResult, VectorHit

logger = logging.getLogger(__name__)

DEFAULT_KEYWORD_WEIGHT = 0.6
DEFAULT_VECTOR_WEIGHT = 0.4


def weighted_score_fusion(
    keyword_hits: List[KeywordHit],
    vector_hits: List[VectorHit],
    documents_by_id: Mapping[str, Document],
    max_results: int = 5,
    keyword_weight: float = DEFAULT_KEYWORD_WEIGHT,
    vector_weight: float = DEFAULT_VECTOR_WEIGHT
) -> List[ScoredResult]:
    """
    Combine keyword and vector rankings into one list.

    Args:
        keyword_hits: Output of keyword_search (ranked)
        vector_hits: Output of VectorIndex.search (ranked)
        documents_by_id: Corpus lookup for vector hits
            Vector hits whose id is not in the corpus are dropped
        max_results: Maximum number of results to return
        keyword_weight: Keyword share for documents found both ways
        vector_weight: Vector share (also scales vector-only hits)

    Returns:
        List of ScoredResult sorted by combined_score (descending)
        Each document appears at most once
        Ties keep merge order: keyword hits first, then new vector hits

    Example:
        >>> fused = weighted_score_fusion(
        ...     [KeywordHit(doc_a, 14.0)],
        ...     [VectorHit("a", 0.5), VectorHit("b", 0.25)],
        ...     {"a": doc_a, "b": doc_b},
        ... )
        >>> [(r.doc_id, r.combined_score) for r in fused]
        [('a', 8.6), ('b', 0.1)]
    """
    if max_results < 0:
        raise ValueError(f"max_results must be >= 0, got {max_results}")

    merged: Dict[str, ScoredResult] = {}

    for hit in keyword_hits:
        doc_id = hit.document.id
        if doc_id in merged:
            continue
        merged[doc_id] = ScoredResult(
            document=hit.document,
            keyword_score=hit.relevance_score,
            vector_score=0.0,
            combined_score=hit.relevance_score,
        )

    for hit in vector_hits:
        existing = merged.get(hit.doc_id)
        if existing is not None:
            existing.vector_score = hit.similarity
            existing.combined_score = existing.keyword_score * keyword_weight + hit.similarity * vector_weight
            continue

        if hit.similarity <= 0:
            continue

        document = documents_by_id.get(hit.doc_id)
        if document is None:
            continue
        merged[hit.doc_id] = ScoredResult(
            document=document,
            keyword_score=0.0,
            vector_score=hit.similarity,
            combined_score=hit.similarity * vector_weight,
        )

    results = sorted(merged.values(), key=lambda r: r.combined_score, reverse=True)[:max_results]

    logger.debug(
        f"Fusion: {len(keyword_hits)} keyword + {len(vector_hits)} vector hits "
        f"-> {len(merged)} merged, returning {len(results)}"
    )

    return results
