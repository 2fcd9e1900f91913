"""
Cosine similarity and exact linear-scan vector search.

Formula:
    cos(a, b) = Σ_{k ∈ common} a[k]·b[k] / (‖a‖ · ‖b‖)

Where:
    common = keys present in both vectors
    ‖v‖ = sqrt(Σ v[k]²) over ALL keys of v (not only the common ones)

No overlapping terms short-circuits to 0.0, so empty vectors never reach the
division. Weights are non-negative, so the result is always in [0, 1].

VectorIndex owns the Vector Table (doc_id -> term vector). Search is a plain
scan over the candidate ids: no approximation, no on-disk structures.
"""

import logging
import math
from typing import Dict, Iterable, List, Optional

from ..models import VectorHit
from .vectorizer import BaseVectorizer, TermFrequencyVectorizer, TermVector

logger = logging.getLogger(__name__)


def cosine_similarity(vec_a: TermVector, vec_b: TermVector) -> float:
    """
    Compute cosine similarity between two sparse term vectors.

    Args:
        vec_a: First term vector
        vec_b: Second term vector

    Returns:
        Similarity in [0, 1]; 0.0 when the vectors share no terms

    Example:
        >>> cosine_similarity({"alpha": 0.5}, {"alpha": 0.2, "beta": 0.2})
        0.7071...
    """
    common = vec_a.keys() & vec_b.keys()
    if not common:
        return 0.0

    dot_product = sum(vec_a[term] * vec_b[term] for term in common)
    norm_a = math.sqrt(sum(weight * weight for weight in vec_a.values()))
    norm_b = math.sqrt(sum(weight * weight for weight in vec_b.values()))

    return dot_product / (norm_a * norm_b)


class VectorIndex:
    """
    In-memory Vector Table with exact top-K cosine search.

    Entries are replaced on re-vectorization and removed only by an explicit
    remove() or clear(); nothing is evicted implicitly.
    """

    def __init__(
        self,
        vectorizer: Optional[BaseVectorizer] = None,
        vectors: Optional[Dict[str, TermVector]] = None
    ):
        """
        Args:
            vectorizer: Vectorizer used for documents and queries
                Default: TermFrequencyVectorizer
            vectors: Pre-loaded Vector Table (e.g. from storage)
        """
        self.vectorizer = vectorizer or TermFrequencyVectorizer()
        self._vectors: Dict[str, TermVector] = dict(vectors or {})

    def __len__(self) -> int:
        return len(self._vectors)

    def __contains__(self, doc_id: object) -> bool:
        return doc_id in self._vectors

    def add(self, doc_id: str, text: str) -> TermVector:
        """
        Vectorize text and store it as the entry for doc_id (replacing any old one).

        Returns:
            The stored term vector
        """
        vector = self.vectorizer.vectorize(text)
        self._vectors[doc_id] = vector
        logger.debug(f"Indexed {doc_id}: {len(vector)} terms")
        return vector

    def get(self, doc_id: str) -> Optional[TermVector]:
        return self._vectors.get(doc_id)

    def remove(self, doc_id: str) -> bool:
        """Remove the entry for doc_id. Returns False if it was not indexed."""
        return self._vectors.pop(doc_id, None) is not None

    def clear(self) -> None:
        self._vectors.clear()

    def snapshot(self) -> "VectorIndex":
        """
        Copy-on-write snapshot for readers.

        The table dict is copied; the term vectors themselves are shared because
        they are never mutated in place (add() always stores a fresh dict).
        """
        return VectorIndex(vectorizer=self.vectorizer, vectors=self._vectors)

    def to_dict(self) -> Dict[str, TermVector]:
        """Export the Vector Table as {doc_id: {term: weight}} (JSON-serializable)."""
        return {doc_id: dict(vector) for doc_id, vector in self._vectors.items()}

    def search(
        self,
        query: str,
        candidate_ids: Iterable[str],
        top_k: int = 3
    ) -> List[VectorHit]:
        """
        Rank candidate documents by cosine similarity to the query.

        Args:
            query: Query text (vectorized once)
            candidate_ids: Document ids to score, in corpus order
                Ids without a table entry are skipped silently
            top_k: Maximum number of hits to return

        Returns:
            List of VectorHit sorted by similarity (descending)
            Ties keep candidate order
        """
        if top_k < 0:
            raise ValueError(f"top_k must be >= 0, got {top_k}")

        query_vector = self.vectorizer.vectorize(query)

        hits = []
        for doc_id in candidate_ids:
            doc_vector = self._vectors.get(doc_id)
            if doc_vector is None:
                continue
            hits.append(VectorHit(doc_id=doc_id, similarity=cosine_similarity(query_vector, doc_vector)))

        # sorted() is stable with reverse=True: equal scores keep candidate order
        hits = sorted(hits, key=lambda hit: hit.similarity, reverse=True)[:top_k]

        logger.debug(f"Vector search: {len(hits)} hits (top_k={top_k}, query terms={len(query_vector)})")

        return hits
