"""
Knowledge base: the document corpus plus its Vector Table.

One KnowledgeBase instance owns all mutable state (no module-level globals).
Writers (add/update/delete/rebuild) hold the lock for the whole mutation.
Queries take a copy-on-write snapshot under the lock and score outside it, so
an in-flight query never sees a half-applied ingestion.
"""

import logging
import math
import secrets
import threading
import time
from collections import Counter
from typing import Dict, Iterable, List, Optional, Tuple

from .models import Document, DocumentUpdate, KeywordHit, ScoredResult, VectorHit, utc_timestamp
from .retrieval.fusion import DEFAULT_KEYWORD_WEIGHT, DEFAULT_VECTOR_WEIGHT, weighted_score_fusion
from .retrieval.keyword import KeywordScorer, keyword_search
from .retrieval.similarity import VectorIndex
from .retrieval.vectorizer import BaseVectorizer
from .storage import JsonStorage, default_documents

logger = logging.getLogger(__name__)

RETRIEVAL_STRATEGIES = ("keyword", "vector", "hybrid")

# Characters per minute used to estimate read_time
READ_SPEED_CHARS = 200


class DocumentNotFoundError(KeyError):
    """Raised when a document id is not in the corpus"""

    def __init__(self, doc_id: str):
        super().__init__(doc_id)
        self.doc_id = doc_id

    def __str__(self) -> str:
        return f"Document {self.doc_id} not found"


def generate_doc_id() -> str:
    """Unique document id: doc_<epoch ms>_<8 hex chars>"""
    return f"doc_{int(time.time() * 1000)}_{secrets.token_hex(4)}"


def default_metadata(content: str) -> Dict[str, str]:
    return {
        "author": "user",
        "difficulty": "unknown",
        "read_time": f"{math.ceil(len(content) / READ_SPEED_CHARS)} min",
    }


class KnowledgeBase:
    """
    In-memory corpus with hybrid (keyword + vector) retrieval.

    Example:
        kb = KnowledgeBase()
        kb.add_document("Alpha Systems", "alpha beta gamma alpha", tags=["alpha"])
        for result in kb.hybrid_retrieval("alpha", max_results=5):
            print(f"[{result.combined_score:.3f}] {result.document.title}")
    """

    def __init__(
        self,
        documents: Optional[Iterable[Document]] = None,
        vectors: Optional[Dict[str, Dict[str, float]]] = None,
        storage: Optional[JsonStorage] = None,
        vectorizer: Optional[BaseVectorizer] = None,
        scorer: Optional[KeywordScorer] = None,
        keyword_weight: float = DEFAULT_KEYWORD_WEIGHT,
        vector_weight: float = DEFAULT_VECTOR_WEIGHT,
        autosave: bool = True
    ):
        """
        Args:
            documents: Initial corpus (vectors are NOT computed for them)
            vectors: Pre-loaded Vector Table; documents missing from it stay
                unvectorized until index_missing() or rebuild_index()
            storage: Persistence backend (None = memory only)
            vectorizer: Vectorizer for documents and queries
            scorer: Keyword scorer
            keyword_weight: Fusion weight for keyword scores
            vector_weight: Fusion weight for vector similarity
            autosave: Persist to storage after every mutation
        """
        self._documents: List[Document] = []
        self._by_id: Dict[str, Document] = {}
        for doc in documents or []:
            if doc.id in self._by_id:
                logger.warning(f"Duplicate document id {doc.id} in corpus, keeping the first one")
                continue
            self._documents.append(doc)
            self._by_id[doc.id] = doc

        self.index = VectorIndex(vectorizer=vectorizer, vectors=vectors)
        self.storage = storage
        self.scorer = scorer or KeywordScorer()
        self.keyword_weight = keyword_weight
        self.vector_weight = vector_weight
        self.autosave = autosave
        self._lock = threading.RLock()

    @classmethod
    def from_storage(cls, storage: JsonStorage, **kwargs) -> "KnowledgeBase":
        """
        Load documents and vectors from storage.

        A missing or unreadable document file falls back to the default corpus,
        which is vectorized and saved right away.
        """
        documents = storage.load_documents()
        vectors = storage.load_vectors()

        if documents is None:
            logger.info("No usable document file, creating default knowledge base")
            kb = cls(documents=default_documents(), storage=storage, **kwargs)
            kb.rebuild_index()
            return kb

        return cls(documents=documents, vectors=vectors, storage=storage, **kwargs)

    def __len__(self) -> int:
        return len(self._documents)

    # ------------------------------------------------------------------
    # Ingestion
    # ------------------------------------------------------------------

    def add_document(
        self,
        title: str,
        content: str,
        category: str = "general",
        tags: Iterable[str] = (),
        metadata: Optional[Dict[str, str]] = None
    ) -> Document:
        """
        Create a document, vectorize it and add it to the corpus.

        User metadata is merged over the defaults (author, difficulty, read_time).

        Returns:
            The stored document (with generated id and timestamp)
        """
        document = Document(
            id=generate_doc_id(),
            title=title,
            content=content,
            category=category,
            tags=list(tags),
            metadata={**default_metadata(content), **(metadata or {})},
            timestamp=utc_timestamp(),
        )
        return self.insert_document(document)

    def insert_document(self, document: Document) -> Document:
        """Add a fully-formed document (e.g. from an import). Replaces an existing id."""
        with self._lock:
            if document.id in self._by_id:
                self._documents = [doc if doc.id != document.id else document for doc in self._documents]
            else:
                self._documents = self._documents + [document]
            self._by_id[document.id] = document
            self.index.add(document.id, document.index_text)
            self._persist()

        logger.info(f"Added document {document.id}: '{document.title}'")
        return document

    def update_document(self, doc_id: str, update: DocumentUpdate) -> Document:
        """
        Apply a partial update and re-vectorize the document.

        Raises:
            DocumentNotFoundError: If doc_id is unknown
        """
        with self._lock:
            existing = self._by_id.get(doc_id)
            if existing is None:
                raise DocumentNotFoundError(doc_id)

            changes = update.model_dump(exclude_none=True)
            if "metadata" in changes:
                changes["metadata"] = {**existing.metadata, **changes["metadata"]}
            document = existing.model_copy(update=changes)

            self._documents = [document if doc.id == doc_id else doc for doc in self._documents]
            self._by_id[doc_id] = document
            self.index.add(doc_id, document.index_text)
            self._persist()

        logger.info(f"Updated document {doc_id} ({', '.join(sorted(changes)) or 'no changes'})")
        return document

    def delete_document(self, doc_id: str) -> Document:
        """
        Remove a document and its Vector Table entry.

        Raises:
            DocumentNotFoundError: If doc_id is unknown
        """
        with self._lock:
            document = self._by_id.pop(doc_id, None)
            if document is None:
                raise DocumentNotFoundError(doc_id)

            self._documents = [doc for doc in self._documents if doc.id != doc_id]
            self.index.remove(doc_id)
            self._persist()

        logger.info(f"Deleted document {doc_id}: '{document.title}'")
        return document

    def get_document(self, doc_id: str) -> Document:
        with self._lock:
            document = self._by_id.get(doc_id)
        if document is None:
            raise DocumentNotFoundError(doc_id)
        return document

    def list_documents(self) -> List[Document]:
        with self._lock:
            return list(self._documents)

    # ------------------------------------------------------------------
    # Index maintenance
    # ------------------------------------------------------------------

    def index_missing(self) -> int:
        """
        Vectorize documents that have no Vector Table entry.

        Returns:
            Number of documents vectorized
        """
        with self._lock:
            missing = [doc for doc in self._documents if doc.id not in self.index]
            for doc in missing:
                self.index.add(doc.id, doc.index_text)
            if missing:
                self._persist()

        if missing:
            logger.info(f"Vectorized {len(missing)} unindexed documents")
        return len(missing)

    def rebuild_index(self) -> int:
        """
        Drop the Vector Table and re-vectorize the whole corpus.

        Returns:
            Number of documents vectorized
        """
        with self._lock:
            self.index.clear()
            for doc in self._documents:
                self.index.add(doc.id, doc.index_text)
            self._persist()
            count = len(self._documents)

        logger.info(f"Rebuilt vector index: {count} documents")
        return count

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def _snapshot(self) -> Tuple[List[Document], Dict[str, Document], VectorIndex]:
        with self._lock:
            return self._documents, dict(self._by_id), self.index.snapshot()

    def keyword_search(self, query: str, max_results: int = 5) -> List[KeywordHit]:
        documents, _, _ = self._snapshot()
        return keyword_search(query, documents, max_results, scorer=self.scorer)

    def vector_search(self, query: str, top_k: int = 3) -> List[VectorHit]:
        documents, _, index = self._snapshot()
        return index.search(query, [doc.id for doc in documents], top_k)

    def hybrid_retrieval(self, query: str, max_results: int = 5) -> List[ScoredResult]:
        """
        Rank documents by fused keyword and vector scores.

        Both scorers fetch 2 × max_results candidates before fusion.

        Args:
            query: Raw query string
            max_results: Maximum number of results (0 = empty list)

        Returns:
            List of ScoredResult sorted by combined_score (descending)
        """
        if max_results < 0:
            raise ValueError(f"max_results must be >= 0, got {max_results}")

        documents, by_id, index = self._snapshot()
        candidates = max_results * 2

        keyword_hits = keyword_search(query, documents, candidates, scorer=self.scorer)
        vector_hits = index.search(query, [doc.id for doc in documents], candidates)

        results = weighted_score_fusion(
            keyword_hits,
            vector_hits,
            by_id,
            max_results=max_results,
            keyword_weight=self.keyword_weight,
            vector_weight=self.vector_weight,
        )

        logger.info(f"Hybrid retrieval '{query}': {len(results)} results")
        return results

    def retrieve(self, query: str, strategy: str = "hybrid", max_results: int = 5) -> List[ScoredResult]:
        """
        Run one retrieval strategy and return uniform ScoredResults.

        Strategies:
            - keyword: combined_score = keyword relevance
            - vector: combined_score = cosine similarity (zero-similarity hits dropped)
            - hybrid: weighted fusion of both (default)

        Raises:
            ValueError: On an unknown strategy
        """
        if strategy not in RETRIEVAL_STRATEGIES:
            raise ValueError(
                f"Unknown retrieval strategy: {strategy}. "
                f"Valid options: {', '.join(RETRIEVAL_STRATEGIES)}"
            )

        if strategy == "hybrid":
            return self.hybrid_retrieval(query, max_results)

        if strategy == "keyword":
            return [
                ScoredResult(
                    document=hit.document,
                    keyword_score=hit.relevance_score,
                    combined_score=hit.relevance_score,
                )
                for hit in self.keyword_search(query, max_results)
            ]

        documents, by_id, index = self._snapshot()
        hits = index.search(query, [doc.id for doc in documents], max_results)
        return [
            ScoredResult(document=by_id[hit.doc_id], vector_score=hit.similarity, combined_score=hit.similarity)
            for hit in hits
            if hit.similarity > 0
        ]

    # ------------------------------------------------------------------
    # Stats / export
    # ------------------------------------------------------------------

    def get_stats(self) -> dict:
        documents, _, index = self._snapshot()
        return {
            "total_documents": len(documents),
            "categories": dict(Counter(doc.category for doc in documents)),
            "difficulties": dict(Counter(doc.metadata.get("difficulty", "unknown") for doc in documents)),
            "vectorized_docs": len(index),
        }

    def save(self) -> bool:
        """Persist documents and vectors. Returns False if there is no storage or a write failed."""
        with self._lock:
            if self.storage is None:
                return False
            documents_saved = self.storage.save_documents(self._documents)
            vectors_saved = self.storage.save_vectors(self.index.to_dict())
        return documents_saved and vectors_saved

    def _persist(self) -> None:
        """Autosave hook; caller holds the lock"""
        if self.autosave and self.storage is not None:
            self.save()
