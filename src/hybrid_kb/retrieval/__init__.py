"""
Hybrid retrieval core: keyword matching fused with term-vector similarity.

Components:
- tokenizer: ASCII word tokenization shared by both scorers
- vectorizer: Term-frequency vectors (swappable via BaseVectorizer)
- similarity: Cosine similarity and the in-memory Vector Table
- keyword: Literal substring / word-occurrence scoring
- fusion: Weighted merge of keyword and vector rankings

Everything here is synchronous, in-memory and exact (linear scan). Corpus
ownership and persistence live in KnowledgeBase and JsonStorage.
"""

from .tokenizer import tokenize, query_words
from .vectorizer import BaseVectorizer, TermFrequencyVectorizer, TermVector, vectorize
from .similarity import VectorIndex, cosine_similarity
from .keyword import KeywordScorer, keyword_search
from .fusion import weighted_score_fusion

__all__ = [
    "tokenize",
    "query_words",
    "BaseVectorizer",
    "TermFrequencyVectorizer",
    "TermVector",
    "vectorize",
    "VectorIndex",
    "cosine_similarity",
    "KeywordScorer",
    "keyword_search",
    "weighted_score_fusion",
]
