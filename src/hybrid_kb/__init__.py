"""
Hybrid KB - small in-memory knowledge base with hybrid retrieval.

Documents are scored two ways and fused into one ranking:
- Keyword: literal substring and word-occurrence matches (title, content, tags)
- Vector: cosine similarity of term-frequency vectors
"""

__version__ = "0.1.0"
