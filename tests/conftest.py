"""Shared fixtures: small corpora and knowledge bases"""

import logging

import pytest

from hybrid_kb.knowledge_base import KnowledgeBase
from hybrid_kb.models import Document


@pytest.fixture
def doc_a():
    return Document(
        id="doc_a",
        title="Alpha Systems",
        content="alpha beta gamma alpha",
        category="systems",
        tags=["alpha"],
        metadata={"difficulty": "advanced"},
    )


@pytest.fixture
def doc_b():
    return Document(
        id="doc_b",
        title="Beta Overview",
        content="beta gamma delta",
        category="overview",
        tags=["beta"],
    )


@pytest.fixture
def alpha_corpus(doc_a, doc_b):
    """Doc A / Doc B corpus used by the worked ranking examples"""
    return [doc_a, doc_b]


@pytest.fixture
def kb(alpha_corpus):
    """Memory-only knowledge base with every document vectorized"""
    knowledge_base = KnowledgeBase(documents=alpha_corpus)
    knowledge_base.rebuild_index()
    return knowledge_base


@pytest.fixture
def restore_root_logger():
    """Undo setup_logging(): close its handlers and put back the previous ones"""
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()
    root.handlers[:] = handlers
    root.setLevel(level)
