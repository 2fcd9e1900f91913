"""
JSON file storage for the knowledge base

Persists two files, both plain JSON:

data/
├── knowledge-base.json    # [{"id": ..., "title": ..., "content": ..., ...}, ...]
└── embeddings.json        # {"<doc_id>": {"<term>": <weight>, ...}, ...}

Loading never raises on bad data: a missing or malformed file is logged and
the caller gets None (documents) or an empty table (vectors) to fall back on.
"""

import json
import logging
import os
import time
from pathlib import Path
from typing import Annotated, Dict, List, Optional

from pydantic import Field, TypeAdapter, ValidationError

from .models import Document, utc_timestamp
from .retrieval.vectorizer import TermVector

logger = logging.getLogger(__name__)

EXPORT_FORMAT_VERSION = "1.0"

Weight = Annotated[float, Field(ge=0.0, le=1.0)]

_documents_adapter = TypeAdapter(List[Document])
_vectors_adapter = TypeAdapter(Dict[str, Dict[str, Weight]])


def default_documents() -> List[Document]:
    """Seed corpus used when no document file exists yet"""
    now = utc_timestamp()
    return [
        Document(
            id="adv_doc1",
            title="Agentic RAG System Architecture",
            content=(
                "Agentic RAG combines autonomous agents with retrieval augmented generation. "
                "The agent decides which retrieval and generation strategy fits each query. "
                "Core components are intent analysis, dynamic retrieval, multi-step reasoning "
                "and adaptive generation."
            ),
            category="AI architecture",
            tags=["agentic", "RAG", "agents", "architecture"],
            metadata={"author": "AI System", "difficulty": "advanced", "read_time": "5 min"},
            timestamp=now,
        ),
        Document(
            id="adv_doc2",
            title="Vector Retrieval Techniques",
            content=(
                "Vector retrieval is a core technique of modern information retrieval. "
                "Text is converted into high-dimensional vectors so semantic similarity can be computed. "
                "Common methods include TF-IDF, Word2Vec and BERT embeddings. Vector databases such as "
                "Pinecone and Weaviate provide efficient vector storage and search."
            ),
            category="retrieval",
            tags=["vector retrieval", "embeddings", "semantic search", "vector database"],
            metadata={"author": "AI System", "difficulty": "intermediate", "read_time": "3 min"},
            timestamp=now,
        ),
        Document(
            id="adv_doc3",
            title="Large Language Model Applications",
            content=(
                "Large language models such as GPT, Claude and Gemini are used across many domains "
                "for text generation, question answering, summarization and translation. Combined "
                "with RAG they answer more accurately, stay current and hallucinate less."
            ),
            category="AI applications",
            tags=["LLM", "GPT", "Claude", "Gemini", "applications"],
            metadata={"author": "AI System", "difficulty": "intermediate", "read_time": "4 min"},
            timestamp=now,
        ),
    ]


class JsonStorage:
    """Local JSON persistence for documents and the Vector Table"""

    def __init__(
        self,
        documents_file: Path = Path("data/knowledge-base.json"),
        vectors_file: Path = Path("data/embeddings.json")
    ):
        """
        Args:
            documents_file: Path of the document list
            vectors_file: Path of the Vector Table
        """
        self.documents_file = Path(documents_file)
        self.vectors_file = Path(vectors_file)

    def load_documents(self) -> Optional[List[Document]]:
        """
        Load the document list.

        Returns:
            Documents in stored order, or None if the file is missing or malformed
        """
        data = self._read_json(self.documents_file)
        if data is None:
            return None

        try:
            documents = _documents_adapter.validate_python(data)
        except ValidationError as e:
            logger.warning(f"Invalid document file {self.documents_file}: {e.error_count()} errors, ignoring it")
            return None

        logger.info(f"Loaded {len(documents)} documents from {self.documents_file}")
        return documents

    def save_documents(self, documents: List[Document]) -> bool:
        payload = [doc.model_dump() for doc in documents]
        return self._write_json(self.documents_file, payload)

    def load_vectors(self) -> Dict[str, TermVector]:
        """
        Load the Vector Table.

        Returns:
            {doc_id: {term: weight}}; empty if the file is missing or malformed
        """
        data = self._read_json(self.vectors_file)
        if data is None:
            return {}

        try:
            vectors = _vectors_adapter.validate_python(data)
        except ValidationError as e:
            logger.warning(f"Invalid vector file {self.vectors_file}: {e.error_count()} errors, starting with empty index")
            return {}

        logger.info(f"Loaded {len(vectors)} vectors from {self.vectors_file}")
        return vectors

    def save_vectors(self, vectors: Dict[str, TermVector]) -> bool:
        return self._write_json(self.vectors_file, vectors)

    def export(self, documents: List[Document], export_dir: Path = Path("exports")) -> Path:
        """
        Write a standalone export of the corpus.

        Returns:
            Path of the export file (knowledge-export-<epoch ms>.json)

        Raises:
            OSError: If the file cannot be written
        """
        export_dir = Path(export_dir)
        export_dir.mkdir(parents=True, exist_ok=True)
        path = export_dir / f"knowledge-export-{int(time.time() * 1000)}.json"

        payload = {
            "documents": [doc.model_dump() for doc in documents],
            "export_time": utc_timestamp(),
            "version": EXPORT_FORMAT_VERSION,
        }
        path.write_text(json.dumps(payload, ensure_ascii=False, indent=2), encoding="utf-8")

        logger.info(f"Exported {len(documents)} documents to {path}")
        return path

    def _read_json(self, path: Path):
        """Helper: read JSON, None on missing/corrupted file"""
        if not path.exists():
            logger.debug(f"No file at {path}")
            return None

        try:
            return json.loads(path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as e:
            logger.warning(f"Corrupted JSON at {path}: {e}")
        except OSError as e:
            logger.warning(f"Failed to read {path}: {e}")
        return None

    def _write_json(self, path: Path, payload) -> bool:
        """Helper: atomic write (temp file + rename). Returns False on failure."""
        tmp_path = path.with_name(path.name + ".tmp")
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path.write_text(json.dumps(payload, ensure_ascii=False, indent=2), encoding="utf-8")
            os.replace(tmp_path, path)
        except OSError as e:
            logger.warning(f"Failed to save {path}: {e}")
            return False

        logger.debug(f"Saved {path}")
        return True
