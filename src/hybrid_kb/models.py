"""Data models for documents and retrieval results"""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


def utc_timestamp() -> str:
    """Current UTC time as ISO-8601 with a trailing Z"""
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


class Document(BaseModel):
    """A knowledge-base document. The retrieval core only reads these fields."""
    model_config = ConfigDict(extra="ignore")

    id: str = Field(..., min_length=1)
    title: str
    content: str
    category: str = "general"
    tags: List[str] = Field(default_factory=list)
    metadata: Dict[str, str] = Field(default_factory=dict)
    timestamp: str = Field(default_factory=utc_timestamp)

    @property
    def index_text(self) -> str:
        """Text that gets vectorized for this document"""
        return f"{self.title} {self.content}"


class DocumentCreate(BaseModel):
    title: str = Field(..., description="Document title", min_length=1)
    content: str = Field(..., description="Document body", min_length=1)
    category: str = Field(default="general")
    tags: List[str] = Field(default_factory=list)
    metadata: Dict[str, str] = Field(default_factory=dict, description="Merged over default metadata")


class DocumentUpdate(BaseModel):
    """Partial update; fields left as None are not changed"""
    title: Optional[str] = None
    content: Optional[str] = None
    category: Optional[str] = None
    tags: Optional[List[str]] = None
    metadata: Optional[Dict[str, str]] = None


@dataclass
class KeywordHit:
    """Document matched by the keyword scorer"""
    document: Document
    relevance_score: float


@dataclass
class VectorHit:
    """Vector search hit"""
    doc_id: str
    similarity: float   # Cosine similarity (0-1)


@dataclass
class ScoredResult:
    """Single ranked result from any retrieval strategy"""
    document: Document
    keyword_score: float = 0.0   # Raw keyword relevance (>= 0)
    vector_score: float = 0.0    # Cosine similarity (0-1)
    combined_score: float = 0.0  # Ranking key

    @property
    def doc_id(self) -> str:
        return self.document.id

    def to_dict(self) -> dict:
        return {
            **self.document.model_dump(),
            "keyword_score": self.keyword_score,
            "vector_score": self.vector_score,
            "combined_score": self.combined_score,
        }
