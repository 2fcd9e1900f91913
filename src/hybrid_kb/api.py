"""
Hybrid KB - FastAPI application for the knowledge base

Endpoints:
- Documents: create, list, get, update, delete
- Query: keyword | vector | hybrid retrieval
- Maintenance: stats, index rebuild, export

The app wraps one explicit KnowledgeBase instance. create_app() takes it as a
parameter (tests pass an in-memory one) or loads it from settings at startup:

    uvicorn hybrid_kb.api:create_app --factory --port 8080
    python -m hybrid_kb.api
"""

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Dict, List, Literal, Optional

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from . import __version__
from .config import Settings, load_settings
from .knowledge_base import DocumentNotFoundError, KnowledgeBase
from .models import Document, DocumentCreate, DocumentUpdate, ScoredResult
from .storage import JsonStorage

logger = logging.getLogger(__name__)


class HealthResponse(BaseModel):
    status: str
    version: str
    started_at: str
    uptime_seconds: float
    documents: int


class QueryRequest(BaseModel):
    query: str = Field(..., description="User query")
    max_results: Optional[int] = Field(
        default=None, ge=0, le=100, description="Number of results (default: KB_MAX_RESULTS)"
    )
    strategy: Literal["keyword", "vector", "hybrid"] = Field(default="hybrid")


class QueryResultItem(BaseModel):
    document: Document
    keyword_score: float
    vector_score: float
    combined_score: float


class QueryResponse(BaseModel):
    query: str
    strategy: str
    results: List[QueryResultItem]
    total: int


class DocumentListResponse(BaseModel):
    total: int
    documents: List[Document]


class DocumentDeleteResponse(BaseModel):
    doc_id: str
    title: str
    message: str


class StatsResponse(BaseModel):
    total_documents: int
    categories: Dict[str, int]
    difficulties: Dict[str, int]
    vectorized_docs: int


class RebuildResponse(BaseModel):
    vectorized: int
    message: str


class ExportResponse(BaseModel):
    path: str
    documents: int


def _to_item(result: ScoredResult) -> QueryResultItem:
    return QueryResultItem(
        document=result.document,
        keyword_score=result.keyword_score,
        vector_score=result.vector_score,
        combined_score=result.combined_score,
    )


def build_knowledge_base(settings: Settings) -> KnowledgeBase:
    """Load the knowledge base described by settings and vectorize anything missing"""
    storage = JsonStorage(settings.documents_file, settings.vectors_file)
    kb = KnowledgeBase.from_storage(
        storage,
        keyword_weight=settings.keyword_weight,
        vector_weight=settings.vector_weight,
        autosave=settings.autosave,
    )
    kb.index_missing()
    return kb


def create_app(kb: Optional[KnowledgeBase] = None, settings: Optional[Settings] = None) -> FastAPI:
    """
    Build the FastAPI app.

    Args:
        kb: Knowledge base to serve. If None it is loaded from settings on startup.
        settings: Runtime settings (default: load_settings())
    """
    settings = settings or load_settings()
    started_at = datetime.now(timezone.utc)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if app.state.kb is None:
            logger.info(f"Loading knowledge base from {settings.documents_file}...")
            app.state.kb = build_knowledge_base(settings)
        logger.info(f"Knowledge base ready: {len(app.state.kb)} documents")

        yield

        logger.info("Shutting down...")
        if app.state.kb.storage is not None:
            app.state.kb.save()

    app = FastAPI(
        title="Hybrid KB API",
        description="Keyword + term-vector hybrid retrieval over a small document corpus",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.kb = kb
    app.state.settings = settings

    def get_kb() -> KnowledgeBase:
        return app.state.kb

    @app.get("/", response_model=dict)
    async def root():
        """Root endpoint"""
        return {
            "service": "Hybrid KB API",
            "version": __version__,
            "status": "running",
            "docs": "/docs",
        }

    @app.get("/health", response_model=HealthResponse)
    async def health():
        uptime = (datetime.now(timezone.utc) - started_at).total_seconds()
        return HealthResponse(
            status="healthy",
            version=__version__,
            started_at=started_at.isoformat(),
            uptime_seconds=round(uptime, 2),
            documents=len(get_kb()),
        )

    @app.post("/v1/documents", response_model=Document, status_code=status.HTTP_201_CREATED)
    def create_document(request: DocumentCreate):
        """
        Add a document and vectorize it

        Example:
            POST /v1/documents {"title": "Alpha", "content": "alpha beta", "tags": ["alpha"]}
        """
        return get_kb().add_document(
            title=request.title,
            content=request.content,
            category=request.category,
            tags=request.tags,
            metadata=request.metadata,
        )

    @app.get("/v1/documents", response_model=DocumentListResponse)
    def list_documents():
        documents = get_kb().list_documents()
        return DocumentListResponse(total=len(documents), documents=documents)

    @app.get("/v1/documents/{doc_id}", response_model=Document)
    def get_document(doc_id: str):
        try:
            return get_kb().get_document(doc_id)
        except DocumentNotFoundError as e:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))

    @app.put("/v1/documents/{doc_id}", response_model=Document)
    def update_document(doc_id: str, request: DocumentUpdate):
        """Partial update; the document is re-vectorized"""
        try:
            return get_kb().update_document(doc_id, request)
        except DocumentNotFoundError as e:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))

    @app.delete("/v1/documents/{doc_id}", response_model=DocumentDeleteResponse)
    def delete_document(doc_id: str):
        """Delete a document and its vector"""
        try:
            document = get_kb().delete_document(doc_id)
        except DocumentNotFoundError as e:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))

        return DocumentDeleteResponse(
            doc_id=doc_id,
            title=document.title,
            message=f"Document '{document.title}' deleted successfully",
        )

    @app.post("/v1/query", response_model=QueryResponse)
    def query(request: QueryRequest):
        """
        Ranked retrieval

        Example:
            POST /v1/query {"query": "vector retrieval", "max_results": 5, "strategy": "hybrid"}
        """
        try:
            max_results = request.max_results if request.max_results is not None else settings.max_results
            results = get_kb().retrieve(request.query, request.strategy, max_results)
        except ValueError as e:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

        return QueryResponse(
            query=request.query,
            strategy=request.strategy,
            results=[_to_item(r) for r in results],
            total=len(results),
        )

    @app.get("/v1/stats", response_model=StatsResponse)
    def stats():
        return StatsResponse(**get_kb().get_stats())

    @app.post("/v1/index/rebuild", response_model=RebuildResponse)
    def rebuild_index():
        count = get_kb().rebuild_index()
        return RebuildResponse(vectorized=count, message=f"Re-vectorized {count} documents")

    @app.post("/v1/export", response_model=ExportResponse)
    def export():
        kb = get_kb()
        if kb.storage is None:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Knowledge base has no storage configured",
            )
        documents = kb.list_documents()
        try:
            path = kb.storage.export(documents, settings.export_dir)
        except OSError as e:
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail=f"Export failed: {str(e)}",
            )
        return ExportResponse(path=str(path), documents=len(documents))

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        """Global exception handler"""
        logger.error(f"Unhandled error on {request.url.path}: {exc}")
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "error": "Internal server error",
                "detail": str(exc),
            },
        )

    return app


if __name__ == "__main__":
    import uvicorn

    from .logging_config import setup_logging

    _settings = load_settings()
    setup_logging(_settings)
    uvicorn.run(create_app(settings=_settings), host="0.0.0.0", port=_settings.port)
