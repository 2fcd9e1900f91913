"""
Unit tests for KnowledgeBase: ingestion, index maintenance and retrieval.
"""

import json
import math
from concurrent.futures import ThreadPoolExecutor

import pytest

from hybrid_kb.knowledge_base import DocumentNotFoundError, KnowledgeBase
from hybrid_kb.models import DocumentUpdate
from hybrid_kb.storage import JsonStorage


class TestHybridRetrieval:
    """Test fused ranking over a knowledge base"""
    
    def test_worked_example_without_vectors(self, alpha_corpus):
        """No Vector Table entries: Doc A keeps its raw keyword score, Doc B is absent"""
        kb = KnowledgeBase(documents=alpha_corpus)
        
        results = kb.hybrid_retrieval("alpha", max_results=5)
        
        assert [r.doc_id for r in results] == ["doc_a"]
        assert results[0].combined_score == 14
        assert results[0].vector_score == 0.0
    
    def test_worked_example_with_vectors(self, kb):
        """Doc A matches both ways and is blended; Doc B shares no term with the query"""
        results = kb.hybrid_retrieval("alpha", max_results=5)
        
        assert [r.doc_id for r in results] == ["doc_a"]
        assert results[0].keyword_score == 14
        # "alpha systems alpha beta gamma alpha": alpha=1/2, three others at 1/6
        assert results[0].vector_score == pytest.approx(math.sqrt(3) / 2)
        assert results[0].combined_score == pytest.approx(14 * 0.6 + results[0].vector_score * 0.4)
    
    def test_vector_score_breaks_keyword_tie(self, kb):
        """Both documents score 4 on keywords; Doc B is closer in vector space"""
        results = kb.hybrid_retrieval("gamma", max_results=5)
        
        assert [r.doc_id for r in results] == ["doc_b", "doc_a"]
        assert results[0].keyword_score == results[1].keyword_score == 4
        assert results[0].vector_score > results[1].vector_score
    
    def test_vector_only_match(self, kb):
        """Trailing punctuation defeats literal matching but not tokenization"""
        results = kb.hybrid_retrieval("alpha!", max_results=5)
        
        assert [r.doc_id for r in results] == ["doc_a"]
        assert results[0].keyword_score == 0.0
        assert results[0].vector_score == pytest.approx(math.sqrt(3) / 2)
        assert results[0].combined_score == pytest.approx(results[0].vector_score * 0.4)
    
    def test_partial_word_match_is_blended(self, kb):
        """"alp" matches literally inside "alpha" but shares no token with Doc A"""
        results = kb.hybrid_retrieval("alp", max_results=5)
        
        assert [r.doc_id for r in results] == ["doc_a"]
        assert results[0].keyword_score == 14
        assert results[0].vector_score == 0.0
        assert results[0].combined_score == pytest.approx(14 * 0.6)
    
    def test_no_duplicates(self, kb):
        for i in range(6):
            kb.add_document(f"Alpha note {i}", "alpha beta gamma")
        
        results = kb.hybrid_retrieval("alpha beta", max_results=10)
        ids = [r.doc_id for r in results]
        
        assert len(ids) == len(set(ids))
        assert len(ids) <= 10
    
    def test_sorted_descending(self, kb):
        kb.add_document("Gamma Rays", "gamma gamma radiation")
        
        results = kb.hybrid_retrieval("gamma", max_results=5)
        scores = [r.combined_score for r in results]
        
        assert scores == sorted(scores, reverse=True)
    
    def test_max_results_zero(self, kb):
        assert kb.hybrid_retrieval("alpha", max_results=0) == []
    
    def test_negative_max_results(self, kb):
        with pytest.raises(ValueError):
            kb.hybrid_retrieval("alpha", max_results=-1)
    
    def test_empty_query(self, kb):
        assert kb.hybrid_retrieval("", max_results=5) == []
    
    def test_custom_weights(self, alpha_corpus):
        kb = KnowledgeBase(documents=alpha_corpus, keyword_weight=1.0, vector_weight=0.0)
        kb.rebuild_index()
        
        results = kb.hybrid_retrieval("alpha")
        
        assert results[0].combined_score == pytest.approx(14.0)


class TestRetrievalStrategies:
    """Test keyword / vector / hybrid dispatch"""
    
    def test_keyword_strategy(self, kb):
        results = kb.retrieve("alpha", strategy="keyword")
        
        assert [r.doc_id for r in results] == ["doc_a"]
        assert results[0].combined_score == results[0].keyword_score == 14
    
    def test_vector_strategy(self, kb):
        results = kb.retrieve("gamma delta", strategy="vector")
        
        assert [r.doc_id for r in results] == ["doc_b", "doc_a"]
        assert results[0].combined_score == results[0].vector_score
        assert results[0].keyword_score == 0.0
    
    def test_vector_strategy_drops_zero_similarity(self, kb):
        assert kb.retrieve("unrelated", strategy="vector") == []
    
    def test_hybrid_is_default(self, kb):
        assert kb.retrieve("alpha") == kb.hybrid_retrieval("alpha")
    
    def test_unknown_strategy(self, kb):
        with pytest.raises(ValueError, match="Unknown retrieval strategy"):
            kb.retrieve("alpha", strategy="semantic")
    
    def test_raw_searches(self, kb):
        assert [hit.document.id for hit in kb.keyword_search("alpha")] == ["doc_a"]
        assert [hit.doc_id for hit in kb.vector_search("beta", top_k=1)] == ["doc_b"]


class TestDocumentLifecycle:
    """Test add / update / delete and their Vector Table effects"""
    
    def test_add_document(self):
        kb = KnowledgeBase()
        
        doc = kb.add_document("Alpha", "alpha beta gamma alpha", "systems", ["alpha"])
        
        assert doc.id.startswith("doc_")
        assert doc.timestamp.endswith("Z")
        assert doc.id in kb.index
        assert kb.get_document(doc.id) == doc
        assert len(kb) == 1
    
    def test_add_document_metadata_defaults(self):
        kb = KnowledgeBase()
        
        doc = kb.add_document("Title", "x" * 450, metadata={"author": "alice"})
        
        assert doc.metadata == {"author": "alice", "difficulty": "unknown", "read_time": "3 min"}
    
    def test_ids_are_unique(self):
        kb = KnowledgeBase()
        ids = {kb.add_document("T", "c").id for _ in range(20)}
        assert len(ids) == 20
    
    def test_vectorizes_title_and_content(self):
        kb = KnowledgeBase()
        doc = kb.add_document("Kubernetes", "deployment")
        
        assert set(kb.index.get(doc.id)) == {"kubernetes", "deployment"}
    
    def test_update_revectorizes(self, kb):
        before = kb.index.get("doc_b")
        
        updated = kb.update_document("doc_b", DocumentUpdate(content="omega omega"))
        
        assert updated.content == "omega omega"
        assert updated.title == "Beta Overview"
        assert kb.index.get("doc_b") != before
        assert "omega" in kb.index.get("doc_b")
        assert [r.doc_id for r in kb.retrieve("omega", strategy="keyword")] == ["doc_b"]
    
    def test_update_merges_metadata(self, kb):
        updated = kb.update_document("doc_a", DocumentUpdate(metadata={"author": "bob"}))
        
        assert updated.metadata == {"difficulty": "advanced", "author": "bob"}
    
    def test_update_unknown(self, kb):
        with pytest.raises(DocumentNotFoundError):
            kb.update_document("missing", DocumentUpdate(title="x"))
    
    def test_delete_removes_vector(self, kb):
        deleted = kb.delete_document("doc_a")
        
        assert deleted.id == "doc_a"
        assert "doc_a" not in kb.index
        assert len(kb) == 1
        assert kb.hybrid_retrieval("alpha") == []
    
    def test_delete_unknown(self, kb):
        with pytest.raises(DocumentNotFoundError):
            kb.delete_document("missing")
    
    def test_get_unknown_is_key_error(self, kb):
        with pytest.raises(KeyError):
            kb.get_document("missing")
    
    def test_duplicate_ids_in_initial_corpus(self, doc_a):
        kb = KnowledgeBase(documents=[doc_a, doc_a.model_copy(update={"title": "Other"})])
        
        assert len(kb) == 1
        assert kb.get_document("doc_a").title == "Alpha Systems"


class TestIndexMaintenance:
    """Test partial / full re-vectorization"""
    
    def test_unvectorized_documents_skipped_by_vector_search(self, alpha_corpus):
        kb = KnowledgeBase(documents=alpha_corpus, vectors={"doc_b": {"beta": 0.4}})
        
        hits = kb.vector_search("alpha beta", top_k=5)
        
        assert [hit.doc_id for hit in hits] == ["doc_b"]
    
    def test_index_missing(self, alpha_corpus):
        kb = KnowledgeBase(documents=alpha_corpus, vectors={"doc_b": {"beta": 0.4}})
        
        assert kb.index_missing() == 1
        assert "doc_a" in kb.index
        assert kb.index.get("doc_b") == {"beta": 0.4}
        assert kb.index_missing() == 0
    
    def test_rebuild_index(self, alpha_corpus):
        kb = KnowledgeBase(documents=alpha_corpus, vectors={"doc_b": {"stale": 1.0}})
        
        assert kb.rebuild_index() == 2
        assert "stale" not in kb.index.get("doc_b")
    
    def test_revectorizing_is_idempotent(self, kb):
        before = kb.index.to_dict()
        kb.rebuild_index()
        assert kb.index.to_dict() == before


class TestStats:
    
    def test_get_stats(self, kb):
        stats = kb.get_stats()
        
        assert stats == {
            "total_documents": 2,
            "categories": {"systems": 1, "overview": 1},
            "difficulties": {"advanced": 1, "unknown": 1},
            "vectorized_docs": 2,
        }


class TestPersistence:
    """Test loading from and saving to JsonStorage"""
    
    def test_from_storage_missing_files_creates_defaults(self, tmp_path):
        storage = JsonStorage(tmp_path / "kb.json", tmp_path / "vectors.json")
        
        kb = KnowledgeBase.from_storage(storage)
        
        assert len(kb) == 3
        assert kb.get_stats()["vectorized_docs"] == 3
        assert (tmp_path / "kb.json").exists()
        assert set(json.loads((tmp_path / "vectors.json").read_text())) == {"adv_doc1", "adv_doc2", "adv_doc3"}
    
    def test_from_storage_corrupted_documents_falls_back(self, tmp_path):
        (tmp_path / "kb.json").write_text("{not json")
        storage = JsonStorage(tmp_path / "kb.json", tmp_path / "vectors.json")
        
        kb = KnowledgeBase.from_storage(storage)
        
        assert len(kb) == 3
    
    def test_autosave_round_trip(self, tmp_path):
        storage = JsonStorage(tmp_path / "kb.json", tmp_path / "vectors.json")
        kb = KnowledgeBase(storage=storage)
        doc = kb.add_document("Alpha Systems", "alpha beta gamma alpha", tags=["alpha"])
        
        reloaded = KnowledgeBase.from_storage(storage)
        
        assert reloaded.get_document(doc.id) == doc
        assert reloaded.index.get(doc.id) == kb.index.get(doc.id)
        assert [r.doc_id for r in reloaded.hybrid_retrieval("alpha")] == [doc.id]
    
    def test_loaded_table_missing_entries_stay_unvectorized(self, tmp_path, alpha_corpus):
        storage = JsonStorage(tmp_path / "kb.json", tmp_path / "vectors.json")
        storage.save_documents(alpha_corpus)
        storage.save_vectors({"doc_a": {"alpha": 0.5}})
        
        kb = KnowledgeBase.from_storage(storage)
        
        assert "doc_a" in kb.index
        assert "doc_b" not in kb.index
    
    def test_autosave_disabled(self, tmp_path):
        storage = JsonStorage(tmp_path / "kb.json", tmp_path / "vectors.json")
        kb = KnowledgeBase(storage=storage, autosave=False)
        
        kb.add_document("T", "content")
        assert not (tmp_path / "kb.json").exists()
        
        assert kb.save() is True
        assert (tmp_path / "kb.json").exists()
    
    def test_save_without_storage(self, kb):
        assert kb.save() is False


class TestConcurrency:
    
    def test_queries_during_ingestion(self, kb):
        """Readers never see duplicates or half-added documents"""
        def write(i):
            kb.add_document(f"Alpha {i}", "alpha content")
        
        def read(_):
            results = kb.hybrid_retrieval("alpha", max_results=50)
            ids = [r.doc_id for r in results]
            assert len(ids) == len(set(ids))
            return len(ids)
        
        with ThreadPoolExecutor(max_workers=8) as pool:
            writes = [pool.submit(write, i) for i in range(30)]
            reads = [pool.submit(read, i) for i in range(30)]
            for future in writes + reads:
                future.result()
        
        assert len(kb) == 32
        assert kb.get_stats()["vectorized_docs"] == 32
