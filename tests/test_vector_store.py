"""Tests for the SQLite vector store."""

import numpy as np
import pytest

from docsync.errors import UnknownFolderError
from docsync.models import VectorRecord
from docsync.storage import SQLiteVectorStore


def record(record_id, vector, text="plain text", folder_id="f1", path="a.py", index=0, character="agent-1"):
    return VectorRecord(
        id=record_id,
        vector=np.asarray(vector, dtype=np.float32),
        character_id=character,
        folder_id=folder_id,
        file_path=f"/data/{path}",
        relative_path=path,
        chunk_index=index,
        text=text,
        token_count=len(text.split()),
        start_line=index + 1,
        end_line=index + 2,
        token_offset=index * 8,
    )


@pytest.fixture
def populated(vector_store):
    vector_store.upsert_many(
        [
            record("x", [1, 0, 0], text="parse configuration file", path="config.py"),
            record("y", [0.8, 0.6, 0], text="load settings from disk", path="config.py", index=1),
            record("z", [0, 0, 1], text="render the button widget", folder_id="f2", path="ui.py"),
            record("w", [0, 1, 0], text="configuration for agent two", character="agent-2", folder_id="f3"),
        ]
    )
    return vector_store


class TestUpsertAndDelete:
    """Test writes and deletes."""

    def test_upsert_counts(self, populated):
        assert populated.count() == 4
        assert populated.count("f1") == 2

    def test_upsert_replaces_same_id(self, vector_store):
        vector_store.upsert(record("x", [1, 0], text="old"))
        vector_store.upsert(record("x", [0, 1], text="new"))
        assert vector_store.count() == 1
        assert vector_store.query_lexical("new", 5)[0].id == "x"

    def test_upsert_many_empty(self, vector_store):
        assert vector_store.upsert_many([]) == 0

    def test_delete_by_file(self, populated):
        assert populated.delete_by_file("f1", "config.py") == 2
        assert populated.count("f1") == 0
        assert populated.count() == 2

    def test_delete_by_folder(self, populated):
        assert populated.delete_by_folder("f2") == 1
        assert populated.delete_by_folder("f2") == 0



class TestReplaceFile:
    """Test the single-transaction chunk swap."""

    def test_swaps_chunks(self, vector_store, folder):
        vector_store.upsert_many(
            [record(f"old{i}", [1, 0], text="old text", folder_id=folder.id, index=i) for i in range(3)]
        )
        written = vector_store.replace_file(
            folder.id, "a.py", [record("new0", [0, 1], text="new text", folder_id=folder.id)]
        )
        assert written == 1
        assert vector_store.count(folder.id) == 1
        assert vector_store.query_lexical("new", 5)[0].id == "new0"

    def test_leaves_other_files(self, vector_store, folder):
        vector_store.upsert_many(
            [
                record("a", [1, 0], folder_id=folder.id, path="a.py"),
                record("b", [1, 0], folder_id=folder.id, path="b.py"),
            ]
        )
        assert vector_store.replace_file(folder.id, "a.py", []) == 0
        assert vector_store.count(folder.id, "a.py") == 0
        assert vector_store.count(folder.id, "b.py") == 1

    def test_unregistered_folder(self, vector_store, store, folder):
        store.delete_folder(folder.id)
        with pytest.raises(UnknownFolderError):
            vector_store.replace_file(folder.id, "a.py", [record("x", [1, 0], folder_id=folder.id)])
        assert vector_store.count(folder.id) == 0

    def test_failed_insert_rolls_back(self, db_path, store, folder):
        class FailingStore(SQLiteVectorStore):
            def _insert(self, conn, rows):
                raise OSError("disk I/O error")

        failing = FailingStore(db_path)
        SQLiteVectorStore(db_path).upsert(record("old", [1, 0], folder_id=folder.id))
        with pytest.raises(OSError):
            failing.replace_file(folder.id, "a.py", [record("new", [0, 1], folder_id=folder.id)])
        assert failing.count(folder.id, "a.py") == 1


class TestQueryDense:
    """Test exact cosine search."""

    def test_orders_by_cosine(self, populated):
        hits = populated.query_dense(np.array([1.0, 0.0, 0.0]), 3)
        assert [h.id for h in hits][:2] == ["x", "y"]
        assert hits[0].score == pytest.approx(1.0)
        assert hits[1].score == pytest.approx(0.8)

    def test_hit_payload(self, populated):
        top = populated.query_dense(np.array([1.0, 0.0, 0.0]), 1)[0]
        assert top.relative_path == "config.py"
        assert top.file_path == "/data/config.py"
        assert top.folder_id == "f1"
        assert (top.start_line, top.end_line, top.token_offset) == (1, 2, 0)

    def test_scope_filters(self, populated):
        query = np.array([0.0, 1.0, 0.0])
        assert {h.id for h in populated.query_dense(query, 10, character_id="agent-1")} == {"x", "y", "z"}
        assert {h.id for h in populated.query_dense(query, 10, folder_ids=["f2"])} == {"z"}

    def test_skips_other_dimensions(self, populated):
        assert populated.query_dense(np.array([1.0, 0.0]), 5) == []

    def test_non_positive_top_k(self, populated):
        assert populated.query_dense(np.array([1.0, 0.0, 0.0]), 0) == []


class TestQueryLexical:
    """Test hashed term search."""

    def test_only_matching_rows(self, populated):
        hits = populated.query_lexical("configuration", 10)
        assert {h.id for h in hits} == {"x", "w"}
        assert all(h.score > 0 for h in hits)

    def test_scoped(self, populated):
        hits = populated.query_lexical("configuration", 10, character_id="agent-1")
        assert [h.id for h in hits] == ["x"]

    def test_stop_words_only_query(self, populated):
        assert populated.query_lexical("the and of", 10) == []

    def test_best_match_first(self, populated):
        hits = populated.query_lexical("parse configuration file", 10)
        assert hits[0].id == "x"


class TestGetEmbeddings:
    def test_returns_normalised_vectors(self, populated):
        embeddings = populated.get_embeddings(["y", "missing"])
        assert set(embeddings) == {"y"}
        assert np.linalg.norm(embeddings["y"]) == pytest.approx(1.0, rel=1e-5)

    def test_empty_ids(self, populated):
        assert populated.get_embeddings([]) == {}
