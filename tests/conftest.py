"""Shared test fixtures for docsync testing."""

import re
import threading
import zlib
from pathlib import Path
from typing import Sequence

import numpy as np
import pytest

from docsync.chunkers import TokenChunker
from docsync.config import SyncConfig
from docsync.search.lexical import tokenize_for_lex
from docsync.storage import SQLiteVectorStore, SyncStore
from docsync.sync import SyncEngine

EMBED_DIM = 64

_TOKEN_PATTERN = re.compile(r"\s+|\w+|[^\w\s]")


class FakeTokenizer:
    """Lossless regex tokenizer: whitespace runs, words and single symbols."""

    def __init__(self):
        self._ids: dict[str, int] = {}
        self._pieces: list[str] = []

    def encode(self, text: str) -> list[int]:
        tokens = []
        for piece in _TOKEN_PATTERN.findall(text):
            if piece not in self._ids:
                self._ids[piece] = len(self._pieces)
                self._pieces.append(piece)
            tokens.append(self._ids[piece])
        return tokens

    def decode(self, tokens: Sequence[int]) -> str:
        return "".join(self._pieces[t] for t in tokens)

    def token_offsets(self, tokens: Sequence[int]) -> list[int]:
        offsets = []
        position = 0
        for t in tokens:
            offsets.append(position)
            position += len(self._pieces[t])
        return offsets


class FakeEmbedder:
    """Deterministic bag-of-words embedder that counts its calls."""

    def __init__(self, dimension: int = EMBED_DIM):
        self._dimension = dimension
        self.calls = 0
        self.texts: list[str] = []
        self._lock = threading.Lock()

    @property
    def dimension(self) -> int:
        return self._dimension

    @property
    def model_name(self) -> str:
        return "fake-bow"

    def vector(self, text: str) -> np.ndarray:
        vec = np.zeros(self._dimension, dtype=np.float32)
        for token in tokenize_for_lex(text) or [text]:
            vec[zlib.crc32(token.encode()) % self._dimension] += 1.0
        norm = np.linalg.norm(vec)
        return vec / norm if norm else vec

    def embed(self, texts: list[str]) -> np.ndarray:
        with self._lock:
            self.calls += 1
            self.texts.extend(texts)
        if not texts:
            return np.zeros((0, self._dimension), dtype=np.float32)
        return np.vstack([self.vector(t) for t in texts])


class BlockingEmbedder(FakeEmbedder):
    """FakeEmbedder whose first call blocks until ``release`` is set."""

    def __init__(self):
        super().__init__()
        self.started = threading.Event()
        self.release = threading.Event()

    def embed(self, texts: list[str]) -> np.ndarray:
        self.started.set()
        self.release.wait(timeout=10)
        return super().embed(texts)


@pytest.fixture
def tokenizer() -> FakeTokenizer:
    return FakeTokenizer()


@pytest.fixture
def embedder() -> FakeEmbedder:
    return FakeEmbedder()


@pytest.fixture
def db_path(tmp_path: Path) -> Path:
    return tmp_path / "state" / "index.db"


@pytest.fixture
def store(db_path: Path) -> SyncStore:
    sync_store = SyncStore(db_path)
    sync_store.initialize()
    return sync_store


@pytest.fixture
def vector_store(store: SyncStore, db_path: Path) -> SQLiteVectorStore:
    return SQLiteVectorStore(db_path)


@pytest.fixture
def sync_config() -> SyncConfig:
    return SyncConfig(embed_retries=2, embed_retry_delays=(0.0,))


@pytest.fixture
def make_engine(store, vector_store, tokenizer, sync_config):
    """Build a SyncEngine over the test stores with a given embedder."""

    def factory(embedder, engine_class=SyncEngine):
        return engine_class(
            store,
            vector_store,
            embedder,
            chunker=TokenChunker(window_tokens=16, stride_tokens=8, tokenizer=tokenizer),
            config=sync_config,
            sleep=lambda seconds: None,
        )

    return factory


@pytest.fixture
def engine(make_engine, embedder) -> SyncEngine:
    return make_engine(embedder)


@pytest.fixture
def sample_folder(tmp_path: Path) -> Path:
    """A small project tree with indexable and excluded files."""
    root = tmp_path / "project"
    (root / "src").mkdir(parents=True)
    (root / "node_modules" / "lib").mkdir(parents=True)
    (root / ".git").mkdir()

    (root / "README.md").write_text(
        "# Project\n\nThis project syncs folders into a search index.\n"
        "Run the sync command to index every file.\n"
    )
    (root / "src" / "config.py").write_text(
        "def parse_configuration(path):\n"
        "    # parse the configuration file from disk\n"
        "    with open(path) as handle:\n"
        "        return handle.read()\n"
    )
    (root / "src" / "util.py").write_text(
        "def slugify(name):\n"
        "    return name.lower().replace(' ', '-')\n"
    )
    (root / "node_modules" / "lib" / "index.js").write_text("module.exports = {}\n")
    (root / ".git" / "HEAD").write_text("ref: refs/heads/main\n")
    (root / "package-lock.json").write_text("{}\n")
    (root / "logo.png").write_bytes(b"\x89PNG\r\n\x1a\n\x00\x00")
    return root


@pytest.fixture
def folder(store: SyncStore, sample_folder: Path):
    return store.register_folder("agent-1", str(sample_folder))
