"""Shared fixtures: temporary workspaces and a deterministic embedder."""

import re
import zlib
from typing import List

import pytest

from agent_memory.config import MemorySearchConfig, resolve_search_config

_TOKEN = re.compile(r"[a-z0-9]+")


class FakeEmbedding:
    """
    Bag-of-words embedder: each token adds 1.0 to a crc32-hashed dimension.

    Texts sharing words get a positive cosine similarity, unrelated texts
    get (almost always) zero, and results are stable across runs.
    """

    def __init__(self, dimension: int = 2048, model_name: str = "fake-bow"):
        self._dimension = dimension
        self._model_name = model_name
        self.embedded: List[str] = []

    @property
    def dimension(self) -> int:
        return self._dimension

    @property
    def model_name(self) -> str:
        return self._model_name

    def _vector(self, text: str) -> List[float]:
        vector = [0.0] * self._dimension
        for token in _TOKEN.findall(text.lower()):
            vector[zlib.crc32(token.encode("utf-8")) % self._dimension] += 1.0
        return vector

    async def embed_document(self, text: str) -> List[float]:
        self.embedded.append(text)
        return self._vector(text)

    async def embed_query(self, text: str) -> List[float]:
        return self._vector(text)

    async def embed_documents(self, texts: List[str]) -> List[List[float]]:
        self.embedded.extend(texts)
        return [self._vector(t) for t in texts]

    async def embed_queries(self, texts: List[str]) -> List[List[float]]:
        return [self._vector(t) for t in texts]


@pytest.fixture
def workspace(tmp_path):
    """Empty agent workspace directory."""
    path = tmp_path / "workspace"
    path.mkdir()
    return path


@pytest.fixture
def fake_embedding():
    return FakeEmbedding()


@pytest.fixture
def make_search_config(workspace):
    """Build a resolved search config for the test workspace."""

    def _make(**overrides):
        return resolve_search_config(
            MemorySearchConfig.model_validate(overrides), workspace, "test-agent"
        )

    return _make


@pytest.fixture
def search_config(make_search_config):
    return make_search_config()
