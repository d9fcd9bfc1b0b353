"""
Text embedding protocol for agent-memory.

The indexer embeds rendered memory text as documents and the search engine
embeds the raw conversational query; both go through this interface.
"""

from typing import List, Protocol

from typing_extensions import runtime_checkable


@runtime_checkable
class TextEmbedding(Protocol):
    """
    Protocol for text embedding providers.

    Implementations may raise on any failure (network, quota, missing model).
    Callers inside agent-memory wrap them with ``embed_documents_soft`` and
    ``embed_query_soft``, so a failing provider only degrades search.

    Example:
        >>> embedder = OpenAIEmbedding(api_key="sk-...")
        >>> vectors = await embedder.embed_documents(["preferences: dark mode"])
        >>> len(vectors[0]) == embedder.dimension
        True
    """

    @property
    def dimension(self) -> int:
        """Number of elements in each embedding vector."""
        ...

    @property
    def model_name(self) -> str:
        """
        Identifier of the embedding model.

        Stored on every indexed chunk and used as part of the embedding cache
        key, so vectors from different models never mix.
        """
        ...

    async def embed_document(self, text: str) -> List[float]:
        """Embed one piece of stored content."""
        ...

    async def embed_query(self, text: str) -> List[float]:
        """Embed one search query."""
        ...

    async def embed_documents(self, texts: List[str], batch_size: int = 32) -> List[List[float]]:
        """
        Embed many documents, preserving input order.

        Args:
            texts: Document texts (non-empty)
            batch_size: Number of texts to process per request/batch

        Returns:
            One vector per input text
        """
        ...

    async def embed_queries(self, texts: List[str], batch_size: int = 32) -> List[List[float]]:
        """Embed many queries, preserving input order."""
        ...
