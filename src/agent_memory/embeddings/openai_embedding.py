"""OpenAI-compatible embedding adapter for agent-memory."""

import logging
import os
from typing import Dict, List, Optional

logger = logging.getLogger(__name__)

KNOWN_DIMENSIONS = {
    "text-embedding-3-small": 1536,
    "text-embedding-3-large": 3072,
    "text-embedding-ada-002": 1536,
    "gemini-embedding-001": 3072,
}

GEMINI_OPENAI_BASE_URL = "https://generativelanguage.googleapis.com/v1beta/openai/"


class OpenAIEmbedding:
    """
    Embedding adapter for the OpenAI embeddings endpoint.

    Works against any OpenAI-compatible server via ``base_url``; the
    ``gemini`` provider uses Google's compatibility endpoint.

    Example:
        >>> embedder = OpenAIEmbedding(model="text-embedding-3-small", api_key="sk-...")
        >>> vector = await embedder.embed_query("dark mode")
        >>> len(vector)
        1536
    """

    def __init__(
        self,
        model: str = "text-embedding-3-small",
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        headers: Optional[Dict[str, str]] = None,
        dimensions: Optional[int] = None,
        timeout: float = 30.0,
        max_retries: int = 3,
    ):
        """
        Initialize the embedder.

        Args:
            model: Embedding model name
            api_key: API key (None = use OPENAI_API_KEY env var)
            base_url: Custom endpoint for compatible servers
            headers: Extra HTTP headers sent with every request
            dimensions: Requested output dimension (text-embedding-3 models only)
            timeout: Request timeout in seconds
            max_retries: Number of retry attempts for failed requests

        Raises:
            ImportError: If the openai package is not installed
            ValueError: If no API key is available
        """
        try:
            from openai import AsyncOpenAI
        except ImportError as e:
            raise ImportError(
                "openai is required for OpenAIEmbedding. "
                "Install with: pip install agent-memory[embeddings-openai]"
            ) from e

        api_key = api_key or os.getenv("OPENAI_API_KEY")
        if not api_key:
            raise ValueError("OpenAIEmbedding requires an API key")

        self._model = model
        self._dimensions = dimensions
        self._dimension = dimensions or KNOWN_DIMENSIONS.get(model, 0)
        self._client = AsyncOpenAI(
            api_key=api_key,
            base_url=base_url,
            default_headers=headers,
            timeout=timeout,
            max_retries=max_retries,
        )

        logger.info(f"OpenAI embedder initialized: {model} (base_url={base_url or 'default'})")

    @property
    def dimension(self) -> int:
        """Vector dimension; 0 until the first response for unknown models."""
        return self._dimension

    @property
    def model_name(self) -> str:
        return self._model

    async def _create(self, inputs: List[str]) -> List[List[float]]:
        kwargs = {"model": self._model, "input": inputs}
        if self._dimensions is not None:
            kwargs["dimensions"] = self._dimensions

        response = await self._client.embeddings.create(**kwargs)
        vectors = [item.embedding for item in sorted(response.data, key=lambda d: d.index)]
        if vectors and not self._dimension:
            self._dimension = len(vectors[0])
        return vectors

    async def embed_document(self, text: str) -> List[float]:
        if not text or not text.strip():
            raise ValueError("Cannot embed empty text")
        return (await self._create([text]))[0]

    async def embed_query(self, text: str) -> List[float]:
        if not text or not text.strip():
            raise ValueError("Cannot embed empty text")
        return (await self._create([text]))[0]

    async def embed_documents(self, texts: List[str], batch_size: int = 256) -> List[List[float]]:
        """Embed documents in request batches of ``batch_size``."""
        if not texts:
            return []
        if any(not text or not text.strip() for text in texts):
            raise ValueError("Cannot embed empty texts in batch")

        vectors: List[List[float]] = []
        for start in range(0, len(texts), batch_size):
            vectors.extend(await self._create(texts[start : start + batch_size]))
        return vectors

    async def embed_queries(self, texts: List[str], batch_size: int = 256) -> List[List[float]]:
        # No query/document distinction for OpenAI models
        return await self.embed_documents(texts, batch_size=batch_size)
