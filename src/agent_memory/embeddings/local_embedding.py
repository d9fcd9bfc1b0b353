"""Local sentence-transformers embedding adapter for agent-memory."""

import asyncio
import logging
from typing import List, Optional

logger = logging.getLogger(__name__)

DEFAULT_LOCAL_MODEL = "intfloat/e5-small-v2"


class LocalEmbedding:
    """
    In-process embedding adapter backed by sentence-transformers.

    E5 family models are instruction-tuned and expect ``"query: "`` and
    ``"passage: "`` prefixes; they are added automatically when the model
    name contains ``e5``. Encoding is CPU/GPU bound and runs in a worker
    thread so it does not block the event loop.
    """

    def __init__(
        self,
        model_name: str = DEFAULT_LOCAL_MODEL,
        model_path: Optional[str] = None,
        cache_folder: Optional[str] = None,
        device: Optional[str] = None,
        normalize_embeddings: bool = True,
    ):
        """
        Load the model.

        Args:
            model_name: HuggingFace model identifier
            model_path: Local directory to load instead of ``model_name``
            cache_folder: Directory for downloaded models (None = default ~/.cache)
            device: "cuda", "cpu", or None for auto
            normalize_embeddings: L2 normalize vectors

        Raises:
            ImportError: If sentence-transformers is not installed
        """
        try:
            from sentence_transformers import SentenceTransformer
        except ImportError as e:
            raise ImportError(
                "sentence-transformers is required for LocalEmbedding. "
                "Install with: pip install agent-memory[embeddings-transformers]"
            ) from e

        self._model_name = model_name
        self._normalize = normalize_embeddings
        self._use_prefixes = "e5" in model_name.lower()

        logger.info(f"Loading local embedding model: {model_path or model_name}")
        self._model = SentenceTransformer(
            model_path or model_name, device=device, cache_folder=cache_folder
        )
        self._dimension = self._model.get_sentence_embedding_dimension()
        logger.info(f"Model loaded: {model_name} ({self._dimension} dimensions)")

    @property
    def dimension(self) -> int:
        return self._dimension

    @property
    def model_name(self) -> str:
        return self._model_name

    def _prefixed(self, texts: List[str], prefix: str) -> List[str]:
        if any(not text or not text.strip() for text in texts):
            raise ValueError("Cannot embed empty text")
        if not self._use_prefixes:
            return list(texts)
        return [f"{prefix}{text}" for text in texts]

    async def _encode(self, texts: List[str], batch_size: int) -> List[List[float]]:
        embeddings = await asyncio.to_thread(
            self._model.encode,
            texts,
            normalize_embeddings=self._normalize,
            show_progress_bar=False,
            batch_size=batch_size,
        )
        return embeddings.tolist()

    async def embed_document(self, text: str) -> List[float]:
        return (await self._encode(self._prefixed([text], "passage: "), 1))[0]

    async def embed_query(self, text: str) -> List[float]:
        return (await self._encode(self._prefixed([text], "query: "), 1))[0]

    async def embed_documents(self, texts: List[str], batch_size: int = 32) -> List[List[float]]:
        if not texts:
            return []
        return await self._encode(self._prefixed(texts, "passage: "), batch_size)

    async def embed_queries(self, texts: List[str], batch_size: int = 32) -> List[List[float]]:
        if not texts:
            return []
        return await self._encode(self._prefixed(texts, "query: "), batch_size)
