"""
Text embedding abstractions for agent-memory.

Provides the ``TextEmbedding`` protocol, concrete adapters, provider
resolution from configuration, and soft-failing helpers:
- OpenAIEmbedding: OpenAI and OpenAI-compatible APIs (including Gemini)
- LocalEmbedding: in-process sentence-transformers models
"""

from agent_memory.embeddings.factory import create_embedding_provider
from agent_memory.embeddings.protocol import TextEmbedding
from agent_memory.embeddings.soft import embed_documents_soft, embed_query_soft
from agent_memory.embeddings.vectors import (
    cosine_similarity,
    parse_embedding,
    serialize_embedding,
)

__all__ = [
    "TextEmbedding",
    "create_embedding_provider",
    "embed_documents_soft",
    "embed_query_soft",
    "cosine_similarity",
    "parse_embedding",
    "serialize_embedding",
]

# Optional adapters (import only if dependencies available)
try:
    from agent_memory.embeddings.openai_embedding import OpenAIEmbedding  # noqa: F401

    __all__.append("OpenAIEmbedding")
except ImportError:
    pass

try:
    from agent_memory.embeddings.local_embedding import LocalEmbedding  # noqa: F401

    __all__.append("LocalEmbedding")
except ImportError:
    pass
