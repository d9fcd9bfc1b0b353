"""
Failure-absorbing wrappers around a ``TextEmbedding`` provider.

A missing or failing provider never aborts indexing or search: the caller
gets empty vectors tagged with the reason, and the index stays usable for
lexical search.
"""

import logging
from typing import List, Optional

from agent_memory.embeddings.protocol import TextEmbedding
from agent_memory.outcome import DegradedReason, Outcome

logger = logging.getLogger(__name__)


async def embed_documents_soft(
    provider: Optional[TextEmbedding], texts: List[str]
) -> Outcome[List[List[float]]]:
    """
    Embed ``texts`` as documents, one (possibly empty) vector per input.

    Blank texts are never sent to the provider and always get ``[]``.
    """
    vectors: List[List[float]] = [[] for _ in texts]
    positions = [i for i, text in enumerate(texts) if text and text.strip()]
    if not positions:
        return Outcome(vectors)

    if provider is None:
        return Outcome.degrade(vectors, DegradedReason.PROVIDER_UNAVAILABLE)

    try:
        embedded = await provider.embed_documents([texts[i] for i in positions])
    except Exception as e:
        logger.warning(f"Failed to generate embeddings for {len(positions)} texts: {e}")
        return Outcome.degrade(vectors, DegradedReason.PROVIDER_FAILED)

    if len(embedded) != len(positions):
        logger.warning(
            f"Embedding provider returned {len(embedded)} vectors for {len(positions)} texts"
        )
        return Outcome.degrade(vectors, DegradedReason.PROVIDER_FAILED)

    for position, vector in zip(positions, embedded):
        vectors[position] = list(vector)
    return Outcome(vectors)


async def embed_query_soft(
    provider: Optional[TextEmbedding], text: str
) -> Outcome[Optional[List[float]]]:
    """Embed a search query; ``None`` when no vector could be obtained."""
    if not text or not text.strip():
        return Outcome(None)

    if provider is None:
        return Outcome.degrade(None, DegradedReason.PROVIDER_UNAVAILABLE)

    try:
        vector = await provider.embed_query(text)
    except Exception as e:
        logger.warning(f"Failed to get query embedding: {e}")
        return Outcome.degrade(None, DegradedReason.PROVIDER_FAILED)

    return Outcome(list(vector) if vector else None)
