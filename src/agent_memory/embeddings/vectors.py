"""Vector helpers: similarity and the JSON text encoding stored in the index."""

import json
import logging
from typing import List, Optional, Sequence

logger = logging.getLogger(__name__)


def cosine_similarity(vec1: Sequence[float], vec2: Sequence[float]) -> float:
    """Cosine similarity; 0.0 for empty, zero-length or mismatched vectors."""
    if not vec1 or not vec2 or len(vec1) != len(vec2):
        return 0.0

    dot_product = sum(a * b for a, b in zip(vec1, vec2))
    magnitude1 = sum(a * a for a in vec1) ** 0.5
    magnitude2 = sum(b * b for b in vec2) ** 0.5

    if magnitude1 == 0 or magnitude2 == 0:
        return 0.0

    return dot_product / (magnitude1 * magnitude2)


def serialize_embedding(vector: Optional[Sequence[float]]) -> str:
    return json.dumps(list(vector or []))


def parse_embedding(raw: Optional[str]) -> List[float]:
    """Decode a stored vector; anything unreadable decodes to an empty vector."""
    if not raw:
        return []
    try:
        value = json.loads(raw)
    except json.JSONDecodeError:
        logger.debug("Discarding unreadable stored embedding")
        return []
    if not isinstance(value, list):
        return []
    return [float(v) for v in value]
