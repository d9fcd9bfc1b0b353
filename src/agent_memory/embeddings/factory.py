"""Embedding provider resolution from a ``ResolvedSearchConfig``."""

import logging
from typing import Optional

from agent_memory.config import (
    DEFAULT_GEMINI_MODEL,
    DEFAULT_LOCAL_MODEL,
    DEFAULT_OPENAI_MODEL,
    ResolvedSearchConfig,
)
from agent_memory.embeddings.protocol import TextEmbedding

logger = logging.getLogger(__name__)


def _build(provider: str, config: ResolvedSearchConfig, model: str) -> TextEmbedding:
    remote = config.remote

    if provider == "openai":
        from agent_memory.embeddings.openai_embedding import OpenAIEmbedding

        return OpenAIEmbedding(
            model=model or DEFAULT_OPENAI_MODEL,
            api_key=remote.api_key if remote else None,
            base_url=remote.base_url if remote else None,
            headers=remote.headers if remote else None,
        )

    if provider == "gemini":
        from agent_memory.embeddings.openai_embedding import (
            GEMINI_OPENAI_BASE_URL,
            OpenAIEmbedding,
        )

        if not remote or not remote.api_key:
            raise ValueError("gemini embeddings require remote.api_key")
        return OpenAIEmbedding(
            model=model or DEFAULT_GEMINI_MODEL,
            api_key=remote.api_key,
            base_url=remote.base_url or GEMINI_OPENAI_BASE_URL,
            headers=remote.headers,
        )

    if provider == "local":
        from agent_memory.embeddings.local_embedding import LocalEmbedding

        return LocalEmbedding(
            model_name=model or DEFAULT_LOCAL_MODEL,
            model_path=config.local.model_path,
            cache_folder=config.local.model_cache_dir,
        )

    raise ValueError(f"Unknown embedding provider: {provider}")


def create_embedding_provider(config: Optional[ResolvedSearchConfig]) -> Optional[TextEmbedding]:
    """
    Build the configured embedding provider.

    ``auto`` picks ``openai`` when an API key is configured and ``local``
    otherwise. If the primary provider cannot be constructed (missing
    package, missing key, model load failure) the configured fallback is
    tried; with no usable provider the result is None and search runs
    lexical-only.
    """
    if config is None or not config.enabled:
        return None

    primary = config.provider
    if primary == "auto":
        primary = "openai" if config.remote and config.remote.api_key else "local"

    try:
        return _build(primary, config, config.model)
    except Exception as e:
        logger.warning(f"Embedding provider '{primary}' unavailable: {e}")

    fallback = config.fallback
    if fallback != "none" and fallback != primary:
        try:
            # The configured model belongs to the primary provider
            return _build(fallback, config, "")
        except Exception as e:
            logger.warning(f"Fallback embedding provider '{fallback}' unavailable: {e}")

    logger.warning("No embedding provider available; memory search will be lexical only")
    return None
