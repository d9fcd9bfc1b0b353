"""
Search engine registry.

One ``HybridSearchEngine`` per (agent, workspace, configuration, injected
provider). The registry is an ordinary object owned by whoever composes the
application; there is no module-level cache.
"""

import asyncio
import logging
from pathlib import Path
from typing import Dict, Optional, Tuple

from agent_memory.config import ResolvedSearchConfig
from agent_memory.embeddings.factory import create_embedding_provider
from agent_memory.embeddings.protocol import TextEmbedding
from agent_memory.index.search import HybridSearchEngine
from agent_memory.paths import PathLike

logger = logging.getLogger(__name__)

EngineKey = Tuple[str, str, str, str]


def _provider_key(embedding: Optional[TextEmbedding]) -> str:
    # Providers built from the config are already covered by cache_key()
    if embedding is None:
        return ""
    return f"{type(embedding).__name__}:{embedding.model_name}"


class SearchEngineRegistry:
    def __init__(self):
        self._engines: Dict[EngineKey, HybridSearchEngine] = {}
        self._creating: Dict[EngineKey, asyncio.Lock] = {}
        self._lock = asyncio.Lock()

    def __len__(self) -> int:
        return len(self._engines)

    async def get_engine(
        self,
        config: ResolvedSearchConfig,
        workspace_dir: PathLike,
        agent_id: str,
        embedding: Optional[TextEmbedding] = None,
    ) -> HybridSearchEngine:
        """
        Return the engine for this agent and configuration, creating it once.

        A new engine is initialized and, when ``sync.on_session_start`` is
        set, synced before it is handed out. Callers passing different
        ``embedding`` providers (by class and model name) get separate
        engines. Only callers waiting on the same key block each other.
        """
        key = (
            agent_id,
            str(Path(workspace_dir).resolve()),
            config.cache_key(),
            _provider_key(embedding),
        )

        async with self._lock:
            engine = self._engines.get(key)
            if engine is not None:
                return engine
            key_lock = self._creating.setdefault(key, asyncio.Lock())

        async with key_lock:
            engine = self._engines.get(key)
            if engine is not None:
                return engine

            if embedding is None:
                embedding = create_embedding_provider(config)

            engine = HybridSearchEngine(config, workspace_dir, embedding)
            engine.initialize()

            if config.sync.on_session_start:
                report = await engine.sync(reason="session_start")
                if report.degraded:
                    logger.warning(
                        f"Session start sync for agent '{agent_id}' degraded: "
                        f"{[reason.value for reason in report.degraded]}"
                    )

            async with self._lock:
                self._engines[key] = engine
                self._creating.pop(key, None)
            logger.info(f"Created search engine for agent '{agent_id}' ({workspace_dir})")
            return engine

    async def close_all(self) -> None:
        async with self._lock:
            for engine in self._engines.values():
                engine.close()
            count = len(self._engines)
            self._engines.clear()
        logger.debug(f"Closed {count} search engines")
