import logging
from pathlib import Path
from typing import Any, Dict, Iterable, List, Literal, Optional, Union

from agent_memory.config import MemorySearchConfig, ResolvedSearchConfig, resolve_search_config
from agent_memory.embeddings.protocol import TextEmbedding
from agent_memory.exceptions import UnknownMemoryTypeError
from agent_memory.index.models import SearchResult, SyncReport
from agent_memory.index.search import HybridSearchEngine
from agent_memory.models import MEMORY_TYPES, Memory, MemoryType
from agent_memory.paths import PathLike
from agent_memory.registry import SearchEngineRegistry
from agent_memory.stores import JsonMemoryStore, WorkingMemoryStore, create_store

logger = logging.getLogger(__name__)


class MemoryService:
    """
    Facade over the six typed stores and the memory search index.

    Example:
        service = MemoryService(workspace_dir, agent_id="main",
                                search_config=MemorySearchConfig())
        memory_id = service.insert("semantic", "User prefers dark mode")
        results = await service.search("dark mode")

    Search is only available when ``search_config`` is given (and not
    disabled); otherwise ``search`` returns ``[]`` and ``sync`` returns None.
    """

    def __init__(
        self,
        workspace_dir: PathLike,
        agent_id: str = "default",
        search_config: Optional[MemorySearchConfig] = None,
        registry: Optional[SearchEngineRegistry] = None,
        embedding: Optional[TextEmbedding] = None,
    ):
        self.workspace_dir = Path(workspace_dir)
        self.agent_id = agent_id
        self.embedding = embedding
        self.registry = registry or SearchEngineRegistry()
        self.search_config: Optional[ResolvedSearchConfig] = None
        if search_config is not None:
            self.search_config = resolve_search_config(search_config, self.workspace_dir, agent_id)

        self.stores: Dict[str, JsonMemoryStore] = {
            kind: create_store(kind, self.workspace_dir) for kind in MEMORY_TYPES
        }

    def store(self, kind: str) -> JsonMemoryStore:
        store = self.stores.get(kind)
        if store is None:
            raise UnknownMemoryTypeError(kind)
        return store

    # ------------------------------------------------------------------
    # Store operations
    # ------------------------------------------------------------------

    def insert(
        self,
        kind: MemoryType,
        content: str,
        metadata: Optional[Dict[str, Any]] = None,
        **fields: Any,
    ) -> str:
        """Add a memory from plain content plus any kind-specific fields."""
        memory_id = self.store(kind).add(
            {**fields, "content": content, "metadata": dict(metadata or {})}
        )
        logger.info(f"Inserted {kind} memory {memory_id}")
        return memory_id

    def find(self, kind: MemoryType, memory_id: str) -> Optional[Memory]:
        return self.store(kind).get(memory_id)

    def find_all(self, kind: MemoryType) -> List[Memory]:
        return self.store(kind).get_all()

    def update(self, kind: MemoryType, memory_id: str, updates: Dict[str, Any]) -> bool:
        return self.store(kind).update(memory_id, updates)

    def remove(self, kind: MemoryType, memory_id: str) -> bool:
        return self.store(kind).delete(memory_id)

    def set_all(
        self,
        kind: MemoryType,
        contents: List[str],
        metadata: Optional[Dict[str, Any]] = None,
    ) -> List[str]:
        """Replace every memory of ``kind`` with one memory per content string."""
        store = self.store(kind)
        if isinstance(store, WorkingMemoryStore):
            return store.set_items(contents, metadata=metadata)

        store.clear()
        return [
            store.add({"content": content, "metadata": dict(metadata or {})})
            for content in contents
        ]

    def get_memories(
        self,
        kind: Optional[MemoryType] = None,
        kinds: Optional[Iterable[MemoryType]] = None,
        conversation_id: Optional[str] = None,
        channel_source: Optional[str] = None,
        limit: Optional[int] = None,
        format: Literal["full", "content"] = "full",
    ) -> Union[List[Memory], List[str]]:
        """
        Read memories across kinds.

        Args:
            kind: Single kind to read
            kinds: Several kinds to read (ignored when ``kind`` is given)
            conversation_id: Only memories tagged with this conversation
            channel_source: Only memories tagged with this channel
            limit: Maximum number of memories
            format: "full" for memory models, "content" for content strings

        Returns:
            Memories sorted by updated_at, newest first
        """
        selected = [kind] if kind else list(kinds or MEMORY_TYPES)

        memories: List[Memory] = []
        for name in selected:
            memories.extend(
                self.store(name).query(
                    conversation_id=conversation_id, channel_source=channel_source
                )
            )

        memories.sort(key=lambda m: m.updated_at, reverse=True)
        if limit:
            memories = memories[:limit]

        if format == "content":
            return [m.content for m in memories]
        return memories

    # ------------------------------------------------------------------
    # Search
    # ------------------------------------------------------------------

    async def search(self, query: str, **opts: Any) -> List[SearchResult]:
        engine = await self._search_engine()
        if engine is None:
            return []
        return await engine.search(query, **opts)

    async def sync(self, reason: Optional[str] = None, force: bool = False) -> Optional[SyncReport]:
        engine = await self._search_engine()
        if engine is None:
            return None
        return await engine.sync(reason=reason or "manual", force=force)

    async def close(self) -> None:
        await self.registry.close_all()

    async def _search_engine(self) -> Optional[HybridSearchEngine]:
        if self.search_config is None:
            return None
        try:
            return await self.registry.get_engine(
                self.search_config, self.workspace_dir, self.agent_id, embedding=self.embedding
            )
        except Exception as e:
            logger.error(f"Failed to open memory search engine: {e}")
            return None
