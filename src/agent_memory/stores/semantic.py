"""Semantic memory: facts and knowledge."""

from typing import List, Optional

from agent_memory.models import SemanticMemory
from agent_memory.stores.base import JsonMemoryStore, _limit


class SemanticMemoryStore(JsonMemoryStore[SemanticMemory]):
    memory_type = "semantic"
    model = SemanticMemory

    def query(
        self,
        conversation_id: Optional[str] = None,
        channel_source: Optional[str] = None,
        text: Optional[str] = None,
        category: Optional[str] = None,
        since: Optional[int] = None,
        until: Optional[int] = None,
        limit: Optional[int] = None,
    ) -> List[SemanticMemory]:
        results = super().query(
            conversation_id=conversation_id,
            channel_source=channel_source,
            text=text,
            since=since,
            until=until,
        )
        if category:
            results = [m for m in results if m.category == category]
        return _limit(results, limit)

    def _searchable_text(self, memory: SemanticMemory) -> str:
        return " ".join(filter(None, [memory.fact, memory.category, memory.source]))
