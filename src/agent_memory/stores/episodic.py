"""Episodic memory: specific events and experiences."""

import logging
from typing import List, Optional

from agent_memory.models import EmotionalTag, EpisodicMemory
from agent_memory.stores.base import JsonMemoryStore, _limit

logger = logging.getLogger(__name__)


class EpisodicMemoryStore(JsonMemoryStore[EpisodicMemory]):
    memory_type = "episodic"
    model = EpisodicMemory

    def query(
        self,
        conversation_id: Optional[str] = None,
        channel_source: Optional[str] = None,
        text: Optional[str] = None,
        start_time: Optional[int] = None,
        end_time: Optional[int] = None,
        limit: Optional[int] = None,
    ) -> List[EpisodicMemory]:
        """Events filtered by conversation, time range and text; newest event first."""
        results = self._filter_base(
            self.get_all(),
            conversation_id=conversation_id,
            channel_source=channel_source,
            text=text,
        )
        if start_time is not None:
            results = [m for m in results if m.timestamp >= start_time]
        if end_time is not None:
            results = [m for m in results if m.timestamp <= end_time]

        results.sort(key=lambda m: (m.timestamp, m.updated_at), reverse=True)
        return _limit(results, limit)

    def add_emotional_tag(self, memory_id: str, tag: EmotionalTag) -> bool:
        memory = self.get(memory_id)
        if memory is None:
            return False

        self._touch(memory, emotional_tag=tag)
        self._save()
        return True

    def link_memories(self, first_id: str, second_id: str) -> bool:
        """Link two events in both directions. Returns False if either is missing."""
        first = self.get(first_id)
        second = self.get(second_id)
        if first is None or second is None or first_id == second_id:
            return False

        if second_id not in first.related_memories:
            first.related_memories.append(second_id)
        if first_id not in second.related_memories:
            second.related_memories.append(first_id)

        self._touch(first)
        self._touch(second)
        self._save()

        logger.debug(f"Linked episodic memories {first_id} <-> {second_id}")
        return True

    def _searchable_text(self, memory: EpisodicMemory) -> str:
        return " ".join(filter(None, [memory.event, memory.context.what, memory.context.why]))
