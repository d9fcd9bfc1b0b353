"""Prospective memory: future intentions and reminders."""

import logging
import math
from typing import List, Optional

from agent_memory.models import ProspectiveMemory, ProspectiveStatus, now_ms
from agent_memory.stores.base import JsonMemoryStore, _limit

logger = logging.getLogger(__name__)


class ProspectiveMemoryStore(JsonMemoryStore[ProspectiveMemory]):
    memory_type = "prospective"
    model = ProspectiveMemory

    def query(
        self,
        conversation_id: Optional[str] = None,
        channel_source: Optional[str] = None,
        text: Optional[str] = None,
        status: Optional[ProspectiveStatus] = None,
        limit: Optional[int] = None,
    ) -> List[ProspectiveMemory]:
        """Intentions by priority (highest first), then newest."""
        results = self._filter_base(
            self.get_all(),
            conversation_id=conversation_id,
            channel_source=channel_source,
            text=text,
        )
        if status:
            results = [m for m in results if m.status == status]

        results.sort(key=lambda m: (m.priority, m.created_at), reverse=True)
        return _limit(results, limit)

    def get_due(self, now: Optional[int] = None) -> List[ProspectiveMemory]:
        """Pending intentions whose trigger time has passed."""
        now = now if now is not None else now_ms()
        results = [
            m
            for m in self.get_all()
            if m.status == "pending" and m.trigger_time is not None and m.trigger_time <= now
        ]
        results.sort(
            key=lambda m: (-m.priority, m.trigger_time if m.trigger_time is not None else math.inf)
        )
        return results

    def get_by_context(self, context: str) -> List[ProspectiveMemory]:
        """Pending intentions whose trigger context overlaps ``context``."""
        results = [
            m
            for m in self.get_all()
            if m.status == "pending"
            and m.trigger_context
            and (m.trigger_context in context or context in m.trigger_context)
        ]
        results.sort(key=lambda m: m.priority, reverse=True)
        return results

    def trigger(self, memory_id: str) -> bool:
        return self._set_status(memory_id, "triggered")

    def complete(self, memory_id: str) -> bool:
        return self._set_status(memory_id, "completed")

    def cancel(self, memory_id: str) -> bool:
        return self._set_status(memory_id, "cancelled")

    def _set_status(self, memory_id: str, status: ProspectiveStatus) -> bool:
        memory = self.get(memory_id)
        if memory is None:
            logger.warning(f"Cannot mark prospective memory {memory_id} {status}: not found")
            return False

        self._touch(memory, status=status)
        self._save()
        return True

    def _searchable_text(self, memory: ProspectiveMemory) -> str:
        return " ".join(filter(None, [memory.intention, memory.trigger_context]))
