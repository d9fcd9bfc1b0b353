"""Procedural memory: skills, habits and trigger/action patterns."""

import logging
import re
from typing import List, Optional

from agent_memory.models import ProceduralMemory, now_ms
from agent_memory.stores.base import JsonMemoryStore, _limit

logger = logging.getLogger(__name__)


def _trigger_matches(trigger: str, context: str) -> bool:
    # "/pattern/" triggers are regular expressions, anything else is a substring
    if len(trigger) > 2 and trigger.startswith("/") and trigger.endswith("/"):
        try:
            return re.search(trigger[1:-1], context, re.IGNORECASE) is not None
        except re.error:
            logger.warning(f"Invalid trigger pattern: {trigger}")
            return False
    return trigger.lower() in context.lower()


class ProceduralMemoryStore(JsonMemoryStore[ProceduralMemory]):
    memory_type = "procedural"
    model = ProceduralMemory

    def query(
        self,
        conversation_id: Optional[str] = None,
        channel_source: Optional[str] = None,
        text: Optional[str] = None,
        min_success_rate: Optional[float] = None,
        since: Optional[int] = None,
        until: Optional[int] = None,
        limit: Optional[int] = None,
    ) -> List[ProceduralMemory]:
        results = super().query(
            conversation_id=conversation_id,
            channel_source=channel_source,
            text=text,
            since=since,
            until=until,
        )
        if min_success_rate is not None:
            results = [m for m in results if (m.success_rate or 0.0) >= min_success_rate]
        return _limit(results, limit)

    def find_by_trigger(self, context: str, limit: Optional[int] = None) -> List[ProceduralMemory]:
        """Patterns whose trigger fires for ``context``, most successful first."""
        results = [
            m for m in self.get_all() if m.trigger and _trigger_matches(m.trigger, context)
        ]
        results.sort(key=lambda m: (m.success_rate or 0.0, m.updated_at), reverse=True)
        return _limit(results, limit)

    def record_use(self, memory_id: str, success: bool) -> bool:
        """Count a use of the pattern and fold the result into its success rate."""
        memory = self.get(memory_id)
        if memory is None:
            return False

        previous_uses = memory.use_count
        previous_rate = memory.success_rate if memory.success_rate is not None else 0.0
        use_count = previous_uses + 1
        success_rate = (previous_rate * previous_uses + (1.0 if success else 0.0)) / use_count

        self._touch(memory, use_count=use_count, success_rate=success_rate, last_used=now_ms())
        self._save()
        return True

    def _searchable_text(self, memory: ProceduralMemory) -> str:
        return " ".join(filter(None, [memory.pattern, memory.action, memory.trigger]))
