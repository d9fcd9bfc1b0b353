"""
Working memory: short-lived buffer for the current task.

Persisted like the other kinds so it survives a restart, but every entry
carries ``expiresAt`` and is purged on the next read once it has passed.
Working memory is never indexed for search.
"""

import logging
from typing import Any, Dict, List, Optional

from agent_memory.models import DEFAULT_WORKING_TTL_MS, WorkingMemory, now_ms
from agent_memory.stores.base import JsonMemoryStore

logger = logging.getLogger(__name__)


class WorkingMemoryStore(JsonMemoryStore[WorkingMemory]):
    memory_type = "working"
    model = WorkingMemory

    def __init__(self, workspace_dir, default_ttl_ms: int = DEFAULT_WORKING_TTL_MS):
        self.default_ttl_ms = default_ttl_ms
        super().__init__(workspace_dir)

    def add(self, fields: Dict[str, Any]) -> str:
        fields = dict(fields)
        if fields.get("expires_at") is None and fields.get("expiresAt") is None:
            ttl = fields.pop("ttl_ms", None)
            fields["expires_at"] = now_ms() + (ttl if ttl is not None else self.default_ttl_ms)
        else:
            fields.pop("ttl_ms", None)
        return super().add(fields)

    def get(self, memory_id: str) -> Optional[WorkingMemory]:
        self.clear_expired()
        return super().get(memory_id)

    def get_all(self) -> List[WorkingMemory]:
        self.clear_expired()
        return super().get_all()

    def set_items(
        self,
        contents: List[str],
        ttl_ms: Optional[int] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> List[str]:
        """Replace the whole buffer with ``contents``, sharing one expiry."""
        now = now_ms()
        expires_at = now + (ttl_ms if ttl_ms is not None else self.default_ttl_ms)

        self._memories.clear()
        for content in contents:
            memory = WorkingMemory(
                content=content,
                metadata=dict(metadata or {}),
                created_at=now,
                updated_at=now,
                expires_at=expires_at,
            )
            self._memories[memory.id] = memory
        self._save()
        return list(self._memories)

    def clear_expired(self) -> int:
        now = now_ms()
        expired = [mid for mid, m in self._memories.items() if m.is_expired(now)]
        for memory_id in expired:
            del self._memories[memory_id]

        if expired:
            logger.debug(f"Purged {len(expired)} expired working memories")
            self._save()
        return len(expired)

    def _accept_loaded(self, memory: WorkingMemory) -> bool:
        return not memory.is_expired()
