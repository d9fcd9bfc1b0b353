"""
JSON file-backed memory store.

Each memory kind owns one JSON document (``{"memories": [...]}``) under the
workspace memory directory. The whole file is loaded into a dict keyed by id
on construction and every mutation rewrites the full snapshot before
returning.
"""

import json
import logging
import os
import re
import tempfile
from pathlib import Path
from typing import Any, Dict, Generic, Iterable, List, Optional, Type, TypeVar

from pydantic import ValidationError

from agent_memory.models import Memory, MemoryType, now_ms
from agent_memory.outcome import DegradedReason
from agent_memory.paths import PathLike, memory_store_path

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=Memory)

_TRAILING_COMMA = re.compile(r",(\s*[}\]])")
_MEMORIES_ARRAY = re.compile(r'"memories"\s*:\s*\[([\s\S]*?)\]\s*}\s*$')

# Fields a caller may never change through update()
_IMMUTABLE_FIELDS = {"id", "type", "created_at", "createdAt"}


class JsonMemoryStore(Generic[M]):
    """
    Durable CRUD and query over one memory kind.

    Subclasses set ``memory_type`` and ``model`` and add kind-specific
    queries. Load failures are logged and the store starts empty; save
    failures are logged and the in-memory state is kept. Either way
    ``last_degraded`` records the reason until the next successful save.
    """

    memory_type: MemoryType
    model: Type[M]

    def __init__(self, workspace_dir: PathLike):
        self.workspace_dir = Path(workspace_dir)
        self.storage_path = memory_store_path(self.workspace_dir, self.memory_type)
        self._memories: Dict[str, M] = {}
        self.last_degraded: Optional[DegradedReason] = None
        self._load()

        logger.info(
            f"{type(self).__name__} loaded {len(self._memories)} memories "
            f"from {self.storage_path}"
        )

    def __len__(self) -> int:
        return len(self._memories)

    # ------------------------------------------------------------------
    # CRUD
    # ------------------------------------------------------------------

    def add(self, fields: Dict[str, Any]) -> str:
        """Create a memory from ``fields`` and persist it. Returns the new id."""
        now = now_ms()
        data = {k: v for k, v in fields.items() if k not in _IMMUTABLE_FIELDS}
        data.pop("updated_at", None)
        data.pop("updatedAt", None)

        memory = self.model.model_validate(
            {**data, "type": self.memory_type, "created_at": now, "updated_at": now}
        )
        self._memories[memory.id] = memory
        self._save()

        logger.debug(f"Added {self.memory_type} memory {memory.id}: '{memory.content[:50]}'")
        return memory.id

    def get(self, memory_id: str) -> Optional[M]:
        return self._memories.get(memory_id)

    def get_all(self) -> List[M]:
        return list(self._memories.values())

    def update(self, memory_id: str, updates: Dict[str, Any]) -> bool:
        """Merge ``updates`` into a memory, bump ``updated_at`` and persist."""
        existing = self._memories.get(memory_id)
        if existing is None:
            logger.warning(f"Cannot update {self.memory_type} memory {memory_id}: not found")
            return False

        changes = {
            k: v for k, v in _by_field_name(self.model, updates).items()
            if k not in _IMMUTABLE_FIELDS
        }
        changes["updated_at"] = max(now_ms(), existing.updated_at + 1)

        primary = self.model.primary_field
        if primary:
            if primary in changes and "content" not in changes:
                changes["content"] = changes[primary]
            elif "content" in changes and primary not in changes:
                changes[primary] = changes["content"]

        merged = {**existing.model_dump(by_alias=False), **changes}
        self._memories[memory_id] = self.model.model_validate(merged)
        self._save()
        return True

    def delete(self, memory_id: str) -> bool:
        if self._memories.pop(memory_id, None) is None:
            return False
        self._save()
        return True

    def clear(self) -> int:
        count = len(self._memories)
        if count:
            self._memories.clear()
            self._save()
        return count

    # ------------------------------------------------------------------
    # Query
    # ------------------------------------------------------------------

    def query(
        self,
        conversation_id: Optional[str] = None,
        channel_source: Optional[str] = None,
        text: Optional[str] = None,
        since: Optional[int] = None,
        until: Optional[int] = None,
        limit: Optional[int] = None,
    ) -> List[M]:
        """Filter (all criteria intersect), newest ``updated_at`` first, then limit."""
        results = self._filter_base(
            self.get_all(),
            conversation_id=conversation_id,
            channel_source=channel_source,
            text=text,
        )
        if since is not None:
            results = [m for m in results if m.updated_at >= since]
        if until is not None:
            results = [m for m in results if m.updated_at <= until]

        results.sort(key=lambda m: m.updated_at, reverse=True)
        return _limit(results, limit)

    def _filter_base(
        self,
        memories: Iterable[M],
        conversation_id: Optional[str] = None,
        channel_source: Optional[str] = None,
        text: Optional[str] = None,
    ) -> List[M]:
        results = list(memories)
        if conversation_id:
            results = [m for m in results if m.conversation_id == conversation_id]
        if channel_source:
            results = [m for m in results if m.channel_source == channel_source]
        if text:
            needle = text.lower()
            results = [m for m in results if needle in self._searchable_text(m).lower()]
        return results

    def _searchable_text(self, memory: M) -> str:
        return memory.content

    def _touch(self, memory: M, **changes: Any) -> M:
        """Apply trusted field changes in place and bump ``updated_at``."""
        for key, value in changes.items():
            setattr(memory, key, value)
        memory.updated_at = max(now_ms(), memory.updated_at + 1)
        return memory

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def _load(self) -> None:
        if not self.storage_path.exists():
            return

        try:
            raw = self.storage_path.read_text(encoding="utf-8")
        except OSError as e:
            logger.warning(f"Failed to read memories from {self.storage_path}: {e}")
            self.last_degraded = DegradedReason.STORAGE_UNREADABLE
            return

        if not raw.strip():
            return

        records = self._parse_records(raw)
        if records is None:
            self.last_degraded = DegradedReason.STORAGE_UNREADABLE
            return

        for record in records:
            if not isinstance(record, dict) or not record.get("id"):
                continue
            if record.get("type") != self.memory_type:
                continue
            try:
                memory = self.model.model_validate(record)
            except ValidationError as e:
                logger.warning(f"Skipping invalid {self.memory_type} memory {record['id']}: {e}")
                continue
            if self._accept_loaded(memory):
                self._memories[memory.id] = memory

    def _parse_records(self, raw: str) -> Optional[List[Any]]:
        cleaned = _TRAILING_COMMA.sub(r"\1", raw.strip())
        try:
            data = json.loads(cleaned)
        except json.JSONDecodeError as e:
            logger.warning(f"JSON parse failed for {self.storage_path}, attempting recovery: {e}")
            match = _MEMORIES_ARRAY.search(cleaned)
            if not match:
                logger.error(f"Invalid JSON structure in {self.storage_path}, starting empty")
                return None
            try:
                data = {"memories": json.loads(f"[{match.group(1)}]")}
            except json.JSONDecodeError:
                logger.error(f"Recovery failed for {self.storage_path}, starting empty")
                return None

        if not isinstance(data, dict) or not isinstance(data.get("memories"), list):
            logger.warning(f"No memories array in {self.storage_path}, starting empty")
            return None
        return data["memories"]

    def _accept_loaded(self, memory: M) -> bool:
        return True

    def _save(self) -> None:
        payload = json.dumps(
            {"memories": [m.to_record() for m in self._memories.values()]},
            indent=2,
            ensure_ascii=False,
        )
        try:
            self.storage_path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                dir=self.storage_path.parent, prefix=f".{self.memory_type}.", suffix=".tmp"
            )
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as fh:
                    fh.write(payload)
                    fh.flush()
                    os.fsync(fh.fileno())
                os.replace(tmp_name, self.storage_path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except OSError as e:
            logger.error(f"Failed to save memories to {self.storage_path}: {e}")
            self.last_degraded = DegradedReason.STORAGE_UNWRITABLE
            return

        self.last_degraded = None


def _by_field_name(model: Type[Memory], data: Dict[str, Any]) -> Dict[str, Any]:
    """Rewrite camelCase alias keys to attribute names."""
    aliases = {
        info.alias: name for name, info in model.model_fields.items() if info.alias
    }
    return {aliases.get(key, key): value for key, value in data.items()}


def _limit(results: List[M], limit: Optional[int]) -> List[M]:
    if limit:
        return results[:limit]
    return results
