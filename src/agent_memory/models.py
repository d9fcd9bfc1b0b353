import time
import uuid
from typing import Any, ClassVar, Dict, List, Literal, Optional, get_args

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

MemoryType = Literal["semantic", "episodic", "procedural", "prospective", "emotional", "working"]
MEMORY_TYPES: tuple = get_args(MemoryType)

# Kinds that are written to the search index; working memory is short-lived.
INDEXED_MEMORY_TYPES: tuple = ("semantic", "episodic", "procedural", "prospective", "emotional")

EmotionType = Literal[
    "joy", "satisfaction", "frustration", "fear", "neutral", "positive", "negative"
]
EmotionIntensity = Literal["low", "medium", "high"]
INTENSITY_ORDER: tuple = get_args(EmotionIntensity)

ProspectiveStatus = Literal["pending", "triggered", "completed", "cancelled"]

# Well-known metadata keys
CONVERSATION_ID_KEY = "conversationId"
CHANNEL_SOURCE_KEY = "channelSource"

DEFAULT_WORKING_TTL_MS = 60 * 60 * 1000


def now_ms() -> int:
    """Current wall-clock time in epoch milliseconds."""
    return int(time.time() * 1000)


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Memory(_CamelModel):
    """
    Unified memory envelope shared by every memory kind.

    Serialized with camelCase keys so store files keep the documented
    ``{"memories": [...]}`` shape. Unknown keys found in a file are kept
    and written back unchanged.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")

    # Kind-specific field that mirrors ``content`` when only one is supplied
    primary_field: ClassVar[Optional[str]] = None

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    type: MemoryType
    content: str = ""
    created_at: int = Field(default_factory=now_ms)
    updated_at: int = Field(default_factory=now_ms)
    metadata: Dict[str, Any] = Field(default_factory=dict)

    @model_validator(mode="before")
    @classmethod
    def _mirror_primary_field(cls, data: Any) -> Any:
        if not isinstance(data, dict) or not cls.primary_field:
            return data

        data = dict(data)
        primary = cls.primary_field
        if not data.get("content") and data.get(primary):
            data["content"] = data[primary]
        elif data.get("content") and not data.get(primary):
            data[primary] = data["content"]
        return data

    @property
    def conversation_id(self) -> Optional[str]:
        return self.metadata.get(CONVERSATION_ID_KEY)

    @property
    def channel_source(self) -> Optional[str]:
        return self.metadata.get(CHANNEL_SOURCE_KEY)

    def to_record(self) -> Dict[str, Any]:
        """Serialize to the on-disk JSON record."""
        return self.model_dump(by_alias=True, exclude_none=True, mode="json")


class SemanticMemory(Memory):
    primary_field: ClassVar[Optional[str]] = "fact"

    type: Literal["semantic"] = "semantic"
    fact: str
    category: Optional[str] = None
    source: Optional[str] = None
    confidence: Optional[float] = Field(default=None, ge=0.0, le=1.0)


class EpisodicContext(_CamelModel):
    who: Optional[str] = None
    what: str = ""
    when: Optional[int] = None
    where: Optional[str] = None
    why: Optional[str] = None


class EmotionalTag(_CamelModel):
    emotion: EmotionType = "neutral"
    intensity: EmotionIntensity = "low"
    timestamp: int = Field(default_factory=now_ms)


class EpisodicMemory(Memory):
    primary_field: ClassVar[Optional[str]] = "event"

    type: Literal["episodic"] = "episodic"
    event: str
    context: EpisodicContext
    timestamp: int = Field(default_factory=now_ms)
    emotional_tag: Optional[EmotionalTag] = None
    related_memories: List[str] = Field(default_factory=list)

    @model_validator(mode="before")
    @classmethod
    def _default_context(cls, data: Any) -> Any:
        if isinstance(data, dict) and not data.get("context"):
            data = dict(data)
            data["context"] = {"what": data.get("event") or data.get("content") or ""}
        return data


class ProceduralMemory(Memory):
    primary_field: ClassVar[Optional[str]] = "pattern"

    type: Literal["procedural"] = "procedural"
    pattern: str
    action: str = ""
    trigger: Optional[str] = None
    success_rate: Optional[float] = Field(default=None, ge=0.0, le=1.0)
    use_count: int = Field(default=0, ge=0)
    last_used: Optional[int] = None


class ProspectiveMemory(Memory):
    primary_field: ClassVar[Optional[str]] = "intention"

    type: Literal["prospective"] = "prospective"
    intention: str
    trigger_time: Optional[int] = None
    trigger_context: Optional[str] = None
    status: ProspectiveStatus = "pending"
    priority: float = Field(default=0.5, ge=0.0, le=1.0)


class EmotionalMemory(Memory):
    primary_field: ClassVar[Optional[str]] = "context"

    type: Literal["emotional"] = "emotional"
    tag: EmotionalTag = Field(default_factory=EmotionalTag)
    target_memory_id: Optional[str] = None
    target_memory_type: Optional[MemoryType] = None
    context: Optional[str] = None

    @property
    def intensity_level(self) -> int:
        return INTENSITY_ORDER.index(self.tag.intensity)


class WorkingMemory(Memory):
    type: Literal["working"] = "working"
    expires_at: int = Field(default_factory=lambda: now_ms() + DEFAULT_WORKING_TTL_MS)
    context: Dict[str, Any] = Field(default_factory=dict)

    def is_expired(self, now: Optional[int] = None) -> bool:
        return self.expires_at < (now if now is not None else now_ms())


MEMORY_MODELS: Dict[str, type] = {
    "semantic": SemanticMemory,
    "episodic": EpisodicMemory,
    "procedural": ProceduralMemory,
    "prospective": ProspectiveMemory,
    "emotional": EmotionalMemory,
    "working": WorkingMemory,
}
