"""Emotional memory: emotion tags attached to other memories."""

from typing import List, Optional

from agent_memory.models import (
    INTENSITY_ORDER,
    EmotionalMemory,
    EmotionIntensity,
    EmotionType,
)
from agent_memory.stores.base import JsonMemoryStore, _limit


class EmotionalMemoryStore(JsonMemoryStore[EmotionalMemory]):
    memory_type = "emotional"
    model = EmotionalMemory

    def query(
        self,
        conversation_id: Optional[str] = None,
        channel_source: Optional[str] = None,
        text: Optional[str] = None,
        target_memory_id: Optional[str] = None,
        emotion: Optional[EmotionType] = None,
        min_intensity: Optional[EmotionIntensity] = None,
        limit: Optional[int] = None,
    ) -> List[EmotionalMemory]:
        """Emotions by intensity (strongest first), then newest tag."""
        results = self._filter_base(
            self.get_all(),
            conversation_id=conversation_id,
            channel_source=channel_source,
            text=text,
        )
        if target_memory_id:
            results = [m for m in results if m.target_memory_id == target_memory_id]
        if emotion:
            results = [m for m in results if m.tag.emotion == emotion]
        if min_intensity:
            floor = INTENSITY_ORDER.index(min_intensity)
            results = [m for m in results if m.intensity_level >= floor]

        results.sort(key=lambda m: (m.intensity_level, m.tag.timestamp), reverse=True)
        return _limit(results, limit)

    def get_by_target(self, target_memory_id: str) -> List[EmotionalMemory]:
        return [m for m in self.get_all() if m.target_memory_id == target_memory_id]

    def get_by_emotion(self, emotion: EmotionType) -> List[EmotionalMemory]:
        return [m for m in self.get_all() if m.tag.emotion == emotion]

    def _searchable_text(self, memory: EmotionalMemory) -> str:
        return " ".join(filter(None, [memory.tag.emotion, memory.context]))
