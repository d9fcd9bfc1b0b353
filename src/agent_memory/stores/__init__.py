"""
Typed memory stores.

One JSON file-backed store per memory kind, all sharing the CRUD and
persistence behaviour of ``JsonMemoryStore``.
"""

from typing import Dict, Type

from agent_memory.exceptions import UnknownMemoryTypeError
from agent_memory.paths import PathLike
from agent_memory.stores.base import JsonMemoryStore
from agent_memory.stores.emotional import EmotionalMemoryStore
from agent_memory.stores.episodic import EpisodicMemoryStore
from agent_memory.stores.procedural import ProceduralMemoryStore
from agent_memory.stores.prospective import ProspectiveMemoryStore
from agent_memory.stores.semantic import SemanticMemoryStore
from agent_memory.stores.working import WorkingMemoryStore

STORE_CLASSES: Dict[str, Type[JsonMemoryStore]] = {
    "semantic": SemanticMemoryStore,
    "episodic": EpisodicMemoryStore,
    "procedural": ProceduralMemoryStore,
    "prospective": ProspectiveMemoryStore,
    "emotional": EmotionalMemoryStore,
    "working": WorkingMemoryStore,
}


def create_store(memory_type: str, workspace_dir: PathLike) -> JsonMemoryStore:
    """Instantiate the store for ``memory_type``."""
    store_class = STORE_CLASSES.get(memory_type)
    if store_class is None:
        raise UnknownMemoryTypeError(memory_type)
    return store_class(workspace_dir)


__all__ = [
    "JsonMemoryStore",
    "SemanticMemoryStore",
    "EpisodicMemoryStore",
    "ProceduralMemoryStore",
    "ProspectiveMemoryStore",
    "EmotionalMemoryStore",
    "WorkingMemoryStore",
    "STORE_CLASSES",
    "create_store",
]
