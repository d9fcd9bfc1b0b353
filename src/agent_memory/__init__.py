"""
agent-memory: Typed, file-backed memory for AI agents with hybrid search.

Core components:
- stores: One JSON file-backed store per memory kind (semantic, episodic,
  procedural, prospective, emotional, working)
- index: SQLite indexer and hybrid (vector + FTS5) search engine
- embeddings: Embedding provider protocol and adapters
- config: Search configuration and its resolution
- models: Memory data models
"""

__version__ = "0.1.0"

from agent_memory.config import (
    MemorySearchConfig,
    MemorySearchSettings,
    ResolvedSearchConfig,
    resolve_search_config,
)
from agent_memory.exceptions import AgentMemoryError, MemoryPathError, UnknownMemoryTypeError
from agent_memory.index import HybridSearchEngine, IndexStatus, MemoryIndexer, SearchResult, SyncReport
from agent_memory.memory_service import MemoryService
from agent_memory.models import (
    EmotionalMemory,
    EpisodicMemory,
    Memory,
    MemoryType,
    ProceduralMemory,
    ProspectiveMemory,
    SemanticMemory,
    WorkingMemory,
)
from agent_memory.outcome import DegradedReason, Outcome
from agent_memory.registry import SearchEngineRegistry

__all__ = [
    "__version__",
    # Models
    "Memory",
    "MemoryType",
    "SemanticMemory",
    "EpisodicMemory",
    "ProceduralMemory",
    "ProspectiveMemory",
    "EmotionalMemory",
    "WorkingMemory",
    # Search
    "MemorySearchConfig",
    "MemorySearchSettings",
    "ResolvedSearchConfig",
    "resolve_search_config",
    "HybridSearchEngine",
    "MemoryIndexer",
    "SearchResult",
    "SyncReport",
    "IndexStatus",
    "SearchEngineRegistry",
    # Errors and degradation
    "AgentMemoryError",
    "UnknownMemoryTypeError",
    "MemoryPathError",
    "DegradedReason",
    "Outcome",
    "MemoryService",
]
