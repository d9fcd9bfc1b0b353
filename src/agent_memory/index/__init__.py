"""
SQLite-backed memory search index.

- MemoryIndexer: keeps chunks, FTS rows and cached embeddings in step with
  the memory files
- HybridSearchEngine: vector + bm25 ranking over the indexed memories
"""

from agent_memory.index.formatting import render_memory_text
from agent_memory.index.indexer import MemoryIndexer
from agent_memory.index.models import IndexStatus, SearchResult, SyncReport
from agent_memory.index.search import (
    HybridSearchEngine,
    extract_snippet,
    sanitize_fts_query,
)

__all__ = [
    "MemoryIndexer",
    "HybridSearchEngine",
    "SearchResult",
    "SyncReport",
    "IndexStatus",
    "render_memory_text",
    "extract_snippet",
    "sanitize_fts_query",
]
