"""Result models returned by the indexer and the search engine."""

from typing import List, Optional

from pydantic import BaseModel, Field

from agent_memory.outcome import DegradedReason


class SearchResult(BaseModel):
    """One ranked search hit; ``start_line``/``end_line`` locate the memory in its file."""

    path: str
    start_line: int
    end_line: int
    score: float
    snippet: str
    source: str = "memory"


class SyncReport(BaseModel):
    """Summary of one indexer run."""

    reason: Optional[str] = None
    files_scanned: int = 0
    files_indexed: int = 0
    files_skipped: int = 0
    files_removed: int = 0
    files_failed: int = 0
    chunks_written: int = 0
    cache_hits: int = 0
    degraded: List[DegradedReason] = Field(default_factory=list)


class IndexStatus(BaseModel):
    """Read-only diagnostics for an index; not used for correctness."""

    files: int
    chunks: int
    workspace_dir: str
    db_path: str
    provider: str
    model: str
    sources: List[str]
    db_initialized: bool
    db_exists: bool
    fts_available: bool = False
    db_error: Optional[str] = None
    # Reasons the most recent search ran degraded
    degraded: List[DegradedReason] = Field(default_factory=list)
