"""
Hybrid memory search.

Combines cosine similarity over stored chunk embeddings with SQLite FTS5
bm25 ranking. Either pass may be unavailable (no provider, no FTS5); the
engine then answers from whatever remains, and as a last resort from plain
word overlap.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import Engine, bindparam, create_engine, func, text
from sqlalchemy.exc import SQLAlchemyError

from agent_memory.config import ResolvedSearchConfig
from agent_memory.embeddings.protocol import TextEmbedding
from agent_memory.embeddings.soft import embed_query_soft
from agent_memory.embeddings.vectors import cosine_similarity, parse_embedding
from agent_memory.exceptions import MemoryPathError
from agent_memory.index.indexer import MemoryIndexer
from agent_memory.index.models import IndexStatus, SearchResult, SyncReport
from agent_memory.index.schema import (
    ChunkDB,
    FileDB,
    create_schema,
    session_scope,
    validate_table_name,
)
from agent_memory.outcome import DegradedReason
from agent_memory.paths import PathLike

logger = logging.getLogger(__name__)

SNIPPET_CONTEXT = 50
SNIPPET_MAX_CHARS = 200


@dataclass
class _Candidate:
    path: str
    start_line: int
    end_line: int
    source: str
    text: str
    score: float

    @property
    def key(self) -> Tuple[str, int, int]:
        return (self.path, self.start_line, self.end_line)


def sanitize_fts_query(query: str) -> str:
    """
    Quote every whitespace-separated token so FTS5 treats it literally.

    The tokens are AND-ed. Returns "" for a blank query.
    """
    tokens = query.split()
    quoted = []
    for token in tokens:
        escaped = token.replace('"', '""').replace("'", "''")
        quoted.append(f'"{escaped}"')
    return " ".join(quoted)


def extract_snippet(content: str, query: str) -> str:
    """Window around the first occurrence of ``query``, else the leading text."""
    needle = query.strip().lower()
    position = content.lower().find(needle) if needle else -1

    if position >= 0:
        start = max(0, position - SNIPPET_CONTEXT)
        end = min(len(content), position + len(needle) + SNIPPET_CONTEXT)
        snippet = content[start:end]
        if start > 0:
            snippet = "..." + snippet
        if end < len(content):
            snippet = snippet + "..."
        return snippet

    if len(content) > SNIPPET_MAX_CHARS:
        return content[:SNIPPET_MAX_CHARS] + "..."
    return content


def normalize_bm25(ranks: List[float]) -> List[float]:
    """Map bm25 ranks (lower is better) onto [0, 1], best = 1, worst = 0."""
    if not ranks:
        return []
    best, worst = min(ranks), max(ranks)
    if worst == best:
        return [1.0 for _ in ranks]
    return [(worst - rank) / (worst - best) for rank in ranks]


class HybridSearchEngine:
    """
    Search over the memory index of one agent workspace.

    Example:
        engine = HybridSearchEngine(config, workspace_dir, embedding)
        engine.initialize()
        await engine.sync(reason="session_start")
        results = await engine.search("dark mode")
    """

    def __init__(
        self,
        config: ResolvedSearchConfig,
        workspace_dir: PathLike,
        embedding: Optional[TextEmbedding] = None,
    ):
        self.config = config
        self.workspace_dir = Path(workspace_dir)
        self.embedding = embedding
        self.fts_table = validate_table_name(config.store.fts_table)
        self.fts_available = False
        self.indexer: Optional[MemoryIndexer] = None
        self._engine: Optional[Engine] = None
        self.last_degraded: List[DegradedReason] = []

    @property
    def db_path(self) -> Path:
        return Path(self.config.store.path)

    @property
    def initialized(self) -> bool:
        return self._engine is not None

    def initialize(self) -> None:
        """Open the index database and create its schema."""
        if self._engine is not None:
            return

        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._engine = create_engine(f"sqlite:///{self.db_path}")
        self.fts_available = create_schema(
            self._engine, self.fts_table, fts_enabled=self.config.store.fts_enabled
        )
        self.indexer = MemoryIndexer(
            self._engine,
            self.config,
            self.workspace_dir,
            embedding=self.embedding,
            fts_available=self.fts_available,
        )
        logger.info(
            f"HybridSearchEngine initialized (db={self.db_path}, fts={self.fts_available})"
        )

    def close(self) -> None:
        if self._engine is not None:
            self._engine.dispose()
            self._engine = None
            self.indexer = None

    async def sync(self, reason: Optional[str] = None, force: bool = False) -> SyncReport:
        self.initialize()
        return await self.indexer.sync(reason=reason, force=force)

    # ------------------------------------------------------------------
    # Search
    # ------------------------------------------------------------------

    async def search(
        self,
        query: str,
        max_results: Optional[int] = None,
        min_score: Optional[float] = None,
        conversation_key: Optional[str] = None,
    ) -> List[SearchResult]:
        """
        Rank indexed memories against ``query``.

        Args:
            query: Free-text query
            max_results: Result cap (default from config)
            min_score: Minimum final score (default from config)
            conversation_key: Reserved for conversation-scoped search; ignored

        Returns:
            Results sorted by score descending, at most ``max_results`` long
        """
        self.initialize()
        cleaned = query.strip()
        if not cleaned:
            return []

        max_results = max_results if max_results is not None else self.config.query.max_results
        min_score = min_score if min_score is not None else self.config.query.min_score
        hybrid = self.config.query.hybrid

        self.last_degraded = []
        # An empty index is always synced first; on_search also picks up later edits
        if self.config.sync.on_search or not self._has_chunks():
            await self.sync(reason="search")

        outcome = await embed_query_soft(self.embedding, cleaned)
        query_vector = outcome.value
        if outcome.degraded:
            logger.debug(f"Query embedding degraded: {outcome.degraded.value}")
            self.last_degraded.append(outcome.degraded)

        candidate_limit = max(1, max_results) * hybrid.candidate_multiplier

        vector_hits: List[_Candidate] = []
        if query_vector:
            vector_hits = self._search_vector(query_vector, min_score)

        if hybrid.enabled:
            text_hits: List[_Candidate] = []
            if self.fts_available:
                text_hits = self._search_text(cleaned, candidate_limit)
            elif self.config.store.fts_enabled:
                self.last_degraded.append(DegradedReason.LEXICAL_UNAVAILABLE)
            results = self._merge(vector_hits, text_hits, min_score)
        else:
            results = vector_hits

        if not results and query_vector is None:
            results = self._search_word_overlap(cleaned, min_score)

        results.sort(key=lambda c: (-c.score, c.path, c.start_line))
        ranked = [
            SearchResult(
                path=c.path,
                start_line=c.start_line,
                end_line=c.end_line,
                score=c.score,
                snippet=extract_snippet(c.text, cleaned),
                source=c.source,
            )
            for c in results[:max_results]
        ]

        logger.debug(
            f"Search '{cleaned[:50]}': {len(ranked)} results "
            f"(vector={len(vector_hits)}, min_score={min_score})"
        )
        return ranked

    def _has_chunks(self) -> bool:
        try:
            with session_scope(self._engine) as session:
                return session.query(func.count(ChunkDB.id)).scalar() > 0
        except SQLAlchemyError as e:
            logger.warning(f"Failed to count indexed chunks: {e}")
            return False

    def _search_vector(self, query_vector: List[float], min_score: float) -> List[_Candidate]:
        """Every chunk whose raw similarity reaches ``min_score``, uncapped."""
        with session_scope(self._engine) as session:
            rows = (
                session.query(ChunkDB)
                .filter(ChunkDB.source.in_(self.config.sources))
                .all()
            )
            scored = []
            for row in rows:
                similarity = cosine_similarity(query_vector, parse_embedding(row.embedding))
                if similarity >= min_score:
                    scored.append(
                        _Candidate(
                            path=row.path,
                            start_line=row.start_line,
                            end_line=row.end_line,
                            source=row.source,
                            text=row.text,
                            score=similarity,
                        )
                    )

        return scored

    def _search_text(self, query: str, limit: int) -> List[_Candidate]:
        match = sanitize_fts_query(query)
        if not match:
            return []

        table = self.fts_table
        statement = text(
            f"SELECT path, source, start_line, end_line, text, bm25({table}) AS rank "
            f"FROM {table} WHERE {table} MATCH :query AND source IN :sources "
            "ORDER BY rank LIMIT :limit"
        ).bindparams(bindparam("sources", expanding=True))

        try:
            with self._engine.connect() as conn:
                rows = conn.execute(
                    statement,
                    {"query": match, "sources": list(self.config.sources), "limit": limit},
                ).fetchall()
        except SQLAlchemyError as e:
            logger.warning(f"Lexical search failed: {e}")
            self.last_degraded.append(DegradedReason.LEXICAL_UNAVAILABLE)
            return []

        scores = normalize_bm25([float(row.rank) for row in rows])
        return [
            _Candidate(
                path=row.path,
                start_line=int(row.start_line),
                end_line=int(row.end_line),
                source=row.source,
                text=row.text,
                score=score,
            )
            for row, score in zip(rows, scores)
        ]

    def _merge(
        self, vector_hits: List[_Candidate], text_hits: List[_Candidate], min_score: float
    ) -> List[_Candidate]:
        hybrid = self.config.query.hybrid
        vector_scores: Dict[Tuple[str, int, int], float] = {}
        text_scores: Dict[Tuple[str, int, int], float] = {}
        candidates: Dict[Tuple[str, int, int], _Candidate] = {}

        for hit in vector_hits:
            vector_scores[hit.key] = hit.score
            candidates.setdefault(hit.key, hit)
        for hit in text_hits:
            text_scores[hit.key] = hit.score
            candidates.setdefault(hit.key, hit)

        merged = []
        for key, candidate in candidates.items():
            score = (
                vector_scores.get(key, 0.0) * hybrid.vector_weight
                + text_scores.get(key, 0.0) * hybrid.text_weight
            )
            if score >= min_score:
                merged.append(
                    _Candidate(
                        path=candidate.path,
                        start_line=candidate.start_line,
                        end_line=candidate.end_line,
                        source=candidate.source,
                        text=candidate.text,
                        score=score,
                    )
                )
        return merged

    def _search_word_overlap(self, query: str, min_score: float) -> List[_Candidate]:
        """Score chunks by the fraction of query words they contain."""
        words = [w for w in query.lower().split() if w]
        if not words:
            return []

        results = []
        with session_scope(self._engine) as session:
            rows = (
                session.query(ChunkDB)
                .filter(ChunkDB.source.in_(self.config.sources))
                .all()
            )
            for row in rows:
                haystack = row.text.lower()
                score = sum(1 for w in words if w in haystack) / len(words)
                if score > 0 and score >= min_score:
                    results.append(
                        _Candidate(
                            path=row.path,
                            start_line=row.start_line,
                            end_line=row.end_line,
                            source=row.source,
                            text=row.text,
                            score=score,
                        )
                    )

        logger.debug(f"Word-overlap fallback matched {len(results)} chunks")
        return results

    # ------------------------------------------------------------------
    # Diagnostics and file access
    # ------------------------------------------------------------------

    def status(self) -> IndexStatus:
        """Report index counts and settings. Never raises."""
        files = chunks = 0
        db_error = None
        if self._engine is not None:
            try:
                with session_scope(self._engine) as session:
                    files = session.query(func.count(FileDB.path)).scalar() or 0
                    chunks = session.query(func.count(ChunkDB.id)).scalar() or 0
            except Exception as e:
                db_error = str(e)

        return IndexStatus(
            files=files,
            chunks=chunks,
            workspace_dir=str(self.workspace_dir),
            db_path=str(self.db_path),
            provider=self.config.provider,
            model=self.indexer.model_name if self.indexer else self.config.model,
            sources=list(self.config.sources),
            db_initialized=self._engine is not None,
            db_exists=self.db_path.exists(),
            fts_available=self.fts_available,
            db_error=db_error,
            degraded=list(self.last_degraded),
        )

    def read_file(
        self, rel_path: str, from_line: Optional[int] = None, lines: Optional[int] = None
    ) -> Dict[str, Any]:
        """
        Read a workspace file, optionally a slice of it.

        Args:
            rel_path: Path relative to the workspace root
            from_line: 1-based first line to return
            lines: Number of lines to return

        Raises:
            MemoryPathError: If the path resolves outside the workspace
            FileNotFoundError: If the file does not exist
        """
        root = self.workspace_dir.resolve()
        target = (root / rel_path).resolve()
        if target != root and root not in target.parents:
            raise MemoryPathError(f"Path escapes workspace: {rel_path}")
        if not target.is_file():
            raise FileNotFoundError(f"File not found: {rel_path}")

        content = target.read_text(encoding="utf-8")
        if from_line is None and lines is None:
            return {"text": content, "path": rel_path}

        all_lines = content.split("\n")
        start = max(1, from_line or 1)
        count = max(1, lines if lines is not None else len(all_lines))
        return {"text": "\n".join(all_lines[start - 1 : start - 1 + count]), "path": rel_path}
