"""
Memory indexer.

Reconciles the JSON memory files under ``{workspace}/memory`` with the
SQLite search index. The indexer is the only writer of file records,
chunks, FTS rows and cached embeddings; it never modifies memory files.
"""

import asyncio
import hashlib
import json
import logging
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Set

from sqlalchemy import Engine, text
from sqlalchemy.orm import Session

from agent_memory.config import ResolvedSearchConfig
from agent_memory.embeddings.protocol import TextEmbedding
from agent_memory.embeddings.soft import embed_documents_soft
from agent_memory.embeddings.vectors import parse_embedding, serialize_embedding
from agent_memory.index.formatting import render_memory_text
from agent_memory.index.models import SyncReport
from agent_memory.index.schema import (
    ChunkDB,
    EmbeddingCacheDB,
    FileDB,
    session_scope,
    validate_table_name,
)
from agent_memory.models import now_ms
from agent_memory.paths import PathLike, memory_dir, relative_memory_path

logger = logging.getLogger(__name__)

MEMORY_SOURCE = "memory"

# Store files that are never indexed
EXCLUDED_FILES = {"working.json"}


def content_hash(data: Any) -> str:
    if isinstance(data, str):
        data = data.encode("utf-8")
    return hashlib.sha256(data).hexdigest()


class MemoryIndexer:
    """
    Synchronizes memory files into the search index.

    Example:
        indexer = MemoryIndexer(engine, config, workspace_dir, embedding, fts_available=True)
        report = await indexer.sync(reason="manual")
    """

    def __init__(
        self,
        engine: Engine,
        config: ResolvedSearchConfig,
        workspace_dir: PathLike,
        embedding: Optional[TextEmbedding] = None,
        fts_available: bool = True,
    ):
        self.engine = engine
        self.config = config
        self.workspace_dir = Path(workspace_dir)
        self.embedding = embedding
        self.fts_available = fts_available
        self.fts_table = validate_table_name(config.store.fts_table)
        self._lock = asyncio.Lock()

    @property
    def model_name(self) -> str:
        if self.embedding is not None:
            return self.embedding.model_name
        return self.config.model

    async def sync(self, reason: Optional[str] = None, force: bool = False) -> SyncReport:
        """
        Re-index every changed memory file.

        Args:
            reason: Free-form label for logging (e.g. "session_start")
            force: Re-index files even when their mtime is unchanged

        Returns:
            A summary of the run. Per-file failures are counted, never raised.
        """
        async with self._lock:
            return await self._sync(reason, force)

    async def _sync(self, reason: Optional[str], force: bool) -> SyncReport:
        report = SyncReport(reason=reason)
        seen: Set[str] = set()

        for path in self._memory_files():
            rel_path = relative_memory_path(path.name)
            seen.add(rel_path)
            report.files_scanned += 1
            try:
                indexed = await self._sync_file(path, rel_path, force, report)
            except Exception as e:
                logger.warning(f"Failed to index {rel_path}: {e}")
                report.files_failed += 1
                continue

            if indexed:
                report.files_indexed += 1
            else:
                report.files_skipped += 1

        try:
            report.files_removed = self._remove_stale_files(seen)
        except Exception as e:
            logger.warning(f"Failed to remove stale index entries: {e}")

        log = logger.info if report.files_indexed or report.files_removed else logger.debug
        log(
            f"Indexing sync completed ({reason or 'unspecified'}): "
            f"scanned={report.files_scanned}, indexed={report.files_indexed}, "
            f"skipped={report.files_skipped}, removed={report.files_removed}, "
            f"chunks={report.chunks_written}"
        )
        return report

    def _memory_files(self) -> List[Path]:
        directory = memory_dir(self.workspace_dir)
        if not directory.is_dir():
            return []
        return sorted(
            path
            for path in directory.glob("*.json")
            if path.is_file() and path.name not in EXCLUDED_FILES
        )

    async def _sync_file(
        self, path: Path, rel_path: str, force: bool, report: SyncReport
    ) -> bool:
        stat = path.stat()
        existing = self._get_file_record(rel_path)

        if not force and existing is not None and existing["mtime"] == stat.st_mtime_ns:
            logger.debug(f"Skipping unchanged {rel_path}")
            return False

        raw = path.read_bytes()
        file_hash = content_hash(raw)
        if not force and existing is not None and existing["hash"] == file_hash:
            # Touched but identical content: move the watermark, keep the chunks
            self._upsert_file_record(rel_path, file_hash, stat.st_mtime_ns, len(raw))
            logger.debug(f"Content unchanged for {rel_path}, refreshed mtime")
            return False

        records = self._load_records(raw, rel_path)
        if records is None:
            return False

        texts = [render_memory_text(record) for record in records]
        hashes = [content_hash(t) for t in texts]
        vectors = await self._embed(texts, hashes, report)
        model = self.model_name

        with session_scope(self.engine) as session:
            self._delete_path(session, rel_path)

            for position, record in enumerate(records):
                chunk = ChunkDB(
                    id=f"{rel_path}:{record['id']}:{position}",
                    path=rel_path,
                    source=MEMORY_SOURCE,
                    start_line=position,
                    end_line=position,
                    hash=hashes[position],
                    model=model,
                    text=texts[position],
                    embedding=serialize_embedding(vectors[position]),
                    updated_at=_record_timestamp(record),
                )
                session.add(chunk)

                if self.fts_available:
                    session.execute(
                        text(
                            f"INSERT INTO {self.fts_table} "
                            "(text, id, path, source, start_line, end_line, model) "
                            "VALUES (:text, :id, :path, :source, :start_line, :end_line, :model)"
                        ),
                        {
                            "text": chunk.text,
                            "id": chunk.id,
                            "path": rel_path,
                            "source": MEMORY_SOURCE,
                            "start_line": position,
                            "end_line": position,
                            "model": model,
                        },
                    )

            session.merge(
                FileDB(
                    path=rel_path,
                    source=MEMORY_SOURCE,
                    hash=file_hash,
                    mtime=stat.st_mtime_ns,
                    size=len(raw),
                )
            )

        report.chunks_written += len(records)
        logger.debug(f"Indexed {len(records)} memories from {rel_path}")
        return True

    def _load_records(self, raw: bytes, rel_path: str) -> Optional[List[Dict[str, Any]]]:
        if not raw.strip():
            return []
        try:
            data = json.loads(raw.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            logger.warning(f"Failed to load memories from {rel_path}: {e}")
            return None

        memories = data.get("memories") if isinstance(data, dict) else None
        if not isinstance(memories, list):
            return []
        return [m for m in memories if isinstance(m, dict) and m.get("id") and m.get("type")]

    # ------------------------------------------------------------------
    # Embeddings (cache first)
    # ------------------------------------------------------------------

    async def _embed(
        self, texts: List[str], hashes: List[str], report: SyncReport
    ) -> List[List[float]]:
        vectors: List[List[float]] = [[] for _ in texts]
        model = self.model_name
        use_cache = self.config.cache.enabled and self.embedding is not None

        cached: Dict[str, List[float]] = {}
        if use_cache:
            wanted = {h for h, t in zip(hashes, texts) if t.strip()}
            cached = self._cache_lookup(wanted, model)

        pending: Dict[str, str] = {}
        for position, (text_, hash_) in enumerate(zip(texts, hashes)):
            if hash_ in cached:
                vectors[position] = cached[hash_]
                report.cache_hits += 1
            elif text_.strip():
                pending.setdefault(hash_, text_)

        if not pending:
            return vectors

        outcome = await embed_documents_soft(self.embedding, list(pending.values()))
        if outcome.degraded and outcome.degraded not in report.degraded:
            report.degraded.append(outcome.degraded)

        fresh = {h: v for h, v in zip(pending.keys(), outcome.value) if v}
        for position, hash_ in enumerate(hashes):
            if hash_ in fresh:
                vectors[position] = fresh[hash_]

        if use_cache and fresh:
            try:
                self._cache_store(fresh, model)
            except Exception as e:
                logger.warning(f"Failed to update embedding cache: {e}")
        return vectors

    def _cache_lookup(self, hashes: Iterable[str], model: str) -> Dict[str, List[float]]:
        hashes = list(hashes)
        if not hashes:
            return {}
        with session_scope(self.engine) as session:
            rows = (
                session.query(EmbeddingCacheDB.hash, EmbeddingCacheDB.embedding)
                .filter(EmbeddingCacheDB.model == model, EmbeddingCacheDB.hash.in_(hashes))
                .all()
            )
            found = {row.hash: parse_embedding(row.embedding) for row in rows}

        logger.debug(f"Embedding cache: {len(found)}/{len(hashes)} hits")
        return {h: v for h, v in found.items() if v}

    def _cache_store(self, vectors: Dict[str, List[float]], model: str) -> None:
        now = now_ms()
        max_entries = self.config.cache.max_entries
        with session_scope(self.engine) as session:
            for hash_, vector in vectors.items():
                session.merge(
                    EmbeddingCacheDB(
                        hash=hash_,
                        model=model,
                        embedding=serialize_embedding(vector),
                        dims=len(vector),
                        updated_at=now,
                    )
                )
            session.flush()

            if max_entries:
                excess = session.query(EmbeddingCacheDB).count() - max_entries
                if excess > 0:
                    oldest = (
                        session.query(EmbeddingCacheDB.hash, EmbeddingCacheDB.model)
                        .order_by(EmbeddingCacheDB.updated_at.asc())
                        .limit(excess)
                        .all()
                    )
                    for row in oldest:
                        session.query(EmbeddingCacheDB).filter(
                            EmbeddingCacheDB.hash == row.hash,
                            EmbeddingCacheDB.model == row.model,
                        ).delete()
                    logger.debug(f"Pruned {len(oldest)} embedding cache entries")

    # ------------------------------------------------------------------
    # File records
    # ------------------------------------------------------------------

    def _get_file_record(self, rel_path: str) -> Optional[Dict[str, Any]]:
        with session_scope(self.engine) as session:
            record = session.get(FileDB, rel_path)
            if record is None:
                return None
            return {"hash": record.hash, "mtime": record.mtime, "size": record.size}

    def _upsert_file_record(self, rel_path: str, file_hash: str, mtime: int, size: int) -> None:
        with session_scope(self.engine) as session:
            session.merge(
                FileDB(path=rel_path, source=MEMORY_SOURCE, hash=file_hash, mtime=mtime, size=size)
            )

    def _delete_path(self, session: Session, rel_path: str) -> None:
        session.query(ChunkDB).filter(ChunkDB.path == rel_path).delete(synchronize_session=False)
        if self.fts_available:
            session.execute(
                text(f"DELETE FROM {self.fts_table} WHERE path = :path"), {"path": rel_path}
            )

    def _remove_stale_files(self, seen: Set[str]) -> int:
        """Drop index entries for memory files that no longer exist."""
        with session_scope(self.engine) as session:
            stale = [
                row.path
                for row in session.query(FileDB.path).filter(FileDB.source == MEMORY_SOURCE).all()
                if row.path not in seen
            ]
            for rel_path in stale:
                self._delete_path(session, rel_path)
                session.query(FileDB).filter(FileDB.path == rel_path).delete()

        if stale:
            logger.info(f"Removed {len(stale)} stale memory files from the index")
        return len(stale)


def _record_timestamp(record: Dict[str, Any]) -> int:
    value = record.get("updatedAt", record.get("updated_at"))
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return int(value)
    return now_ms()
