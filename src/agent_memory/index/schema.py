"""
SQLite schema for the memory search index.

Four logical tables:
- files: one row per indexed memory file, the change-detection watermark
- chunks: one searchable row per memory, with its serialized embedding
- fts_memory: FTS5 mirror of chunk text for lexical (bm25) ranking
- embedding_cache: vectors keyed by content hash + model
"""

import logging
import re
from contextlib import contextmanager
from typing import Iterator

from sqlalchemy import BigInteger, Column, Engine, Index, Integer, String, Text, text
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session, declarative_base

logger = logging.getLogger(__name__)

Base = declarative_base()

_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


class FileDB(Base):
    """SQLAlchemy model for an indexed memory file."""

    __tablename__ = "files"

    path = Column(String, primary_key=True)
    source = Column(String, nullable=False, default="memory")
    hash = Column(String, nullable=False)
    mtime = Column(BigInteger, nullable=False)  # st_mtime_ns
    size = Column(Integer, nullable=False)


class ChunkDB(Base):
    """SQLAlchemy model for one indexed memory."""

    __tablename__ = "chunks"

    id = Column(String, primary_key=True)
    path = Column(String, nullable=False)
    source = Column(String, nullable=False, default="memory")
    start_line = Column(Integer, nullable=False)
    end_line = Column(Integer, nullable=False)
    hash = Column(String, nullable=False)
    model = Column(String, nullable=False, default="")
    text = Column(Text, nullable=False)
    embedding = Column(Text, nullable=False, default="[]")
    updated_at = Column(BigInteger, nullable=False)

    __table_args__ = (
        Index("idx_chunks_path", "path"),
        Index("idx_chunks_source", "source"),
    )


class EmbeddingCacheDB(Base):
    """SQLAlchemy model for a cached embedding."""

    __tablename__ = "embedding_cache"

    hash = Column(String, primary_key=True)
    model = Column(String, primary_key=True)
    embedding = Column(Text, nullable=False)
    dims = Column(Integer, nullable=False)
    updated_at = Column(BigInteger, nullable=False, index=True)


def validate_table_name(name: str) -> str:
    """FTS table names are interpolated into SQL, so only plain identifiers are allowed."""
    if not _IDENTIFIER.match(name):
        raise ValueError(f"Invalid FTS table name: {name!r}")
    return name


def create_schema(engine: Engine, fts_table: str, fts_enabled: bool = True) -> bool:
    """
    Create index tables if they don't exist.

    Returns:
        Whether the FTS5 lexical table is available. SQLite builds without
        FTS5 raise OperationalError here; that is logged and lexical search
        is disabled rather than failing.
    """
    Base.metadata.create_all(engine)
    logger.info(f"Index tables created/verified ({engine.url})")

    if not fts_enabled:
        return False

    table = validate_table_name(fts_table)
    try:
        with engine.begin() as conn:
            conn.execute(
                text(
                    f"CREATE VIRTUAL TABLE IF NOT EXISTS {table} USING fts5("
                    "text, id UNINDEXED, path UNINDEXED, source UNINDEXED, "
                    "start_line UNINDEXED, end_line UNINDEXED, model UNINDEXED)"
                )
            )
    except OperationalError as e:
        logger.warning(f"FTS5 unavailable, lexical search disabled: {e}")
        return False

    return True


@contextmanager
def session_scope(engine: Engine) -> Iterator[Session]:
    """Context manager for database sessions with automatic commit/rollback."""
    session = Session(engine)
    try:
        yield session
        session.commit()
    except Exception as e:
        session.rollback()
        logger.error(f"Database error: {e}")
        raise
    finally:
        session.close()
