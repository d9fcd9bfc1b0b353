"""Workspace layout for memory files and the search index."""

from pathlib import Path
from typing import Union

PathLike = Union[str, Path]

MEMORY_DIR_NAME = "memory"
INDEX_DIR_NAME = ".index"


def memory_dir(workspace_dir: PathLike) -> Path:
    return Path(workspace_dir) / MEMORY_DIR_NAME


def memory_store_path(workspace_dir: PathLike, memory_type: str) -> Path:
    return memory_dir(workspace_dir) / f"{memory_type}.json"


def relative_memory_path(file_name: str) -> str:
    """Index key for a memory file (always forward slashes)."""
    return f"{MEMORY_DIR_NAME}/{file_name}"


def default_index_path(workspace_dir: PathLike, agent_id: str) -> Path:
    return Path(workspace_dir) / INDEX_DIR_NAME / f"{agent_id}.sqlite"
