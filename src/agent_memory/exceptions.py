"""Exceptions raised for caller mistakes.

Environmental failures (unreadable files, provider outages, missing FTS5)
are absorbed and reported through ``agent_memory.outcome`` instead.
"""


class AgentMemoryError(Exception):
    """Base class for agent-memory errors."""


class UnknownMemoryTypeError(AgentMemoryError, ValueError):
    """Raised when a memory type outside the known kinds is requested."""

    def __init__(self, memory_type: str):
        self.memory_type = memory_type
        super().__init__(f"Memory store not found for type: {memory_type}")


class MemoryPathError(AgentMemoryError, ValueError):
    """Raised when a relative path resolves outside the workspace."""
