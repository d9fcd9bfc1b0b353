"""
Degradation-aware results.

Soft failures in this package never unwind the caller. Instead an operation
returns an ``Outcome`` whose value is still usable, tagged with the reason
it is degraded.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Generic, Optional, TypeVar

T = TypeVar("T")


class DegradedReason(str, Enum):
    PROVIDER_UNAVAILABLE = "provider_unavailable"
    PROVIDER_FAILED = "provider_failed"
    LEXICAL_UNAVAILABLE = "lexical_unavailable"
    STORAGE_UNREADABLE = "storage_unreadable"
    STORAGE_UNWRITABLE = "storage_unwritable"


@dataclass
class Outcome(Generic[T]):
    value: T
    degraded: Optional[DegradedReason] = None

    @property
    def ok(self) -> bool:
        return self.degraded is None

    @classmethod
    def degrade(cls, value: T, reason: DegradedReason) -> "Outcome[T]":
        return cls(value=value, degraded=reason)
