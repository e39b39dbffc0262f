"""
Data classes for structured results of archive operations.

Provides a consistent interface for ingestion, bulk mutation and tag
queries to return counts plus per-item error messages, so a caller can
retry only what failed.
"""

from dataclasses import dataclass, field
from typing import List


@dataclass
class StoreResult:
    """Result of a store_conversations call."""

    total_stored: int = 0
    """Number of conversations written (new + updated)."""

    new_conversations: int = 0
    """Number of conversations inserted."""

    updated_conversations: int = 0
    """Number of conversations that replaced an existing record."""

    failed: int = 0
    """Number of input records rejected during conversion."""

    errors: List[str] = field(default_factory=list)
    """Error messages for rejected records."""

    def __str__(self) -> str:
        """Return a user-friendly summary of the store result."""
        if self.total_stored == 0 and self.failed == 0:
            return "No conversations stored"

        parts = []
        if self.new_conversations > 0:
            parts.append(f"Added {self.new_conversations} conversations")
        if self.updated_conversations > 0:
            parts.append(f"Updated {self.updated_conversations} conversations")
        if self.failed > 0:
            parts.append(f"Failed to import {self.failed} conversations")

        return " | ".join(parts)

    def to_dict(self):
        """Convert to dictionary for JSON serialization."""
        return {
            "total_stored": self.total_stored,
            "new_conversations": self.new_conversations,
            "updated_conversations": self.updated_conversations,
            "failed": self.failed,
            "errors": self.errors,
            "summary": str(self),
        }


@dataclass
class BulkOperationResult:
    """Result of a bulk update or bulk delete."""

    operation: str
    succeeded: int = 0
    failed: int = 0
    errors: List[str] = field(default_factory=list)

    @property
    def updated(self) -> int:
        return self.succeeded

    @property
    def deleted(self) -> int:
        return self.succeeded

    def record_success(self):
        self.succeeded += 1

    def record_failure(self, message: str):
        self.failed += 1
        self.errors.append(message)

    def to_dict(self):
        return {
            self.operation: self.succeeded,
            "failed": self.failed,
            "errors": self.errors,
        }


@dataclass(frozen=True)
class TagCount:
    """A tag and the number of conversations carrying it."""

    tag: str
    count: int

    def to_dict(self):
        return {"tag": self.tag, "count": self.count}
