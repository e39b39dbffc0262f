"""
Base repository interface for common read helpers.
"""

from abc import ABC
from typing import Generic, TypeVar
from sqlalchemy.orm import Session

T = TypeVar('T')


class BaseRepository(ABC, Generic[T]):
    """Base repository interface with table-wide helpers."""

    def __init__(self, session: Session, model_class: type):
        self.session = session
        self.model_class = model_class

    def count(self) -> int:
        """Count total entities."""
        return self.session.query(self.model_class).count()

    def exists_any(self) -> bool:
        """Check if at least one entity exists."""
        return self.session.query(
            self.session.query(self.model_class).exists()
        ).scalar()
