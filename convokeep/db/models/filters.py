"""
Query options for listing conversations.
"""

from dataclasses import dataclass, fields
from typing import Any, Dict, Optional, Union

from convokeep.config import DEFAULT_PAGE_SIZE

SORT_NEWEST = 'newest'
SORT_OLDEST = 'oldest'
SOURCE_ALL = 'all'


@dataclass
class ConversationFilter:
    """Filter, sort and pagination options for ConversationRepository.get_conversations."""

    offset: int = 0
    limit: Optional[int] = DEFAULT_PAGE_SIZE  # None or negative means no limit
    page: Optional[int] = None  # 1-indexed; overrides offset when set
    source: str = SOURCE_ALL
    sort_order: str = SORT_NEWEST
    starred: Optional[bool] = None
    archived: Optional[bool] = None
    tag: Optional[str] = None
    count_only: bool = False

    @classmethod
    def from_value(cls, value: Union['ConversationFilter', Dict[str, Any], None]) -> 'ConversationFilter':
        """Build a filter from a filter, a dict of options (unknown keys ignored) or None."""
        if value is None:
            return cls()
        if isinstance(value, cls):
            return value

        known = {f.name for f in fields(cls)}
        return cls(**{key: val for key, val in value.items() if key in known})

    @property
    def effective_offset(self) -> int:
        if self.page is not None and self.limit and self.limit > 0:
            return max(0, (self.page - 1) * self.limit)
        return max(0, self.offset or 0)

    @property
    def has_limit(self) -> bool:
        return self.limit is not None and self.limit >= 0

    @property
    def has_predicates(self) -> bool:
        """True when any filter beyond source='all' is active."""
        return ((self.source or SOURCE_ALL) != SOURCE_ALL
                or self.starred is not None
                or self.archived is not None
                or self.tag is not None)
