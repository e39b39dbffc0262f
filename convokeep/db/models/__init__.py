"""
Models for the archive store, query options and operation results.
"""

from convokeep.db.models.models import Base, Conversation, ConversationTag
from convokeep.db.models.filters import ConversationFilter
from convokeep.db.models.results import StoreResult, BulkOperationResult, TagCount

__all__ = [
    "Base", "Conversation", "ConversationTag", "ConversationFilter",
    "StoreResult", "BulkOperationResult", "TagCount",
]
