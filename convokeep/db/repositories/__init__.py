"""
Repository pattern implementation for the archive store.
"""

from convokeep.db.repositories.base_repository import BaseRepository
from convokeep.db.repositories.conversation_repository import ConversationRepository
from convokeep.db.repositories.unit_of_work import UnitOfWork, get_unit_of_work

__all__ = ["BaseRepository", "ConversationRepository", "UnitOfWork", "get_unit_of_work"]
