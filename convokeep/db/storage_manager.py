"""
Storage manager for the conversation archive.

Single entry point for callers: owns the connector, opens a unit of work per
call and delegates to ConversationRepository. The store is initialized
lazily on first use.
"""

import logging
from dataclasses import replace
from typing import Any, Callable, Dict, List, Optional, Union

from convokeep.db.database import StorageConnector
from convokeep.db.importers.pipeline import ConversionPipeline
from convokeep.db.models.filters import ConversationFilter
from convokeep.db.models.results import BulkOperationResult, StoreResult, TagCount
from convokeep.db.repositories.unit_of_work import get_unit_of_work
from convokeep.db.services.backup_service import BackupService
from convokeep.db.services.pagination_service import PaginationService

logger = logging.getLogger(__name__)


class StorageManager:
    """
    Facade over the archive store.

    Every public method initializes the store on first use, so callers never
    need to call init() themselves.
    """

    def __init__(self, database_url: Optional[str] = None,
                 connector: Optional[StorageConnector] = None,
                 pipeline: Optional[ConversionPipeline] = None):
        self.connector = connector or StorageConnector(database_url)
        self.pipeline = pipeline or ConversionPipeline()
        self.pagination_service = PaginationService()
        self.backup_service = BackupService()
        self._initialized = False

    def init(self) -> None:
        """Open the store and bring its schema up to date. Safe to call repeatedly."""
        if self._initialized:
            return
        self.connector.connect()
        self._initialized = True
        logger.info(f"Storage initialized (schema revision {self.connector.get_schema_version()})")

    def _unit_of_work(self):
        self.init()
        return get_unit_of_work(self.connector, pipeline=self.pipeline)

    # ===== INGESTION =====

    def store_conversations(self, conversations: Any,
                            on_progress: Optional[Callable[[int, int, int], None]] = None) -> StoreResult:
        with self._unit_of_work() as uow:
            return uow.conversations.store_conversations(conversations, on_progress=on_progress)

    # ===== QUERIES =====

    def get_conversations(self, filters: Union[ConversationFilter, Dict[str, Any], None] = None):
        """
        List one page of conversations.

        Returns:
            {"conversations": [...], "pagination": {...}}, or the match count
            when count_only is set
        """
        filters = ConversationFilter.from_value(filters)

        with self._unit_of_work() as uow:
            if filters.count_only:
                return uow.conversations.count_conversations(filters)

            conversations = uow.conversations.get_conversations(filters)
            total = uow.conversations.count_conversations(replace(filters, count_only=True))

        per_page = filters.limit if filters.limit and filters.limit > 0 else max(total, 1)
        page = filters.page or (filters.effective_offset // per_page) + 1

        return {
            "conversations": conversations,
            "pagination": self.pagination_service.calculate_pagination(total, page, per_page),
        }

    def get_conversation_by_id(self, conversation_id: str) -> Optional[Dict[str, Any]]:
        with self._unit_of_work() as uow:
            return uow.conversations.get_conversation_by_id(conversation_id)

    def get_conversations_by_tags(self, tags: List[str], match_all: bool = False) -> List[Dict[str, Any]]:
        with self._unit_of_work() as uow:
            return uow.conversations.get_conversations_by_tags(tags, match_all=match_all)

    def get_all_tags(self) -> List[TagCount]:
        with self._unit_of_work() as uow:
            return uow.conversations.get_all_tags()

    def has_conversations(self) -> bool:
        with self._unit_of_work() as uow:
            return uow.conversations.has_conversations()

    # ===== MUTATIONS =====

    def update_conversation_metadata(self, conversation_id: str, updates: Dict[str, Any]) -> Dict[str, Any]:
        with self._unit_of_work() as uow:
            return uow.conversations.update_conversation_metadata(conversation_id, updates)

    def bulk_update_conversations(self, conversation_ids: List[str], updates: Dict[str, Any]) -> BulkOperationResult:
        with self._unit_of_work() as uow:
            return uow.conversations.bulk_update_conversations(conversation_ids, updates)

    def bulk_delete_conversations(self, conversation_ids: List[str]) -> BulkOperationResult:
        with self._unit_of_work() as uow:
            return uow.conversations.bulk_delete_conversations(conversation_ids)

    def rename_tag(self, old_tag: str, new_tag: str) -> int:
        with self._unit_of_work() as uow:
            return uow.conversations.rename_tag(old_tag, new_tag)

    def delete_tag(self, tag: str) -> int:
        with self._unit_of_work() as uow:
            return uow.conversations.delete_tag(tag)

    def clear_database(self) -> None:
        with self._unit_of_work() as uow:
            uow.conversations.clear_database()

    # ===== BACKUP =====

    def export_backup(self) -> Dict[str, Any]:
        """Every stored conversation, oldest first, in an export envelope."""
        with self._unit_of_work() as uow:
            conversations = uow.conversations.get_all_conversations()

        logger.info(f"Exporting {len(conversations)} conversations")
        return self.backup_service.export_backup(conversations)

    def import_backup(self, data: Dict[str, Any],
                      on_progress: Optional[Callable[[int, int, int], None]] = None) -> StoreResult:
        """
        Store the conversations of an export envelope.

        Raises:
            ValidationError: If the envelope is invalid
        """
        conversations = self.backup_service.extract_conversations(data)
        return self.store_conversations(conversations, on_progress=on_progress)

    def close(self) -> None:
        """Release the store's connections; the next call reopens it."""
        self.connector.dispose()
        self._initialized = False
