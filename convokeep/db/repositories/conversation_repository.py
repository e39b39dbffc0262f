"""
Repository for conversation operations.

Conversations are stored one row per conversation with messages embedded
as JSON. Tags live in the row's `tags` list and are mirrored, in the same
transaction, into the conversation_tags index table.
"""

import logging
from contextlib import contextmanager
from typing import Any, Callable, Dict, Iterable, List, Optional, Union

from sqlalchemy import String, asc, desc, func, or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, selectinload

from convokeep.config import BATCH_SIZE, DEFAULT_TITLE
from convokeep.db.importers.base import utc_now
from convokeep.db.importers.errors import NotFoundError, StorageError, ValidationError
from convokeep.db.importers.native import dedupe_tags
from convokeep.db.importers.pipeline import ConversionPipeline
from convokeep.db.models.filters import SORT_OLDEST, SOURCE_ALL, ConversationFilter
from convokeep.db.models.models import Conversation, ConversationTag
from convokeep.db.models.results import BulkOperationResult, StoreResult, TagCount
from convokeep.db.repositories.base_repository import BaseRepository

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int, int, int], None]

# Source filters that match loosely across source and model
SOURCE_INDICATORS = {
    'gpt': ('chatgpt', 'gpt', 'openai'),
    'claude': ('claude', 'anthropic'),
}

METADATA_FIELDS = ('tags', 'starred', 'archived')

# Columns for list views; message bodies are never loaded
_LIST_COLUMNS = (
    Conversation.id,
    Conversation.conversation_id,
    Conversation.title,
    Conversation.created_at,
    Conversation.updated_at,
    Conversation.source,
    Conversation.model,
    func.json_array_length(Conversation.messages).label('message_count'),
    Conversation.tags,
    Conversation.starred,
    Conversation.archived,
)


class ConversationRepository(BaseRepository[Conversation]):
    """Repository for conversation operations."""

    def __init__(self, session: Session, pipeline: Optional[ConversionPipeline] = None,
                 batch_size: int = BATCH_SIZE):
        super().__init__(session, Conversation)
        self.pipeline = pipeline or ConversionPipeline()
        self.batch_size = max(1, batch_size)

    @contextmanager
    def _storage_errors(self, action: str):
        """Roll back and re-raise SQLAlchemy failures as StorageError."""
        try:
            yield
        except SQLAlchemyError as e:
            self.session.rollback()
            logger.error(f"Failed to {action}: {e}")
            raise StorageError(f"Failed to {action}", original_error=e) from e

    # ===== Ingestion =====

    def store_conversations(self, conversations: Any,
                            on_progress: Optional[ProgressCallback] = None) -> StoreResult:
        """
        Convert and upsert conversations by conversation_id.

        Args:
            conversations: One raw conversation or a list of them, in any
                supported format
            on_progress: Optional callback(percent, processed, total), called
                after every batch

        Returns:
            StoreResult with new/updated counts and per-record errors

        Raises:
            ValidationError: If there is nothing to store
            StorageError: If a batch cannot be written (that batch is rolled back)
        """
        if not isinstance(conversations, list):
            conversations = [conversations]
        if not conversations:
            raise ValidationError("No conversations to store")

        unified, errors = self.pipeline.process_conversations_safely(conversations)
        result = StoreResult(failed=len(errors), errors=errors)

        total = len(unified)
        processed = 0
        for start in range(0, total, self.batch_size):
            batch = unified[start:start + self.batch_size]
            new_count, updated_count = self._store_batch(batch)

            result.new_conversations += new_count
            result.updated_conversations += updated_count
            processed += len(batch)

            if on_progress:
                on_progress(processed * 100 // total, processed, total)

        result.total_stored = processed
        logger.info(f"Stored {processed} conversations "
                    f"({result.new_conversations} new, {result.updated_conversations} updated, "
                    f"{result.failed} failed)")
        return result

    def _store_batch(self, batch: List[Dict[str, Any]]):
        """
        Write one batch in a single transaction.

        All natural keys are looked up with one query, every insert/update
        is flushed, and only then is the batch committed.
        """
        for conversation in batch:
            if not conversation.get('conversation_id'):
                conversation['conversation_id'] = self.pipeline.converters['generic'].generate_id('conv')
            # Keys are compared as strings; SQLite hands stored keys back as TEXT
            conversation['conversation_id'] = str(conversation['conversation_id'])

        new_count = 0
        updated_count = 0
        with self._storage_errors(f"store batch of {len(batch)} conversations"):
            keys = {conversation['conversation_id'] for conversation in batch}
            existing = {
                row.conversation_id: row
                for row in self.session.query(Conversation)
                .options(selectinload(Conversation.tag_entries))
                .filter(Conversation.conversation_id.in_(keys))
            }

            for conversation in batch:
                row = existing.get(conversation['conversation_id'])
                if row is not None:
                    # Update in place; the surrogate id is untouched
                    self._apply_record(row, conversation, is_new=False)
                    updated_count += 1
                else:
                    row = Conversation()
                    self._apply_record(row, conversation, is_new=True)
                    self.session.add(row)
                    existing[row.conversation_id] = row
                    new_count += 1

            self.session.flush()
            self.session.commit()

        return new_count, updated_count

    def _apply_record(self, row: Conversation, record: Dict[str, Any], is_new: bool) -> None:
        title = record.get('title')
        # Converters fill DEFAULT_TITLE for untitled input; an update keeps the stored title then
        if not is_new and row.title and title in (None, '', DEFAULT_TITLE):
            title = row.title
        elif not title:
            logger.warning(f"Conversation missing title: {record['conversation_id']}")
            title = DEFAULT_TITLE

        row.conversation_id = record['conversation_id']
        row.title = title
        row.updated_at = record.get('updated_at') or utc_now()

        # Content fields a partial record leaves out keep their stored values
        if is_new or 'created_at' in record:
            created_at = record.get('created_at')
            if not created_at:
                logger.warning(f"Conversation missing created_at: {record['conversation_id']}")
                created_at = utc_now()
            row.created_at = created_at
        if is_new or 'source' in record:
            row.source = record.get('source') or 'unknown'
        if is_new or 'model' in record:
            row.model = record.get('model') or ''
        if is_new or 'messages' in record:
            messages = record.get('messages')
            row.messages = list(messages) if isinstance(messages, list) else []
        if is_new or 'metadata' in record:
            metadata = record.get('metadata')
            row.conversation_metadata = metadata if isinstance(metadata, dict) else {}

        # Organization fields survive re-imports that do not carry them
        if 'tags' in record:
            self._set_tags(row, record['tags'])
        elif is_new:
            self._set_tags(row, [])
        for field in ('starred', 'archived'):
            if field in record:
                setattr(row, field, bool(record[field]))
            elif is_new:
                setattr(row, field, False)

    def _set_tags(self, row: Conversation, tags: Iterable[str]) -> None:
        """Set the row's tags (deduplicated) and sync the tag index rows."""
        tags = dedupe_tags(list(tags) if tags is not None else [])
        row.tags = tags

        current = {entry.tag: entry for entry in row.tag_entries}
        for tag, entry in current.items():
            if tag not in tags:
                row.tag_entries.remove(entry)
        for tag in tags:
            if tag not in current:
                row.tag_entries.append(ConversationTag(tag=tag))

    # ===== Queries =====

    def get_conversations(self, filters: Union[ConversationFilter, Dict[str, Any], None] = None):
        """
        List conversations ordered by created_at.

        Args:
            filters: ConversationFilter or dict of its fields

        Returns:
            List of list-view dicts (no message bodies), or the number of
            matches when count_only is set
        """
        filters = ConversationFilter.from_value(filters)
        if filters.count_only:
            return self.count_conversations(filters)

        order = desc if filters.sort_order != SORT_OLDEST else asc

        with self._storage_errors("retrieve conversations"):
            query = self._apply_filters(self.session.query(*_LIST_COLUMNS), filters)
            query = query.order_by(order(Conversation.created_at), order(Conversation.id))

            offset = filters.effective_offset
            if offset:
                query = query.offset(offset)
            if filters.has_limit:
                query = query.limit(filters.limit)

            return [self._list_item(row) for row in query.all()]

    def count_conversations(self, filters: Union[ConversationFilter, Dict[str, Any], None] = None) -> int:
        """Count conversations matching the filters without loading them."""
        filters = ConversationFilter.from_value(filters)

        with self._storage_errors("count conversations"):
            if not filters.has_predicates:
                return self.count()

            query = self._apply_filters(self.session.query(func.count(Conversation.id)), filters)
            return query.scalar() or 0

    def _apply_filters(self, query, filters: ConversationFilter):
        source_clause = self._source_clause(filters.source)
        if source_clause is not None:
            query = query.filter(source_clause)
        if filters.starred is not None:
            query = query.filter(Conversation.starred == bool(filters.starred))
        if filters.archived is not None:
            query = query.filter(Conversation.archived == bool(filters.archived))
        if filters.tag is not None:
            query = query.filter(Conversation.tag_entries.any(ConversationTag.tag == filters.tag))
        return query

    @staticmethod
    def _source_clause(source: Optional[str]):
        """
        'gpt' and 'claude' match indicator substrings in source or model,
        case-insensitively; any other value must equal source exactly.
        """
        if not source or source == SOURCE_ALL:
            return None

        indicators = SOURCE_INDICATORS.get(source)
        if indicators is None:
            return Conversation.source == source

        source_lower = func.lower(Conversation.source, type_=String)
        model_lower = func.lower(Conversation.model, type_=String)
        return or_(*[
            column.contains(indicator, autoescape=True)
            for indicator in indicators
            for column in (source_lower, model_lower)
        ])

    @staticmethod
    def _list_item(row) -> Dict[str, Any]:
        return {
            'id': row.id,
            'conversation_id': row.conversation_id,
            'title': row.title or DEFAULT_TITLE,
            'created_at': row.created_at,
            'updated_at': row.updated_at,
            'source': row.source,
            'model': row.model,
            'message_count': row.message_count or 0,
            'tags': list(row.tags or []),
            'starred': bool(row.starred),
            'archived': bool(row.archived),
        }

    def _get_by_conversation_id(self, conversation_id: str) -> Optional[Conversation]:
        return self.session.query(Conversation)\
            .filter(Conversation.conversation_id == conversation_id)\
            .first()

    def get_conversation_by_id(self, conversation_id: str) -> Optional[Dict[str, Any]]:
        """Get a full conversation (with messages) by its natural key, or None."""
        with self._storage_errors(f"retrieve conversation {conversation_id}"):
            conversation = self._get_by_conversation_id(conversation_id)
            return conversation.to_dict() if conversation else None

    def get_all_conversations(self) -> List[Dict[str, Any]]:
        """All full conversations, oldest first."""
        with self._storage_errors("retrieve all conversations"):
            rows = self.session.query(Conversation)\
                .order_by(asc(Conversation.created_at), asc(Conversation.id))\
                .all()
            return [row.to_dict() for row in rows]

    def has_conversations(self) -> bool:
        """Check if there are any conversations in the store."""
        with self._storage_errors("count conversations"):
            return bool(self.exists_any())

    def clear_database(self) -> None:
        """Delete every conversation and tag index row."""
        with self._storage_errors("clear database"):
            self.session.query(ConversationTag).delete(synchronize_session=False)
            deleted = self.session.query(Conversation).delete(synchronize_session=False)
            self.session.commit()
        logger.info(f"Cleared {deleted} conversations")

    # ===== Metadata mutations =====

    def _apply_metadata_updates(self, row: Conversation, updates: Dict[str, Any]) -> None:
        if 'tags' in updates:
            self._set_tags(row, updates['tags'] or [])
        if 'starred' in updates:
            row.starred = bool(updates['starred'])
        if 'archived' in updates:
            row.archived = bool(updates['archived'])
        row.updated_at = utc_now()

    @staticmethod
    def _check_updates(updates: Any) -> Dict[str, Any]:
        if not isinstance(updates, dict):
            raise ValidationError("Updates must be a mapping", field='updates')
        unknown = set(updates) - set(METADATA_FIELDS)
        if unknown:
            logger.debug(f"Ignoring unsupported update fields: {sorted(unknown)}")
        return updates

    def update_conversation_metadata(self, conversation_id: str, updates: Dict[str, Any]) -> Dict[str, Any]:
        """
        Update tags, starred and/or archived on one conversation.

        Always refreshes updated_at.

        Returns:
            The updated full conversation

        Raises:
            NotFoundError: If no conversation has this conversation_id
        """
        updates = self._check_updates(updates)

        with self._storage_errors(f"update conversation {conversation_id}"):
            row = self._get_by_conversation_id(conversation_id)
            if row is None:
                raise NotFoundError(conversation_id)

            self._apply_metadata_updates(row, updates)
            self.session.flush()
            self.session.commit()
            return row.to_dict()

    def bulk_update_conversations(self, conversation_ids: List[str], updates: Dict[str, Any]) -> BulkOperationResult:
        """
        Apply the same metadata updates to many conversations.

        Each id is attempted in its own savepoint inside one transaction, so
        one failure never aborts the others.
        """
        updates = self._check_updates(updates)
        result = BulkOperationResult('updated')

        for conversation_id in conversation_ids:
            try:
                with self.session.begin_nested():
                    row = self._get_by_conversation_id(conversation_id)
                    if row is None:
                        raise NotFoundError(conversation_id)
                    self._apply_metadata_updates(row, updates)
            except NotFoundError as e:
                result.record_failure(e.message)
            except SQLAlchemyError as e:
                logger.error(f"Error updating {conversation_id}: {e}")
                result.record_failure(f"Error updating {conversation_id}: {e}")
            else:
                result.record_success()

        with self._storage_errors("commit bulk update"):
            self.session.commit()

        logger.info(f"Bulk update: {result.succeeded} updated, {result.failed} failed")
        return result

    def bulk_delete_conversations(self, conversation_ids: List[str]) -> BulkOperationResult:
        """Delete many conversations; per-id failures are reported, not raised."""
        result = BulkOperationResult('deleted')

        for conversation_id in conversation_ids:
            try:
                with self.session.begin_nested():
                    row = self._get_by_conversation_id(conversation_id)
                    if row is None:
                        raise NotFoundError(conversation_id)
                    self.session.delete(row)
            except NotFoundError as e:
                result.record_failure(e.message)
            except SQLAlchemyError as e:
                logger.error(f"Error deleting {conversation_id}: {e}")
                result.record_failure(f"Error deleting {conversation_id}: {e}")
            else:
                result.record_success()

        with self._storage_errors("commit bulk delete"):
            self.session.commit()

        logger.info(f"Bulk delete: {result.succeeded} deleted, {result.failed} failed")
        return result

    # ===== Tags =====

    def get_conversations_by_tags(self, tags: List[str], match_all: bool = False) -> List[Dict[str, Any]]:
        """
        Find conversations by tag.

        Args:
            tags: Tags to look for
            match_all: If True and several tags are given, a conversation must
                carry all of them; otherwise any one is enough

        Returns:
            List of list-view dicts, without duplicates
        """
        if isinstance(tags, str):
            tags = [tags]
        if not tags:
            return []

        with self._storage_errors("retrieve conversations by tags"):
            if len(tags) == 1 or not match_all:
                results = []
                seen = set()
                for tag in tags:
                    rows = self.session.query(*_LIST_COLUMNS)\
                        .select_from(Conversation)\
                        .join(ConversationTag, ConversationTag.conversation_pk == Conversation.id)\
                        .filter(ConversationTag.tag == tag)\
                        .order_by(ConversationTag.id)\
                        .all()
                    for row in rows:
                        if row.conversation_id not in seen:
                            seen.add(row.conversation_id)
                            results.append(self._list_item(row))
                return results

            # The tag index cannot express intersection; scan and filter
            required = set(tags)
            rows = self.session.query(*_LIST_COLUMNS).order_by(Conversation.id).all()
            return [
                self._list_item(row) for row in rows
                if required.issubset(row.tags or [])
            ]

    def get_all_tags(self) -> List[TagCount]:
        """All tags with usage counts, most used first, then alphabetical."""
        with self._storage_errors("retrieve tags"):
            rows = self.session.query(ConversationTag.tag, func.count(ConversationTag.id))\
                .group_by(ConversationTag.tag)\
                .all()

        tag_counts = [TagCount(tag=tag, count=count) for tag, count in rows]
        tag_counts.sort(key=lambda tc: (-tc.count, tc.tag))
        return tag_counts

    def _conversations_with_tag(self, tag: str) -> List[Conversation]:
        return self.session.query(Conversation)\
            .options(selectinload(Conversation.tag_entries))\
            .filter(Conversation.tag_entries.any(ConversationTag.tag == tag))\
            .order_by(Conversation.id)\
            .all()

    def rename_tag(self, old_tag: str, new_tag: str) -> int:
        """
        Rename a tag on every conversation carrying it.

        The new tag is only added where it is not already present.

        Returns:
            Number of conversations updated
        """
        if not isinstance(new_tag, str) or not new_tag:
            raise ValidationError("New tag name must be a non-empty string", field='new_tag')

        with self._storage_errors(f"rename tag '{old_tag}'"):
            rows = self._conversations_with_tag(old_tag)
            now = utc_now()
            for row in rows:
                tags = [tag for tag in (row.tags or []) if tag != old_tag]
                if new_tag not in tags:
                    tags.append(new_tag)
                self._set_tags(row, tags)
                row.updated_at = now

            self.session.flush()
            self.session.commit()

        logger.info(f"Renamed tag '{old_tag}' to '{new_tag}' on {len(rows)} conversations")
        return len(rows)

    def delete_tag(self, tag: str) -> int:
        """
        Remove a tag from every conversation carrying it.

        Returns:
            Number of conversations updated
        """
        with self._storage_errors(f"delete tag '{tag}'"):
            rows = self._conversations_with_tag(tag)
            now = utc_now()
            for row in rows:
                self._set_tags(row, [t for t in (row.tags or []) if t != tag])
                row.updated_at = now

            self.session.flush()
            self.session.commit()

        logger.info(f"Deleted tag '{tag}' from {len(rows)} conversations")
        return len(rows)
