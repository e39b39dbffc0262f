"""
Tests for metadata updates, bulk operations and tag management.
"""

from unittest.mock import patch

import pytest
from sqlalchemy.exc import IntegrityError

from convokeep.db.importers.errors import NotFoundError, ValidationError
from convokeep.db.models.models import ConversationTag
from convokeep.db.models.results import TagCount

OLD_TIMESTAMP = "2024-01-01T00:00:00.000Z"


def ids(items):
    return [item["conversation_id"] for item in items]


def index_rows(session):
    """All (conversation_id, tag) pairs in the tag index."""
    return sorted(
        (entry.conversation.conversation_id, entry.tag)
        for entry in session.query(ConversationTag)
    )


@pytest.fixture
def tagged(repository, native_factory):
    repository.store_conversations([
        native_factory("t1", "2024-01-01T00:00:00.000Z", tags=["work", "urgent"]),
        native_factory("t2", "2024-01-02T00:00:00.000Z", tags=["work"]),
        native_factory("t3", "2024-01-03T00:00:00.000Z", tags=["urgent", "personal"]),
        native_factory("t4", "2024-01-04T00:00:00.000Z"),
    ])
    return repository


class TestUpdateConversationMetadata:
    """Single-record metadata updates."""

    def test_update_flags_and_tags(self, tagged, session):
        updated = tagged.update_conversation_metadata("t4", {"starred": True, "tags": ["new", "new"]})

        assert updated["starred"] is True
        assert updated["tags"] == ["new"]
        assert ("t4", "new") in index_rows(session)

    def test_update_bumps_updated_at(self, tagged):
        updated = tagged.update_conversation_metadata("t1", {"archived": True})
        assert updated["updated_at"] > OLD_TIMESTAMP

    def test_empty_update_still_bumps_updated_at(self, tagged):
        assert tagged.update_conversation_metadata("t1", {})["updated_at"] > OLD_TIMESTAMP

    def test_unspecified_fields_are_untouched(self, tagged):
        updated = tagged.update_conversation_metadata("t1", {"starred": True})

        assert updated["tags"] == ["work", "urgent"]
        assert updated["archived"] is False

    def test_unknown_id_raises(self, tagged):
        with pytest.raises(NotFoundError) as exc_info:
            tagged.update_conversation_metadata("missing", {"starred": True})

        assert exc_info.value.conversation_id == "missing"
        assert exc_info.value.message == "Conversation not found: missing"

    def test_updates_must_be_a_mapping(self, tagged):
        with pytest.raises(ValidationError):
            tagged.update_conversation_metadata("t1", ["starred"])


class TestBulkOperations:
    """Bulk update and delete with per-id results."""

    def test_bulk_update(self, tagged):
        result = tagged.bulk_update_conversations(["t1", "t2"], {"archived": True})

        assert result.updated == 2
        assert result.failed == 0
        assert ids(tagged.get_conversations({"archived": True})) == ["t2", "t1"]

    def test_bulk_update_reports_unknown_ids(self, tagged):
        result = tagged.bulk_update_conversations(["t1", "ghost", "t3"], {"starred": True})

        assert result.updated == 2
        assert result.failed == 1
        assert result.errors == ["Conversation not found: ghost"]
        assert tagged.count_conversations({"starred": True}) == 2

    def test_bulk_update_write_error_is_isolated(self, tagged, session):
        """A failing id is rolled back to its savepoint; the rest are kept."""
        original = tagged._apply_metadata_updates

        def flaky(row, updates):
            if row.conversation_id == "t2":
                raise IntegrityError("UPDATE", {}, Exception("constraint failed"))
            original(row, updates)

        with patch.object(tagged, "_apply_metadata_updates", side_effect=flaky):
            result = tagged.bulk_update_conversations(["t1", "t2", "t3"], {"starred": True})

        assert result.updated == 2
        assert result.failed == 1
        assert result.errors[0].startswith("Error updating t2:")
        assert ids(tagged.get_conversations({"starred": True})) == ["t3", "t1"]

    def test_bulk_delete_one_valid_one_unknown(self, tagged, session):
        result = tagged.bulk_delete_conversations(["t1", "nope"])

        assert result.deleted == 1
        assert result.failed == 1
        assert result.errors == ["Conversation not found: nope"]
        assert tagged.get_conversation_by_id("t1") is None
        assert all(conversation_id != "t1" for conversation_id, _ in index_rows(session))

    def test_bulk_result_to_dict(self, tagged):
        result = tagged.bulk_delete_conversations(["t4"])
        assert result.to_dict() == {"deleted": 1, "failed": 0, "errors": []}


class TestTagQueries:
    """Tag lookups and aggregates."""

    def test_single_tag(self, tagged):
        assert ids(tagged.get_conversations_by_tags(["personal"])) == ["t3"]

    def test_or_query_is_deduplicated_in_tag_order(self, tagged):
        result = tagged.get_conversations_by_tags(["urgent", "work"])
        assert ids(result) == ["t1", "t3", "t2"]

    def test_and_query_requires_every_tag(self, tagged):
        """Only conversations whose tags are a superset of all requested tags match."""
        result = tagged.get_conversations_by_tags(["work", "urgent"], match_all=True)
        assert ids(result) == ["t1"]

    def test_empty_tags(self, tagged):
        assert tagged.get_conversations_by_tags([]) == []
        assert tagged.get_conversations_by_tags([], match_all=True) == []

    def test_unknown_tag(self, tagged):
        assert tagged.get_conversations_by_tags(["nothing"]) == []

    def test_get_all_tags_sorted_by_count_then_name(self, tagged):
        assert tagged.get_all_tags() == [
            TagCount("urgent", 2),
            TagCount("work", 2),
            TagCount("personal", 1),
        ]

    def test_get_all_tags_example(self, repository, native_factory):
        repository.store_conversations([
            native_factory("x", tags=["a", "b"]),
            native_factory("y", tags=["a"]),
            native_factory("z", tags=[]),
        ])

        assert [tag.to_dict() for tag in repository.get_all_tags()] == [
            {"tag": "a", "count": 2},
            {"tag": "b", "count": 1},
        ]


class TestTagMutations:
    """Renaming and deleting tags everywhere."""

    def test_rename_tag(self, tagged, session):
        count = tagged.rename_tag("urgent", "asap")

        assert count == 2
        assert tagged.get_conversation_by_id("t1")["tags"] == ["work", "asap"]
        assert tagged.get_conversations_by_tags(["urgent"]) == []
        assert ids(tagged.get_conversations_by_tags(["asap"])) == ["t1", "t3"]
        assert ("t1", "urgent") not in index_rows(session)

    def test_rename_onto_existing_tag_does_not_duplicate(self, tagged):
        count = tagged.rename_tag("urgent", "work")

        assert count == 2
        assert tagged.get_conversation_by_id("t1")["tags"] == ["work"]
        assert tagged.get_conversation_by_id("t3")["tags"] == ["personal", "work"]
        assert tagged.get_all_tags()[0] == TagCount("work", 3)

    def test_rename_bumps_updated_at(self, tagged):
        tagged.rename_tag("personal", "home")
        assert tagged.get_conversation_by_id("t3")["updated_at"] > "2024-01-03T00:00:00.000Z"

    def test_rename_to_empty_is_rejected(self, tagged):
        with pytest.raises(ValidationError):
            tagged.rename_tag("work", "")

    def test_delete_tag(self, tagged, session):
        count = tagged.delete_tag("work")

        assert count == 2
        assert tagged.get_conversation_by_id("t1")["tags"] == ["urgent"]
        assert tagged.get_conversation_by_id("t2")["tags"] == []
        assert all(tag != "work" for _, tag in index_rows(session))

    def test_delete_unknown_tag(self, tagged):
        assert tagged.delete_tag("ghost") == 0
