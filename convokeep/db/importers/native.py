"""
Native (convokeep) format converter.

Native records come from our own backups and are already in the unified
schema, so this converter only validates and fills optional defaults.
"""

from typing import Any, Dict, List

from convokeep.db.importers.base import BaseConverter
from convokeep.db.importers.errors import ValidationError

METADATA = {
    'name': 'ConvoKeep',
    'description': 'ConvoKeep backup records (unified schema)',
    'required_fields': ['conversation_id', 'title', 'messages'],
}

# Fields carried through only when the record has them; absence means
# "keep whatever the store already has" on re-import.
ORGANIZATION_FIELDS = ('tags', 'starred', 'archived')


def dedupe_tags(tags: Any) -> List[str]:
    """Drop non-string and duplicate tags, keeping first-seen order."""
    if not isinstance(tags, (list, tuple, set)):
        return []
    seen = []
    for tag in tags:
        if isinstance(tag, str) and tag not in seen:
            seen.append(tag)
    return seen


class NativeConverter(BaseConverter):
    """Passthrough converter with validation."""

    source = 'convokeep'

    def convert(self, conversation: Dict[str, Any]) -> Dict[str, Any]:
        """
        Validate a native record and return it with defaults filled.

        Raises:
            ValidationError: If conversation_id, title or messages is missing
                or has the wrong type
        """
        self.validate(conversation)

        metadata = conversation.get('metadata')

        unified = {
            'conversation_id': conversation['conversation_id'],
            'title': conversation['title'],
            'created_at': self.format_timestamp(conversation.get('created_at')),
            'updated_at': self.format_timestamp(conversation.get('updated_at')),
            'source': conversation.get('source') or self.source,
            'model': conversation.get('model') or 'unknown',
            'messages': conversation['messages'],
            'metadata': metadata if isinstance(metadata, dict) else {},
        }

        if 'tags' in conversation:
            unified['tags'] = dedupe_tags(conversation['tags'])
        for field in ('starred', 'archived'):
            if field in conversation:
                unified[field] = bool(conversation[field])

        return unified

    @staticmethod
    def validate(conversation: Dict[str, Any]) -> None:
        conversation_id = conversation.get('conversation_id')
        if not isinstance(conversation_id, str) or not conversation_id:
            raise ValidationError("ConvoKeep conversation missing conversation_id", field='conversation_id')

        title = conversation.get('title')
        if not isinstance(title, str) or not title:
            raise ValidationError(
                f"ConvoKeep conversation {conversation_id} missing title", field='title'
            )

        if not isinstance(conversation.get('messages'), list):
            raise ValidationError(
                f"ConvoKeep conversation {conversation_id} missing messages array", field='messages'
            )
