"""
Generic fallback converter for unrecognized shapes.

Accepts a bare list of message-like dicts or a dict with a messages list and
fills every required field with a best-effort default, so no input can make
ingestion fail outright. A dict that names a conversation but has no
messages key is a partial record and only carries the fields it has.
"""

from typing import Any, Dict, List

from convokeep.db.importers.base import BaseConverter
from convokeep.db.importers.native import dedupe_tags

METADATA = {
    'name': 'Generic',
    'description': 'Any list of messages, or an object with a messages list',
    'required_fields': [],
}


class GenericConverter(BaseConverter):
    """Fallback converter for unknown formats."""

    source = 'unknown'

    def convert(self, conversation: Any) -> Dict[str, Any]:
        if isinstance(conversation, list):
            return self.convert_message_array(conversation)

        if not isinstance(conversation, dict):
            conversation = {}
        return self.convert_message_object(conversation)

    def convert_message_array(self, messages: List[Any]) -> Dict[str, Any]:
        """Wrap a bare list of messages in a new conversation."""
        now = self.now()
        return {
            'conversation_id': self.generate_id('conv'),
            'title': 'Imported Conversation',
            'created_at': now,
            'updated_at': now,
            'source': self.source,
            'model': '',
            'messages': self._convert_messages(messages),
            'metadata': {},
        }

    def convert_message_object(self, conversation: Dict[str, Any]) -> Dict[str, Any]:
        if self.is_partial_record(conversation):
            return self.convert_partial_record(conversation)

        messages = conversation.get('messages')

        unified = {
            'conversation_id': self.conversation_key(conversation.get('conversation_id'),
                                                     conversation.get('id')),
            'title': self.default_title(conversation.get('title') or conversation.get('name')),
            'created_at': self.format_timestamp(conversation.get('created_at') or conversation.get('create_time')),
            'updated_at': self.format_timestamp(conversation.get('updated_at') or conversation.get('update_time')),
            'source': self.source,
            'model': conversation.get('model') or 'unknown',
            'messages': self._convert_messages(messages if isinstance(messages, list) else []),
            'metadata': {},
        }

        self._carry_organization_fields(conversation, unified)
        return unified

    @staticmethod
    def is_partial_record(conversation: Dict[str, Any]) -> bool:
        """An object naming a conversation but carrying no messages key."""
        has_key = conversation.get('conversation_id') or conversation.get('id')
        return bool(has_key) and 'messages' not in conversation

    def convert_partial_record(self, conversation: Dict[str, Any]) -> Dict[str, Any]:
        """
        Convert a record like {conversation_id, starred} for restoring fields.

        Only the fields the record carries are emitted (plus the key and a
        title), so an update keeps the stored messages, timestamps, source,
        model and metadata.
        """
        unified = {
            'conversation_id': self.conversation_key(conversation.get('conversation_id'),
                                                     conversation.get('id')),
            'title': self.default_title(conversation.get('title') or conversation.get('name')),
        }

        created_at = conversation.get('created_at') or conversation.get('create_time')
        if created_at:
            unified['created_at'] = self.format_timestamp(created_at)
        updated_at = conversation.get('updated_at') or conversation.get('update_time')
        if updated_at:
            unified['updated_at'] = self.format_timestamp(updated_at)
        if conversation.get('model'):
            unified['model'] = conversation['model']

        self._carry_organization_fields(conversation, unified)
        return unified

    @staticmethod
    def _carry_organization_fields(conversation: Dict[str, Any], unified: Dict[str, Any]) -> None:
        if 'tags' in conversation:
            unified['tags'] = dedupe_tags(conversation['tags'])
        for field in ('starred', 'archived'):
            if field in conversation:
                unified[field] = bool(conversation[field])

    def _convert_messages(self, messages: List[Any]) -> List[Dict[str, Any]]:
        converted = []
        for msg in messages:
            if not isinstance(msg, dict):
                continue
            content = msg.get('content') or msg.get('text') or ''
            converted.append({
                'id': msg.get('id') or self.generate_id('msg'),
                'role': self.normalize_role(msg.get('role')),
                'content': content if isinstance(content, str) else str(content),
                'created_at': self.format_timestamp(msg.get('created_at') or msg.get('timestamp')),
                'metadata': {},
            })
        return converted
