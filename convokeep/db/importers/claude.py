"""
Claude format converter.

Claude stores conversations as a flat chat_messages list with sender and
text fields, so message order is simply list order.
"""

from typing import Any, Dict, List

from convokeep.db.importers.base import BaseConverter

METADATA = {
    'name': 'Claude',
    'description': 'Claude.ai JSON export (conversations.json)',
    'required_fields': ['chat_messages'],
}


class ClaudeConverter(BaseConverter):
    """Converter for Claude's chat_messages list format."""

    source = 'claude'

    def convert(self, conversation: Dict[str, Any]) -> Dict[str, Any]:
        """
        Convert a Claude conversation to the unified schema.

        Args:
            conversation: Claude conversation with uuid, name and chat_messages

        Returns:
            Unified conversation dict
        """
        account = conversation.get('account') if isinstance(conversation.get('account'), dict) else {}

        return {
            'conversation_id': self.conversation_key(conversation.get('uuid'),
                                                     conversation.get('conversation_id')),
            'title': self.default_title(conversation.get('name')),
            'created_at': self.format_timestamp(conversation.get('created_at')),
            'updated_at': self.format_timestamp(conversation.get('updated_at')),
            'source': self.source,
            'model': self.extract_model(conversation),
            'messages': self.extract_messages(conversation),
            'metadata': {
                'account_uuid': account.get('uuid'),
                'original_id': conversation.get('id'),
            },
        }

    def extract_messages(self, conversation: Dict[str, Any]) -> List[Dict[str, Any]]:
        chat_messages = conversation.get('chat_messages')
        if not isinstance(chat_messages, list):
            return []

        messages = []
        for msg_data in chat_messages:
            # Skip None entries and other junk
            if not isinstance(msg_data, dict):
                continue

            metadata = {}
            for key in ('attachments', 'files'):
                if msg_data.get(key):
                    metadata[key] = msg_data[key]

            messages.append({
                'id': msg_data.get('uuid') or self.generate_id('msg'),
                'role': self.normalize_role(msg_data.get('sender')),
                'content': self._extract_content(msg_data),
                'created_at': self.format_timestamp(msg_data.get('created_at')),
                'metadata': metadata,
            })

        return messages

    @staticmethod
    def _extract_content(msg_data: Dict[str, Any]) -> str:
        """Use 'text' when present, else join the text blocks of 'content'."""
        text = msg_data.get('text')
        if isinstance(text, str) and text:
            return text

        content = msg_data.get('content')
        if isinstance(content, list):
            return '\n'.join(
                item['text'] for item in content
                if isinstance(item, dict) and item.get('type') == 'text' and isinstance(item.get('text'), str)
            )

        return ''

    def extract_model(self, conversation: Dict[str, Any]) -> str:
        """Conversation metadata, then any message metadata, then 'claude-unknown'."""
        conv_metadata = conversation.get('metadata')
        if isinstance(conv_metadata, dict) and conv_metadata.get('model'):
            return conv_metadata['model']

        chat_messages = conversation.get('chat_messages')
        if isinstance(chat_messages, list):
            for msg_data in chat_messages:
                if not isinstance(msg_data, dict):
                    continue
                msg_metadata = msg_data.get('metadata')
                if isinstance(msg_metadata, dict) and msg_metadata.get('model'):
                    return msg_metadata['model']

        return 'claude-unknown'
