"""
ChatGPT format converter.

ChatGPT stores conversations as a dict of nodes keyed by node ID
("mapping"), with parent/children links between nodes. The visible thread is
recovered by walking up from current_node to the root and then walking the
tree depth-first. Exports occasionally contain cross-links or cycles, so the
walk keeps a visited set and never recurses.
"""

import logging
from typing import Any, Dict, List, Optional

from convokeep.db.importers.base import BaseConverter

logger = logging.getLogger(__name__)

METADATA = {
    'name': 'ChatGPT',
    'description': 'ChatGPT JSON export (conversations.json)',
    'required_fields': ['mapping'],
}


class ChatGptConverter(BaseConverter):
    """Converter for ChatGPT's node-based mapping structure."""

    source = 'chatgpt'

    def convert(self, conversation: Dict[str, Any]) -> Dict[str, Any]:
        """
        Convert a ChatGPT conversation to the unified schema.

        Args:
            conversation: ChatGPT conversation with 'mapping' and 'current_node'

        Returns:
            Unified conversation dict
        """
        messages = self.extract_messages(conversation)

        return {
            'conversation_id': self.conversation_key(conversation.get('conversation_id'),
                                                     conversation.get('id')),
            'title': self.default_title(conversation.get('title')),
            'created_at': self.format_timestamp(conversation.get('create_time')),
            'updated_at': self.format_timestamp(conversation.get('update_time')),
            'source': self.source,
            'model': self.extract_model(conversation),
            'messages': messages,
            'metadata': {
                'is_archived': conversation.get('is_archived'),
                'default_model_slug': conversation.get('default_model_slug'),
                'original_id': conversation.get('id'),
            },
        }

    def extract_messages(self, conversation: Dict[str, Any]) -> List[Dict[str, Any]]:
        """
        Extract messages in conversational order.

        Falls back to a timestamp sort over the whole mapping when the tree
        walk finds nothing (missing root, or current_node not connected).
        """
        mapping = conversation.get('mapping')
        if not isinstance(mapping, dict) or not mapping:
            return []

        root_id = self.find_root(mapping, conversation.get('current_node'))
        messages = self.traverse_messages(root_id, mapping) if root_id is not None else []

        if not messages:
            logger.debug(f"Tree walk found no messages for conversation {conversation.get('id')}, using fallback")
            messages = self.fallback_extract_messages(mapping)

        return messages

    @staticmethod
    def find_root(mapping: Dict[str, Any], current_node: Optional[str]) -> Optional[str]:
        """
        Walk parent pointers from current_node until the parent is missing.

        Returns None when current_node itself is not in the mapping.
        """
        if current_node is None or current_node not in mapping:
            return None

        root_id = current_node
        seen = {root_id}
        while True:
            node = mapping.get(root_id)
            parent = node.get('parent') if isinstance(node, dict) else None
            if parent is None or parent not in mapping or parent in seen:
                return root_id
            seen.add(parent)
            root_id = parent

    def traverse_messages(self, root_id: str, mapping: Dict[str, Any]) -> List[Dict[str, Any]]:
        """
        Depth-first pre-order walk from root_id, children in listed order.

        Uses an explicit stack; every node is emitted at most once.
        """
        messages = []
        visited = set()
        stack = [root_id]

        while stack:
            node_id = stack.pop()
            if node_id in visited or node_id not in mapping:
                continue
            visited.add(node_id)

            node = mapping[node_id]
            if not isinstance(node, dict):
                continue

            message = node.get('message')
            if isinstance(message, dict):
                messages.append(self._build_message(node_id, message))

            children = node.get('children')
            if isinstance(children, list):
                # Reversed so the first child is popped first
                stack.extend(child for child in reversed(children)
                             if isinstance(child, str) and child not in visited)

        return messages

    def fallback_extract_messages(self, mapping: Dict[str, Any]) -> List[Dict[str, Any]]:
        """Collect every node with a message payload and sort by created_at."""
        messages = [
            self._build_message(node_id, node['message'])
            for node_id, node in mapping.items()
            if isinstance(node, dict) and isinstance(node.get('message'), dict)
        ]
        messages.sort(key=lambda m: m['created_at'])
        return messages

    def _build_message(self, node_id: str, message: Dict[str, Any]) -> Dict[str, Any]:
        author = message.get('author') if isinstance(message.get('author'), dict) else {}
        msg_metadata = message.get('metadata') if isinstance(message.get('metadata'), dict) else {}

        metadata = {
            'model_slug': msg_metadata.get('model_slug'),
            'weight': message.get('weight'),
            'status': message.get('status'),
        }

        return {
            'id': message.get('id') or node_id,
            'role': self.normalize_role(author.get('role')),
            'content': self._extract_content(message.get('content')),
            'created_at': self.format_timestamp(message.get('create_time')),
            'metadata': {k: v for k, v in metadata.items() if v is not None},
        }

    @staticmethod
    def _extract_content(content: Any) -> str:
        if not isinstance(content, dict):
            return ''

        parts = content.get('parts')
        if not isinstance(parts, list):
            # Code/execution output nodes carry a plain 'text' field instead of parts
            text = content.get('text')
            return text if isinstance(text, str) else ''

        texts = []
        for part in parts:
            if isinstance(part, str):
                texts.append(part)
            elif isinstance(part, dict) and isinstance(part.get('text'), str):
                texts.append(part['text'])
        return '\n'.join(texts)

    def extract_model(self, conversation: Dict[str, Any]) -> str:
        """Message-level model_slug, then default_model_slug, then 'gpt-unknown'."""
        mapping = conversation.get('mapping')
        if isinstance(mapping, dict):
            for node in mapping.values():
                message = node.get('message') if isinstance(node, dict) else None
                if not isinstance(message, dict):
                    continue
                msg_metadata = message.get('metadata')
                if isinstance(msg_metadata, dict) and msg_metadata.get('model_slug'):
                    return msg_metadata['model_slug']

        return conversation.get('default_model_slug') or 'gpt-unknown'
