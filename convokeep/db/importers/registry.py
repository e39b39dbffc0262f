"""
Format detection and converter registry.

Provides format detection for the supported chat export formats and a
registry mapping each format name to its converter class.
"""

from typing import Any, Dict, Type

from convokeep.db.importers import chatgpt, claude, generic, native
from convokeep.db.importers.base import BaseConverter

NATIVE = 'native'
CHATGPT = 'chatgpt'
CLAUDE = 'claude'
GENERIC = 'generic'


class FormatDetector:
    """
    Classify one raw parsed JSON value.

    Format signatures, checked in this order (first match wins):
    - native:  conversation_id, source, created_at present and messages is a list
    - chatgpt: mapping is a dict and title or create_time present
    - claude:  chat_messages is a list and uuid or name present
    - generic: anything else, including None and non-dict values
    """

    def detect_format(self, conversation: Any) -> str:
        if not isinstance(conversation, dict):
            return GENERIC

        if self.is_native_format(conversation):
            return NATIVE
        elif self.is_chatgpt_format(conversation):
            return CHATGPT
        elif self.is_claude_format(conversation):
            return CLAUDE
        return GENERIC

    @staticmethod
    def is_native_format(conversation: Dict[str, Any]) -> bool:
        return ('conversation_id' in conversation
                and 'source' in conversation
                and 'created_at' in conversation
                and isinstance(conversation.get('messages'), list))

    @staticmethod
    def is_chatgpt_format(conversation: Dict[str, Any]) -> bool:
        # title can be None in real exports; presence is what matters
        return (isinstance(conversation.get('mapping'), dict)
                and ('title' in conversation or 'create_time' in conversation))

    @staticmethod
    def is_claude_format(conversation: Dict[str, Any]) -> bool:
        # name can be an empty string in real exports
        return (isinstance(conversation.get('chat_messages'), list)
                and ('uuid' in conversation or 'name' in conversation))


_detector = FormatDetector()


def detect_format(conversation: Any) -> str:
    """Detect the format of a single raw conversation value."""
    return _detector.detect_format(conversation)


FORMAT_REGISTRY: Dict[str, Type[BaseConverter]] = {
    NATIVE: native.NativeConverter,
    CHATGPT: chatgpt.ChatGptConverter,
    CLAUDE: claude.ClaudeConverter,
    GENERIC: generic.GenericConverter,
}

CONVERTER_METADATA: Dict[str, Dict[str, Any]] = {
    NATIVE: native.METADATA,
    CHATGPT: chatgpt.METADATA,
    CLAUDE: claude.METADATA,
    GENERIC: generic.METADATA,
}
