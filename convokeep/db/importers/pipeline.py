"""
Conversion pipeline.

Routes raw export values through the format detector to the matching
converter. Accepts a single value or a list of values.
"""

import logging
from typing import Any, Callable, Dict, List, Optional, Tuple

from convokeep.db.importers.errors import ValidationError
from convokeep.db.importers.registry import FORMAT_REGISTRY, FormatDetector
from convokeep.utils.ids import generate_unique_id

logger = logging.getLogger(__name__)


class ConversionPipeline:
    """Convert any supported conversation format to the unified schema."""

    def __init__(self, id_generator: Optional[Callable[[str], str]] = None):
        id_generator = id_generator or generate_unique_id
        self.format_detector = FormatDetector()
        self.converters = {
            name: converter_class(id_generator)
            for name, converter_class in FORMAT_REGISTRY.items()
        }

    def convert_to_unified_schema(self, conversation: Any) -> Dict[str, Any]:
        """
        Detect the format of one conversation and convert it.

        Raises:
            ValidationError: If a native record is malformed
        """
        format_type = self.format_detector.detect_format(conversation)
        logger.debug(f"Detected {format_type} format")
        return self.converters[format_type].convert(conversation)

    def process_conversations(self, conversations: Any) -> List[Dict[str, Any]]:
        """Convert a single conversation or a list of conversations."""
        if not isinstance(conversations, list):
            return [self.convert_to_unified_schema(conversations)]

        return [self.convert_to_unified_schema(conversation) for conversation in conversations]

    def process_conversations_safely(self, conversations: Any) -> Tuple[List[Dict[str, Any]], List[str]]:
        """
        Like process_conversations, but a malformed record is reported
        instead of aborting the rest.

        Returns:
            Tuple of (converted conversations, error messages)
        """
        if not isinstance(conversations, list):
            conversations = [conversations]

        converted = []
        errors = []
        for index, conversation in enumerate(conversations):
            try:
                converted.append(self.convert_to_unified_schema(conversation))
            except ValidationError as e:
                error_msg = f"Conversation {index}: {e.message}"
                logger.warning(f"Skipping invalid conversation: {error_msg}")
                errors.append(error_msg)

        return converted, errors
