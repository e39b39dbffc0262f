"""BackupService - Builds and validates ConvoKeep backup envelopes

Backups hold conversations already in the unified schema, so importing one
needs no format conversion beyond validating the envelope. This service:
- Wraps stored conversations in a versioned export envelope
- Validates an envelope and extracts its conversations
- Generates download filenames
"""

import logging
import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from convokeep.config import EXPORT_SOURCE, EXPORT_VERSION, SCHEMA_VERSION
from convokeep.db.importers.base import utc_now
from convokeep.db.importers.errors import ValidationError

logger = logging.getLogger(__name__)

REQUIRED_CONVERSATION_FIELDS = ('conversation_id', 'title')


@dataclass
class BackupValidation:
    """Outcome of validating a backup envelope."""

    is_valid: bool
    errors: List[str] = field(default_factory=list)
    conversation_count: int = 0
    version: Optional[str] = None
    exported_at: Optional[str] = None


class BackupService:
    """Service for exporting and re-importing whole archives."""

    def export_backup(self, conversations: List[Dict[str, Any]]) -> Dict[str, Any]:
        """Wrap conversations in an export envelope

        Args:
            conversations: Full unified records, oldest first

        Returns:
            Envelope dict ready for JSON serialization
        """
        return {
            'version': EXPORT_VERSION,
            'source': EXPORT_SOURCE,
            'exported_at': utc_now(),
            'conversation_count': len(conversations),
            'schema_version': SCHEMA_VERSION,
            'conversations': conversations,
        }

    def validate_backup(self, data: Any) -> BackupValidation:
        """Check an envelope's shape and every conversation's required fields"""
        if not isinstance(data, dict):
            return BackupValidation(is_valid=False, errors=['Backup must be a JSON object'])

        errors = []

        if data.get('source') != EXPORT_SOURCE:
            errors.append(f'Missing or invalid "source" field (expected "{EXPORT_SOURCE}")')

        if not data.get('version'):
            errors.append('Missing "version" field')

        schema_version = data.get('schema_version')
        if isinstance(schema_version, int) and schema_version > SCHEMA_VERSION:
            errors.append(f'Backup schema version {schema_version} is newer than supported '
                          f'version {SCHEMA_VERSION}')

        conversations = data.get('conversations')
        if not isinstance(conversations, list):
            errors.append('Missing or invalid "conversations" array')
            conversations = []

        expected = data.get('conversation_count')
        if expected is not None and expected != len(conversations):
            errors.append(f'Conversation count mismatch: expected {expected}, found {len(conversations)}')

        for index, conversation in enumerate(conversations):
            if not isinstance(conversation, dict):
                errors.append(f'Conversation {index}: not an object')
                continue
            for field_name in REQUIRED_CONVERSATION_FIELDS:
                if not conversation.get(field_name):
                    errors.append(f'Conversation {index}: missing "{field_name}"')
            if not isinstance(conversation.get('messages'), list):
                errors.append(f'Conversation {index}: missing or invalid "messages" array')

        return BackupValidation(
            is_valid=not errors,
            errors=errors,
            conversation_count=len(conversations),
            version=data.get('version'),
            exported_at=data.get('exported_at'),
        )

    def extract_conversations(self, data: Any) -> List[Dict[str, Any]]:
        """Return the envelope's conversations

        Raises:
            ValidationError: If the envelope is invalid
        """
        validation = self.validate_backup(data)
        if not validation.is_valid:
            raise ValidationError(f"Invalid ConvoKeep backup: {', '.join(validation.errors)}")

        logger.info(f"Extracted {validation.conversation_count} conversations from backup "
                    f"exported at {validation.exported_at}")
        return data['conversations']

    def is_backup(self, data: Any) -> bool:
        """True if data looks like a ConvoKeep backup envelope"""
        return (isinstance(data, dict)
                and data.get('source') == EXPORT_SOURCE
                and isinstance(data.get('conversations'), list))

    def export_filename(self, title: Optional[str] = None) -> str:
        """Generate a download filename

        Args:
            title: Conversation title for single-conversation exports

        Returns:
            convokeep-backup-<date>.json, or convokeep-<safe-title>.json
        """
        if title:
            safe_title = re.sub(r'[^a-zA-Z0-9]', '-', title)[:50]
            return f'convokeep-{safe_title}.json'

        date = datetime.now(timezone.utc).strftime('%Y-%m-%d')
        return f'convokeep-backup-{date}.json'
