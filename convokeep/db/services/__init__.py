"""
Storage-independent services: pagination math and backup envelopes.
"""

from convokeep.db.services.backup_service import BackupService, BackupValidation
from convokeep.db.services.pagination_service import PaginationService

__all__ = ["BackupService", "BackupValidation", "PaginationService"]
