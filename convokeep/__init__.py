"""
ConvoKeep archive core.

Normalizes exported AI-chat transcripts (ChatGPT, Claude, native backups)
into one unified schema and keeps them in a local, queryable store.
"""

from convokeep.db.importers.pipeline import ConversionPipeline
from convokeep.db.storage_manager import StorageManager

__version__ = "0.3.0"

__all__ = ["ConversionPipeline", "StorageManager", "__version__"]
