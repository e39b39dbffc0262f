"""
Import system with per-format converters.

This module provides format detection and conversion of different chat
export formats (ChatGPT, Claude, ConvoKeep backups, generic message lists)
into the unified conversation schema.
"""

from convokeep.db.importers.registry import detect_format, FormatDetector, FORMAT_REGISTRY, CONVERTER_METADATA
from convokeep.db.importers.pipeline import ConversionPipeline

__all__ = ["detect_format", "FormatDetector", "FORMAT_REGISTRY", "CONVERTER_METADATA", "ConversionPipeline"]
