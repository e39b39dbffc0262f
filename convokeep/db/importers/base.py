"""
Shared functionality for all format converters.

Every converter turns one raw export object into a unified conversation dict
with the keys conversation_id, title, created_at, updated_at, source, model,
messages and metadata.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional

from convokeep.config import DEFAULT_TITLE

logger = logging.getLogger(__name__)

# Numeric timestamps below this are epoch seconds, above it epoch milliseconds
SECONDS_THRESHOLD = 10_000_000_000


def to_iso(dt: datetime) -> str:
    """Render a datetime as a UTC ISO-8601 string with milliseconds and a Z suffix."""
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    dt = dt.astimezone(timezone.utc)
    return dt.strftime('%Y-%m-%dT%H:%M:%S.') + f"{dt.microsecond // 1000:03d}Z"


def utc_now() -> str:
    """Current time in the archive's timestamp format."""
    return to_iso(datetime.now(timezone.utc))


class BaseConverter:
    """Base class for all format converters."""

    # Value used for conversation "source"; overridden by subclasses
    source = 'unknown'

    def __init__(self, id_generator: Callable[[str], str]):
        """
        Args:
            id_generator: Callable taking a prefix and returning a unique ID
        """
        self.id_generator = id_generator

    def convert(self, conversation: Any) -> Dict[str, Any]:
        raise NotImplementedError

    def format_timestamp(self, timestamp: Any) -> str:
        """
        Format a timestamp of any supported kind as an ISO string.

        Accepts epoch seconds, epoch milliseconds, numeric strings, ISO strings
        and datetime objects. Falsy or unparsable values fall back to now.
        """
        if not timestamp or isinstance(timestamp, bool):
            return self.now()

        if isinstance(timestamp, datetime):
            return to_iso(timestamp)

        try:
            numeric = self._as_number(timestamp)
            if numeric is not None:
                seconds = numeric if abs(numeric) < SECONDS_THRESHOLD else numeric / 1000
                return to_iso(datetime.fromtimestamp(seconds, tz=timezone.utc))

            if isinstance(timestamp, str):
                text = timestamp.strip()
                if text.endswith(('Z', 'z')):
                    text = text[:-1] + '+00:00'
                return to_iso(datetime.fromisoformat(text))
        except (ValueError, OverflowError, OSError) as e:
            logger.debug(f"Unparsable timestamp {timestamp!r}: {e}")

        return self.now()

    @staticmethod
    def _as_number(value: Any) -> Optional[float]:
        if isinstance(value, (int, float)):
            return float(value)
        if isinstance(value, str):
            try:
                return float(value.strip())
            except ValueError:
                return None
        return None

    def normalize_role(self, role: Any) -> str:
        """
        Normalize role names across different sources.

        'human' becomes 'user'; everything else is lower-cased.
        """
        if not role or not isinstance(role, str):
            return 'unknown'

        role = role.lower()
        if role == 'human':
            return 'user'
        return role

    def generate_id(self, prefix: str) -> str:
        """Generate a unique ID with a prefix."""
        return self.id_generator(prefix)

    def conversation_key(self, *candidates: Any) -> str:
        """
        First usable natural key among candidates, always as a string.

        Numeric ids from loose exports are stringified so the same record
        maps to the same stored key every time. Generates one when none fits.
        """
        for candidate in candidates:
            if isinstance(candidate, bool):
                continue
            if isinstance(candidate, (str, int, float)) and candidate != '':
                return str(candidate)
        return self.generate_id('conv')

    def now(self) -> str:
        return utc_now()

    def default_title(self, title: Any) -> str:
        return title if isinstance(title, str) and title else DEFAULT_TITLE
