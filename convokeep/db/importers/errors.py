"""
Custom exceptions for the conversion and storage layers.

Provides structured error types for malformed input, unknown conversations,
and storage failures. Malformed timestamps and unrecognized roles are not
errors; they resolve to defaults inside the converters.
"""


class ConvoKeepError(Exception):
    """Base exception for archive errors."""

    def __init__(self, message: str = None):
        self.message = message or self.__class__.__name__
        super().__init__(self.message)


class ValidationError(ConvoKeepError):
    """
    Raised when input is missing required fields or has the wrong shape.

    Attributes:
        message: User-friendly error message
        field: Name of the offending field (or None)
    """

    def __init__(self, message: str = None, field: str = None):
        self.field = field

        if message is None:
            message = f"Invalid value for field '{field}'" if field else "Validation failed"

        super().__init__(message)


class NotFoundError(ConvoKeepError):
    """
    Raised when an operation addresses an unknown conversation_id.

    Attributes:
        conversation_id: The natural key that was not found
        message: User-friendly error message
    """

    def __init__(self, conversation_id: str, message: str = None):
        self.conversation_id = conversation_id

        if message is None:
            message = f"Conversation not found: {conversation_id}"

        super().__init__(message)


class StorageError(ConvoKeepError):
    """
    Raised when a read or write against the store fails.

    Attributes:
        message: User-friendly error message
        original_error: The underlying exception (for logging/debugging)
    """

    def __init__(self, message: str = None, original_error: Exception = None):
        self.original_error = original_error

        if message is None:
            message = "Storage operation failed"
        if original_error:
            message += f": {str(original_error)}"

        super().__init__(message)


def get_user_friendly_error_message(error: Exception) -> str:
    """
    Convert an archive error to a user-friendly message for display in the UI.

    Args:
        error: An exception raised by the archive

    Returns:
        A message suitable for showing to the user
    """
    if isinstance(error, ValidationError):
        if error.field:
            return f"Invalid conversation data ({error.field}): {error.message}"
        return f"Invalid conversation data: {error.message}"

    elif isinstance(error, NotFoundError):
        return error.message

    elif isinstance(error, StorageError):
        return f"Could not access the archive. {error.message}"

    else:
        # Generic fallback for non-archive errors
        return f"Operation failed: {str(error)}"
