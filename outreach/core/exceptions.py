"""
Messaging error taxonomy.

Services raise these; the application renders them as
``{"ok": false, "error": ...}`` with the matching HTTP status.
"""
from typing import Any, Dict, Optional

from fastapi import status


class MessagingError(Exception):
    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message: str = "Internal error"

    def __init__(self, message: Optional[str] = None, context: Optional[Dict[str, Any]] = None):
        self.message = message or self.default_message
        self.context = context or {}
        super().__init__(self.message)


class ValidationError(MessagingError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Invalid request"


class UnauthorizedError(MessagingError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Unauthorized"


class ForbiddenError(MessagingError):
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "Forbidden"


class NotFoundError(MessagingError):
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Not found"


class RateLimitError(MessagingError):
    status_code = status.HTTP_429_TOO_MANY_REQUESTS
    default_message = "Rate limited"


class StoreError(MessagingError):
    """Unexpected failure from the backing store; the message is passed through."""
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
