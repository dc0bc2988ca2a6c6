"""Notification-related exceptions."""

from .base import ForbiddenError, NotFoundError, ValidationError


class NotificationNotFoundError(NotFoundError):
    """Raised when a notification does not exist or was deleted."""

    def __init__(self, message: str = "Notification not found"):
        super().__init__(message=message, error_code="NOTIFICATION_NOT_FOUND")


class NotificationOwnershipError(ForbiddenError):
    """Raised when acting on another user's notification."""

    def __init__(self, message: str = "This notification belongs to another user"):
        super().__init__(message=message, error_code="NOTIFICATION_OWNERSHIP_REQUIRED")


class InvalidNotificationError(ValidationError):
    """Raised when a notification cannot be built from the given data."""

    def __init__(self, message: str = "Invalid notification data"):
        super().__init__(message=message, error_code="INVALID_NOTIFICATION")
