"""Messaging-related exceptions."""

from .base import ConflictError, ForbiddenError, LockedError, NotFoundError, ValidationError


class ConversationNotFoundError(NotFoundError):
    """Raised when a conversation does not exist or is no longer active."""

    def __init__(self, message: str = "Conversation not found"):
        super().__init__(message=message, error_code="CONVERSATION_NOT_FOUND")


class MessageNotFoundError(NotFoundError):
    """Raised when a message does not exist or was deleted."""

    def __init__(self, message: str = "Message not found"):
        super().__init__(message=message, error_code="MESSAGE_NOT_FOUND")


class NotAParticipantError(ForbiddenError):
    """Raised when the caller is not an active participant of a conversation."""

    def __init__(self, message: str = "You are not a participant of this conversation"):
        super().__init__(message=message, error_code="NOT_A_PARTICIPANT")


class MessageOwnershipError(ForbiddenError):
    """Raised when someone other than the sender edits or deletes a message."""

    def __init__(self, message: str = "Only the sender can modify this message"):
        super().__init__(message=message, error_code="MESSAGE_OWNERSHIP_REQUIRED")


class ConversationRoleError(ForbiddenError):
    """Raised when a group action requires a moderator or admin."""

    def __init__(self, message: str = "Only group moderators can do this"):
        super().__init__(message=message, error_code="CONVERSATION_ROLE_REQUIRED")


class SelfConversationError(ConflictError):
    """Raised when a user tries to open a direct conversation with themselves."""

    def __init__(self, message: str = "Cannot start a conversation with yourself"):
        super().__init__(message=message, error_code="SELF_CONVERSATION")


class DirectConversationMembershipError(ConflictError):
    """Raised when membership of a direct conversation would change."""

    def __init__(self, message: str = "Direct conversations always have exactly two participants"):
        super().__init__(message=message, error_code="DIRECT_CONVERSATION_MEMBERSHIP")


class AlreadyParticipantError(ConflictError):
    """Raised when adding a user who is already an active participant."""

    def __init__(self, message: str = "User is already a participant"):
        super().__init__(message=message, error_code="ALREADY_PARTICIPANT")


class MessagingLockedError(LockedError):
    """Raised when a public-tier member attempts a messaging action."""

    def __init__(self, message: str = "Messaging is not available on the public plan"):
        super().__init__(message=message, error_code="MESSAGING_LOCKED")


class InvalidMessageError(ValidationError):
    """Raised when message content or references are invalid."""

    def __init__(self, message: str = "Message content is required", field: str = "content"):
        super().__init__(
            message=message, error_code="INVALID_MESSAGE", details={"field": field}
        )


class InvalidConversationError(ValidationError):
    """Raised when conversation input is invalid."""

    def __init__(self, message: str = "Invalid conversation data", field: str | None = None):
        super().__init__(
            message=message,
            error_code="INVALID_CONVERSATION",
            details={"field": field} if field else None,
        )


class MessagingOperationError(ConflictError):
    """Raised when a store write fails and was rolled back."""

    def __init__(self, message: str = "Messaging operation failed"):
        super().__init__(message=message, error_code="MESSAGING_OPERATION_FAILED")
