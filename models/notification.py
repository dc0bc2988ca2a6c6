"""
Notification model for the per-user activity inbox.

Notifications are produced by domain events elsewhere in the network (likes,
comments, connection requests, messages, application reviews, mentions) and
consumed by the recipient, who can mark them read or delete them.
"""

import enum

from sqlalchemy import JSON, Boolean, Column, ForeignKey, Index, String, Text
from sqlalchemy.orm import relationship

from .base import UUID, BaseModel


class NotificationType(str, enum.Enum):
    """Notification type enumeration."""

    LIKE = "like"
    COMMENT = "comment"
    CONNECTION_REQUEST = "connection_request"
    CONNECTION_ACCEPTED = "connection_accepted"
    MESSAGE = "message"
    APPLICATION_APPROVED = "application_approved"
    APPLICATION_REJECTED = "application_rejected"
    POST_MENTION = "post_mention"
    COMMENT_MENTION = "comment_mention"
    WELCOME = "welcome"


class Notification(BaseModel):
    """
    Represents one inbox entry for a user.

    :ivar user_id: Recipient.
    :type user_id: UUID
    :ivar type: One of :class:`NotificationType` values.
    :type type: str
    :ivar action_url: Client route opened when the entry is clicked.
    :type action_url: str
    :ivar related_entity_id: Id of the post/user/conversation the event concerns.
    :type related_entity_id: str
    :ivar actor_id: User who triggered the event, if any.
    :type actor_id: UUID
    :ivar is_read: Only ever transitions from False to True.
    :type is_read: bool
    :ivar is_deleted: Soft-delete flag set by the recipient.
    :type is_deleted: bool
    """

    __tablename__ = "notifications"
    __table_args__ = (
        Index("idx_notifications_user_created", "user_id", "created_at"),
        Index("idx_notifications_user_unread", "user_id", "is_read", "is_deleted"),
    )

    user_id = Column(UUID(), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    type = Column(String(50), nullable=False)
    title = Column(String(255), nullable=False)
    message = Column(Text, nullable=False)
    action_url = Column(String(500), nullable=True)
    related_entity_id = Column(String(64), nullable=True)
    related_entity_type = Column(String(50), nullable=True)
    actor_id = Column(UUID(), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    is_read = Column(Boolean, default=False, nullable=False)
    is_deleted = Column(Boolean, default=False, nullable=False)
    # "metadata" is reserved on declarative classes
    extra = Column("metadata", JSON, nullable=True)

    # Relationships
    user = relationship("User", back_populates="notifications", foreign_keys=[user_id])
    actor = relationship("User", foreign_keys=[actor_id])
