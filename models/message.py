"""
Message model for conversation messages.
"""

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Index, String, Text
from sqlalchemy.orm import relationship

from .base import UUID, BaseModel


class MessageType:
    """Message content types."""

    TEXT = "text"
    IMAGE = "image"
    FILE = "file"

    ALL = (TEXT, IMAGE, FILE)


class Message(BaseModel):
    """
    Represents a message posted in a conversation.

    Ordering is always by ``created_at``; edits only touch ``content``,
    ``is_edited`` and ``edited_at``. Deletion is soft.
    """

    __tablename__ = "messages"
    __table_args__ = (
        Index("idx_messages_conversation_created", "conversation_id", "created_at"),
    )

    conversation_id = Column(
        UUID(), ForeignKey("conversations.id", ondelete="CASCADE"), nullable=False
    )
    sender_id = Column(UUID(), ForeignKey("users.id"), nullable=False)
    content = Column(Text, nullable=False)
    message_type = Column(String(20), default=MessageType.TEXT, nullable=False)
    attachment_url = Column(String(1000), nullable=True)
    reply_to_id = Column(UUID(), ForeignKey("messages.id"), nullable=True)

    is_edited = Column(Boolean, default=False, nullable=False)
    edited_at = Column(DateTime, nullable=True)
    is_deleted = Column(Boolean, default=False, nullable=False)
    deleted_at = Column(DateTime, nullable=True)

    # Relationships
    conversation = relationship("Conversation", back_populates="messages")
    sender = relationship("User", foreign_keys=[sender_id])
    reply_to = relationship("Message", remote_side="Message.id")
