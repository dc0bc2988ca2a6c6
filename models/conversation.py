"""
Conversation model for direct and group messaging.
"""

import enum

from sqlalchemy import Boolean, Column, DateTime, Enum, ForeignKey, Index, String, Text, text
from sqlalchemy.orm import relationship

from .base import UUID, BaseModel


class ConversationType(str, enum.Enum):
    """Conversation type enumeration."""

    DIRECT = "direct"
    GROUP = "group"


def direct_pair_key(user_a, user_b) -> str:
    """Order-independent key identifying the direct conversation of two users."""
    first, second = sorted((str(user_a), str(user_b)))
    return f"{first}:{second}"


class Conversation(BaseModel):
    """
    Represents a conversation between two or more members.

    Direct conversations carry a ``direct_key`` built from the unordered pair
    of participant ids; at most one active conversation may exist per key.
    """

    __tablename__ = "conversations"
    __table_args__ = (
        Index(
            "uq_conversations_active_direct_key",
            "direct_key",
            unique=True,
            postgresql_where=text("is_active"),
            sqlite_where=text("is_active"),
        ),
        Index("idx_conversations_last_message_at", "last_message_at"),
    )

    type = Column(
        Enum(ConversationType, values_callable=lambda e: [m.value for m in e], name="conversationtype"),
        nullable=False,
    )
    name = Column(String(255), nullable=True)  # group only
    description = Column(Text, nullable=True)  # group only
    created_by = Column(UUID(), ForeignKey("users.id"), nullable=False)
    direct_key = Column(String(80), nullable=True)  # direct only
    last_message_at = Column(DateTime, nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)

    # Relationships
    creator = relationship("User", foreign_keys=[created_by])
    participants = relationship(
        "ConversationParticipant",
        back_populates="conversation",
        cascade="all, delete-orphan",
    )
    messages = relationship(
        "Message",
        back_populates="conversation",
        cascade="all, delete-orphan",
        order_by="Message.created_at",
    )
