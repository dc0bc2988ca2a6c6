"""
Conversation membership record carrying the per-user read cursor.
"""

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Index, String, UniqueConstraint
from sqlalchemy.orm import relationship

from .base import UUID, BaseModel, utc_now


class ParticipantRole:
    """Participant roles."""

    MEMBER = "member"
    MODERATOR = "moderator"
    ADMIN = "admin"

    MANAGERS = (MODERATOR, ADMIN)


class ConversationParticipant(BaseModel):
    """
    Represents a user's membership in a conversation.

    :ivar conversation_id: Conversation the user belongs to.
    :type conversation_id: UUID
    :ivar user_id: Member user.
    :type user_id: UUID
    :ivar role: member, moderator or admin.
    :type role: str
    :ivar joined_at: When the user joined (or rejoined).
    :type joined_at: datetime
    :ivar last_read_at: Read cursor; never moves backwards.
    :type last_read_at: datetime
    :ivar is_active: False once the user left the conversation.
    :type is_active: bool
    """

    __tablename__ = "conversation_participants"
    __table_args__ = (
        UniqueConstraint("conversation_id", "user_id", name="uq_conversation_participant"),
        Index("idx_conversation_participants_user", "user_id", "is_active"),
    )

    conversation_id = Column(
        UUID(), ForeignKey("conversations.id", ondelete="CASCADE"), nullable=False
    )
    user_id = Column(UUID(), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    role = Column(String(20), default=ParticipantRole.MEMBER, nullable=False)
    joined_at = Column(DateTime, default=utc_now, nullable=False)
    last_read_at = Column(DateTime, default=utc_now, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)

    # Relationships
    conversation = relationship("Conversation", back_populates="participants")
    user = relationship("User", back_populates="participations")
