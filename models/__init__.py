"""
Models package initialization.
"""

from .base import Base, BaseModel, utc_now
from .conversation import Conversation, ConversationType, direct_pair_key
from .conversation_participant import ConversationParticipant, ParticipantRole
from .message import Message, MessageType
from .notification import Notification, NotificationType
from .user import User

__all__ = [
    "Base",
    "BaseModel",
    "utc_now",
    "User",
    # Messaging models
    "Conversation",
    "ConversationType",
    "ConversationParticipant",
    "ParticipantRole",
    "Message",
    "MessageType",
    "direct_pair_key",
    # Notification models
    "Notification",
    "NotificationType",
]
