"""
Provides the User model for the messaging schema.

Users are owned by the external membership system; this service keeps a local
row per authenticated Clerk identity with just enough profile data to label
messages and notifications, plus the membership plan name that gates
messaging.

Attributes
----------
clerk_user_id : sqlalchemy.Column
    Unique identifier for the user from Clerk.
email : sqlalchemy.Column
    The email address of the user, unique.
username : sqlalchemy.Column
    Public handle.
full_name : sqlalchemy.Column
    Display name used in notification texts.
plan_name : sqlalchemy.Column
    Membership plan name (for example ``Público`` or ``Profissional``).
is_active : sqlalchemy.Column
    Whether the account may use the API.
"""

from sqlalchemy import Boolean, Column, String
from sqlalchemy.orm import relationship

from .base import BaseModel


class User(BaseModel):
    """
    Represents a member of the network.

    :ivar clerk_user_id: Unique identifier for the user provided by Clerk.
    :type clerk_user_id: str
    :ivar email: Email address of the user. It must be unique.
    :type email: str
    :ivar username: Username of the user.
    :type username: str
    :ivar full_name: Display name.
    :type full_name: str
    :ivar plan_name: Current membership plan name, ``None`` when no plan was approved.
    :type plan_name: str
    :ivar is_active: Indicates whether the user account is active.
    :type is_active: bool
    """

    __tablename__ = "users"

    clerk_user_id = Column(String(255), unique=True, nullable=False)
    email = Column(String(255), nullable=False, unique=True)
    username = Column(String(100))
    full_name = Column(String(255))
    plan_name = Column(String(100))
    is_active = Column(Boolean, default=True)

    # Relationships
    participations = relationship(
        "ConversationParticipant", back_populates="user", cascade="all, delete-orphan"
    )
    notifications = relationship(
        "Notification",
        back_populates="user",
        cascade="all, delete-orphan",
        foreign_keys="Notification.user_id",
    )

    @property
    def display_name(self) -> str:
        return self.full_name or self.username or self.email.split("@")[0]
