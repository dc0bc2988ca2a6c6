"""Notification type to icon mapping."""

from models.notification import NotificationType

DEFAULT_ICON = "🔔"

NOTIFICATION_ICONS = {
    NotificationType.LIKE.value: "❤️",
    NotificationType.COMMENT.value: "💬",
    NotificationType.CONNECTION_REQUEST.value: "🤝",
    NotificationType.CONNECTION_ACCEPTED.value: "✅",
    NotificationType.MESSAGE.value: "📧",
    NotificationType.APPLICATION_APPROVED.value: "🎉",
    NotificationType.APPLICATION_REJECTED.value: "❌",
    NotificationType.POST_MENTION.value: "@",
    NotificationType.COMMENT_MENTION.value: "@",
    NotificationType.WELCOME.value: "👋",
}


def notification_icon(notification_type: str) -> str:
    """Icon for a notification type, falling back to a bell for unknown types."""
    return NOTIFICATION_ICONS.get(notification_type, DEFAULT_ICON)
