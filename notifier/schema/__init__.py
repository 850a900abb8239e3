"""Schema package exports."""

from .notifications import NOTIFICATIONS_COLLECTION, STUDENT_ROLE, USERS_COLLECTION, NotificationRequest, UserAccount

__all__ = ["NOTIFICATIONS_COLLECTION", "STUDENT_ROLE", "USERS_COLLECTION", "NotificationRequest", "UserAccount"]
