"""Builders for the push payloads this service sends."""

from __future__ import annotations

from datetime import datetime

from notifier.notifications.contracts import PushPayload
from notifier.schema.notifications import NotificationRequest

DEFAULT_REMINDER_TITLE = "Class Starting Soon!"
DEFAULT_REMINDER_BODY = "Time to mark attendance!"
CLICK_ACTION = "FLUTTER_NOTIFICATION_CLICK"
CLASS_CHANNEL_ID = "class_notifications"

TEST_TITLE = "Test Notification"
TEST_BODY = "This is a test notification from Cloud Functions!"


def build_class_reminder_payload(notification: NotificationRequest) -> PushPayload:
  """Build the attendance reminder sent to every student of a class."""
  # The Flutter client routes on click_action and reads the class context from data.
  data = {"courseId": notification.course_id or "", "classId": notification.class_id or "", "courseName": notification.course_name or "", "click_action": CLICK_ACTION}
  return PushPayload(title=notification.title or DEFAULT_REMINDER_TITLE, body=notification.body or DEFAULT_REMINDER_BODY, data=data, priority="high", android_channel_id=CLASS_CHANNEL_ID, sound="default")


def build_test_payload(*, now: datetime) -> PushPayload:
  """Build the fixed payload used to verify delivery end-to-end."""
  return PushPayload(title=TEST_TITLE, body=TEST_BODY, data={"test": "true", "timestamp": now.isoformat()})
