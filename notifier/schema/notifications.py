"""Record shapes stored in Firestore and read by the dispatcher."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

NOTIFICATIONS_COLLECTION = "scheduled_notifications"
USERS_COLLECTION = "users"

STUDENT_ROLE = "student"


@dataclass(frozen=True)
class NotificationRequest:
  """A scheduled class reminder awaiting (or past) delivery.

  Documents are written by the scheduling feature of the mobile app; this
  service only reads them and flips the delivery bookkeeping fields.
  """

  id: str
  scheduled_time: datetime | None
  title: str | None = None
  body: str | None = None
  course_id: str | None = None
  class_id: str | None = None
  course_name: str | None = None
  student_tokens: list[Any] = field(default_factory=list)
  sent: bool = False
  sent_at: datetime | None = None
  skipped: bool = False
  skipped_at: datetime | None = None
  claimed_at: datetime | None = None

  @classmethod
  def from_document(cls, doc_id: str, data: dict[str, Any]) -> NotificationRequest:
    """Build a record from a raw Firestore document payload."""
    raw_tokens = data.get("studentTokens")
    return cls(
      id=doc_id,
      scheduled_time=data.get("scheduledTime"),
      title=data.get("title"),
      body=data.get("body"),
      course_id=data.get("courseId"),
      class_id=data.get("classId"),
      course_name=data.get("courseName"),
      student_tokens=list(raw_tokens) if isinstance(raw_tokens, list | tuple) else [],
      sent=bool(data.get("sent", False)),
      sent_at=data.get("sentAt"),
      skipped=bool(data.get("skipped", False)),
      skipped_at=data.get("skippedAt"),
      claimed_at=data.get("claimedAt"),
    )


@dataclass(frozen=True)
class UserAccount:
  """Read-only view of an app user used to pick a test recipient."""

  id: str
  role: str | None
  fcm_token: str | None
  name: str | None

  @classmethod
  def from_document(cls, doc_id: str, data: dict[str, Any]) -> UserAccount:
    return cls(id=doc_id, role=data.get("role"), fcm_token=data.get("fcmToken"), name=data.get("name"))
