"""Shared fixtures and in-memory collaborators for dispatcher tests."""

from __future__ import annotations

import itertools
from datetime import UTC, datetime, timedelta
from typing import Any

import pytest

from notifier.config import Settings
from notifier.notifications.contracts import MulticastResult, PurgeKind, PushDeliveryError, PushPayload, StoreError
from notifier.schema.notifications import NotificationRequest, UserAccount

FIXED_NOW = datetime(2026, 3, 2, 8, 0, 0, tzinfo=UTC)


class InMemoryNotificationStore:
  """Dict-backed stand-in for the Firestore repository, keyed by document id."""

  def __init__(self) -> None:
    self.docs: dict[str, dict[str, Any]] = {}
    self.fail_query = False
    self.fail_mark_sent_ids: set[str] = set()
    self.fail_delete_after_batches: int | None = None
    self.delete_batches: list[list[str]] = []
    self.mark_sent_calls: list[str] = []

  def add(self, doc_id: str, **fields: Any) -> None:
    self.docs[doc_id] = {"sent": False, **fields}

  async def list_due(self, *, window_start: datetime, window_end: datetime) -> list[NotificationRequest]:
    if self.fail_query:
      raise StoreError("query unavailable")
    return [
      NotificationRequest.from_document(doc_id, dict(data))
      for doc_id, data in self.docs.items()
      if data.get("sent") is False and data.get("scheduledTime") is not None and window_start <= data["scheduledTime"] <= window_end
    ]

  async def claim(self, notification_id: str, *, now: datetime, lease_seconds: int) -> bool:
    data = self.docs.get(notification_id)
    if data is None or data.get("sent") or data.get("skipped"):
      return False
    claimed_at = data.get("claimedAt")
    if claimed_at is not None and claimed_at > now - timedelta(seconds=lease_seconds):
      return False
    data["claimedAt"] = now
    return True

  async def release_claim(self, notification_id: str) -> None:
    self._require(notification_id).pop("claimedAt", None)

  async def mark_sent(self, notification_id: str, *, sent_at: datetime) -> None:
    self.mark_sent_calls.append(notification_id)
    if notification_id in self.fail_mark_sent_ids:
      raise StoreError(f"update rejected for {notification_id}")
    data = self._require(notification_id)
    data.update({"sent": True, "sentAt": sent_at})
    data.pop("claimedAt", None)

  async def mark_skipped(self, notification_id: str, *, skipped_at: datetime) -> None:
    self._require(notification_id).update({"skipped": True, "skippedAt": skipped_at})

  async def list_purgeable_ids(self, *, kind: PurgeKind, cutoff: datetime, limit: int) -> list[str]:
    flag_field, stamp_field = ("sent", "sentAt") if kind == "sent" else ("skipped", "skippedAt")
    matches = [doc_id for doc_id, data in self.docs.items() if data.get(flag_field) is True and data.get(stamp_field) is not None and data[stamp_field] < cutoff]
    return matches[:limit]

  async def delete_many(self, notification_ids: list[str]) -> int:
    if self.fail_delete_after_batches is not None and len(self.delete_batches) >= self.fail_delete_after_batches:
      raise StoreError("batch commit failed")
    self.delete_batches.append(list(notification_ids))
    for notification_id in notification_ids:
      self.docs.pop(notification_id, None)
    return len(notification_ids)

  def _require(self, notification_id: str) -> dict[str, Any]:
    if notification_id not in self.docs:
      raise StoreError(f"no document {notification_id}")
    return self.docs[notification_id]


class RecordingPushGateway:
  """Gateway double that records submissions and can fail chosen recipients."""

  def __init__(self) -> None:
    self.multicast_calls: list[tuple[PushPayload, list[str]]] = []
    self.single_calls: list[tuple[PushPayload, str]] = []
    self.raise_for_tokens: set[str] = set()
    self.rejected_tokens: set[str] = set()
    self._ids = itertools.count(1)

  def send_multicast(self, payload: PushPayload, tokens: list[str]) -> MulticastResult:
    self.multicast_calls.append((payload, list(tokens)))
    if self.raise_for_tokens.intersection(tokens):
      raise PushDeliveryError("gateway unavailable")
    failed = [token for token in tokens if token in self.rejected_tokens]
    return MulticastResult(success_count=len(tokens) - len(failed), failure_count=len(failed), failed_tokens=failed)

  def send(self, payload: PushPayload, token: str) -> str:
    self.single_calls.append((payload, token))
    if token in self.raise_for_tokens:
      raise PushDeliveryError("gateway unavailable")
    return f"projects/demo/messages/{next(self._ids)}"


class StaticUserDirectory:
  def __init__(self, recipient: UserAccount | None = None, error: Exception | None = None) -> None:
    self._recipient = recipient
    self._error = error

  async def find_test_recipient(self) -> UserAccount | None:
    if self._error is not None:
      raise self._error
    return self._recipient


@pytest.fixture
def anyio_backend():
  return "asyncio"


@pytest.fixture
def now() -> datetime:
  return FIXED_NOW


@pytest.fixture
def store() -> InMemoryNotificationStore:
  return InMemoryNotificationStore()


@pytest.fixture
def gateway() -> RecordingPushGateway:
  return RecordingPushGateway()


@pytest.fixture
def settings() -> Settings:
  return Settings(
    environment="test",
    debug=False,
    log_dir=None,
    log_max_bytes=5242880,
    log_backup_count=1,
    log_http_4xx=False,
    firebase_project_id=None,
    firebase_service_account_json_path=None,
    push_enabled=False,
    notifications_collection="scheduled_notifications",
    users_collection="users",
    dispatch_lookback_seconds=60,
    claim_lease_seconds=30,
    retention_days=30,
    delete_batch_size=500,
    task_secret="test-secret",
  )


@pytest.fixture
def user_directory_factory():
  return StaticUserDirectory
