"""Contracts for the push gateway, the notification store and the user directory."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Literal, Protocol

from notifier.schema.notifications import NotificationRequest, UserAccount

PurgeKind = Literal["sent", "skipped"]


@dataclass(frozen=True)
class PushPayload:
  """Platform-agnostic push payload translated by the gateway into provider messages."""

  title: str
  body: str
  data: dict[str, str]
  priority: str = "normal"
  android_channel_id: str | None = None
  sound: str | None = None


@dataclass(frozen=True)
class MulticastResult:
  """Aggregate outcome of a single multi-recipient submission."""

  success_count: int
  failure_count: int
  failed_tokens: list[str] = field(default_factory=list)


class NotificationError(Exception):
  """Base class for all notification dispatch failures."""


class StoreError(NotificationError):
  """Exception raised when a query, update or delete against the record store fails."""


class PushDeliveryError(NotificationError):
  """Exception raised when the push gateway rejects or fails a submission."""


class NoEligibleRecipientError(NotificationError):
  """Exception raised when no account qualifies as a test recipient."""


class PushGateway(Protocol):
  """Delivery contract for the push-messaging provider."""

  def send_multicast(self, payload: PushPayload, tokens: list[str]) -> MulticastResult:
    """Send one payload to many device tokens in a single call."""

  def send(self, payload: PushPayload, token: str) -> str:
    """Send one payload to a single device token and return the provider message id."""


class NotificationStore(Protocol):
  """Persistence contract for scheduled notification records."""

  async def list_due(self, *, window_start: datetime, window_end: datetime) -> list[NotificationRequest]:
    """Return unsent records whose scheduled time lies in the closed window."""

  async def claim(self, notification_id: str, *, now: datetime, lease_seconds: int) -> bool:
    """Reserve a record for dispatch; return False when it is sent, skipped or claimed by another run."""

  async def release_claim(self, notification_id: str) -> None:
    """Drop a dispatch reservation so the record can be retried."""

  async def mark_sent(self, notification_id: str, *, sent_at: datetime) -> None:
    """Flip the record to sent and stamp the delivery time."""

  async def mark_skipped(self, notification_id: str, *, skipped_at: datetime) -> None:
    """Flag a record that can never be delivered."""

  async def list_purgeable_ids(self, *, kind: PurgeKind, cutoff: datetime, limit: int) -> list[str]:
    """Return up to `limit` ids of sent (or skipped) records stamped before the cutoff."""

  async def delete_many(self, notification_ids: list[str]) -> int:
    """Delete the given records in one atomic batch and return how many were deleted."""


class UserDirectory(Protocol):
  """Read-only lookup of app users."""

  async def find_test_recipient(self) -> UserAccount | None:
    """Return one student account that has a push token, or None."""
