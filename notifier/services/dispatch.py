"""Due-notification scan: select, sanitize, deliver and commit each reminder.

How/Why:
  - An external scheduler triggers one scan per minute; the scan looks back over the same
    period so a slightly late trigger still catches everything scheduled since the last run.
    Records older than the lookback are never picked up (a paused scheduler loses them).
  - Each due record runs through its own pipeline and all pipelines are awaited together,
    so one failing record never prevents its siblings from being delivered and committed.
  - A record is claimed before delivery so two overlapping scans cannot both deliver it.
    The claim is released when delivery fails so the next scan can retry it. The lease is
    shorter than the lookback, so a claim left by a crashed run expires while the record is
    still due and a later scan delivers it.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import asdict, dataclass
from datetime import UTC, datetime, timedelta
from typing import Literal

from starlette.concurrency import run_in_threadpool

from notifier.notifications.contracts import NotificationStore, PushGateway
from notifier.notifications.payloads import build_class_reminder_payload
from notifier.notifications.tokens import sanitize_tokens
from notifier.schema.notifications import NotificationRequest

logger = logging.getLogger(__name__)

DEFAULT_LOOKBACK_SECONDS = 60
DEFAULT_CLAIM_LEASE_SECONDS = 30

Outcome = Literal["sent", "skipped", "already_claimed", "claim_failed", "delivery_failed", "commit_failed"]


@dataclass
class DispatchSummary:
  """Aggregate result of one scan."""

  selected: int = 0
  attempted: int = 0
  sent: int = 0
  skipped: int = 0
  failed: int = 0
  already_claimed: int = 0
  query_failed: bool = False

  def record(self, outcome: Outcome) -> None:
    if outcome == "sent":
      self.attempted += 1
      self.sent += 1
    elif outcome == "skipped":
      self.skipped += 1
    elif outcome == "already_claimed":
      self.already_claimed += 1
    elif outcome == "claim_failed":
      self.failed += 1
    else:
      self.attempted += 1
      self.failed += 1

  def to_dict(self) -> dict[str, int | bool]:
    return asdict(self)


def due_window(now: datetime, lookback_seconds: int = DEFAULT_LOOKBACK_SECONDS) -> tuple[datetime, datetime]:
  """Return the closed [start, end] interval of scheduled times due at `now`."""
  return now - timedelta(seconds=lookback_seconds), now


async def select_due_notifications(store: NotificationStore, *, now: datetime, lookback_seconds: int = DEFAULT_LOOKBACK_SECONDS) -> list[NotificationRequest]:
  """Fetch unsent, unskipped records scheduled within the lookback window."""
  window_start, window_end = due_window(now, lookback_seconds)
  records = await store.list_due(window_start=window_start, window_end=window_end)
  return [record for record in records if not record.sent and not record.skipped]


async def process_notification(notification: NotificationRequest, *, store: NotificationStore, gateway: PushGateway, now: datetime, claim_lease_seconds: int = DEFAULT_CLAIM_LEASE_SECONDS) -> Outcome:
  """Run the sanitize, claim, deliver and commit steps for one record."""
  tokens = sanitize_tokens(notification.student_tokens)
  if not tokens:
    logger.info("No valid tokens for notification %s; marking as skipped", notification.id)
    try:
      await store.mark_skipped(notification.id, skipped_at=now)
    except Exception as exc:  # noqa: BLE001
      logger.error("Failed to mark notification %s as skipped: %s", notification.id, exc, exc_info=True)
    return "skipped"

  try:
    claimed = await store.claim(notification.id, now=now, lease_seconds=claim_lease_seconds)
  except Exception as exc:  # noqa: BLE001
    logger.error("Failed to claim notification %s: %s", notification.id, exc, exc_info=True)
    return "claim_failed"

  if not claimed:
    logger.info("Notification %s is already sent or claimed by another run; skipping", notification.id)
    return "already_claimed"

  payload = build_class_reminder_payload(notification)
  try:
    result = await run_in_threadpool(gateway.send_multicast, payload, tokens)
  except Exception as exc:  # noqa: BLE001
    logger.error("Error sending notification %s: %s", notification.id, exc, exc_info=True)
    await _release_claim(store, notification.id)
    return "delivery_failed"

  # Partial delivery counts as sent.
  if result.failure_count:
    logger.warning("Notification %s delivered with %s failed token(s) of %s", notification.id, result.failure_count, len(tokens))
  logger.info("Successfully sent notification %s: %s messages sent", notification.id, result.success_count)

  try:
    await store.mark_sent(notification.id, sent_at=now)
  except Exception as exc:  # noqa: BLE001
    logger.error("Failed to mark notification %s as sent; it may be delivered again: %s", notification.id, exc, exc_info=True)
    await _release_claim(store, notification.id)
    return "commit_failed"

  return "sent"


async def _release_claim(store: NotificationStore, notification_id: str) -> None:
  try:
    await store.release_claim(notification_id)
  except Exception as exc:  # noqa: BLE001
    logger.error("Failed to release claim on notification %s: %s", notification_id, exc, exc_info=True)


async def dispatch_due_notifications(
  store: NotificationStore, gateway: PushGateway, *, now: datetime | None = None, lookback_seconds: int = DEFAULT_LOOKBACK_SECONDS, claim_lease_seconds: int = DEFAULT_CLAIM_LEASE_SECONDS
) -> DispatchSummary:
  """Deliver every due reminder once and report what happened."""
  now = now or datetime.now(UTC)
  summary = DispatchSummary()

  try:
    due = await select_due_notifications(store, now=now, lookback_seconds=lookback_seconds)
  except Exception as exc:  # noqa: BLE001
    logger.error("Error selecting due notifications: %s", exc, exc_info=True)
    summary.query_failed = True
    return summary

  summary.selected = len(due)
  if not due:
    logger.info("No notifications to send")
    return summary

  pipelines = [process_notification(notification, store=store, gateway=gateway, now=now, claim_lease_seconds=claim_lease_seconds) for notification in due]
  outcomes = await asyncio.gather(*pipelines, return_exceptions=True)

  for notification, outcome in zip(due, outcomes, strict=True):
    if isinstance(outcome, BaseException):
      logger.error("Unexpected failure processing notification %s: %s", notification.id, outcome)
      summary.failed += 1
      continue
    summary.record(outcome)

  logger.info("All notifications processed: %s", summary.to_dict())
  return summary
