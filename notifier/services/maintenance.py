"""Maintenance services for scheduled background cleanup tasks."""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from datetime import UTC, datetime, timedelta

from notifier.config import FIRESTORE_MAX_BATCH_WRITES
from notifier.notifications.contracts import NotificationStore, PurgeKind

logger = logging.getLogger(__name__)

DEFAULT_RETENTION_DAYS = 30


@dataclass
class CleanupSummary:
  """Aggregate result of one retention sweep."""

  deleted_sent: int = 0
  deleted_skipped: int = 0
  batches: int = 0
  failed: bool = False

  @property
  def deleted(self) -> int:
    return self.deleted_sent + self.deleted_skipped

  def to_dict(self) -> dict[str, int | bool]:
    return {**asdict(self), "deleted": self.deleted}


async def purge_old_notifications(store: NotificationStore, *, now: datetime | None = None, retention_days: int = DEFAULT_RETENTION_DAYS, batch_size: int = FIRESTORE_MAX_BATCH_WRITES) -> CleanupSummary:
  """Delete delivered and skipped reminders older than the retention period.

  How/Why:
    - Delivered records only matter for support lookups for a few weeks; after that they are noise.
    - Skipped records (no valid device tokens) can never be delivered, so they age out the same way.
    - Deletes are paged into batches no larger than Firestore's write-batch limit. Each batch is atomic;
      a failure mid-sweep keeps the batches already committed and the next daily run picks up the rest.
  """
  now = now or datetime.now(UTC)
  cutoff = now - timedelta(days=retention_days)
  summary = CleanupSummary()
  kinds: tuple[PurgeKind, ...] = ("sent", "skipped")

  try:
    for kind in kinds:
      while True:
        notification_ids = await store.list_purgeable_ids(kind=kind, cutoff=cutoff, limit=batch_size)
        if not notification_ids:
          break
        deleted = await store.delete_many(notification_ids)
        summary.batches += 1
        if kind == "sent":
          summary.deleted_sent += deleted
        else:
          summary.deleted_skipped += deleted
        # A short page means nothing older is left for this kind.
        if len(notification_ids) < batch_size:
          break
  except Exception as exc:  # noqa: BLE001
    logger.error("Error cleaning up notifications: %s", exc, exc_info=True)
    summary.failed = True

  logger.info("Deleted %s old notifications (sent=%s skipped=%s batches=%s cutoff=%s)", summary.deleted, summary.deleted_sent, summary.deleted_skipped, summary.batches, cutoff.isoformat())
  return summary
