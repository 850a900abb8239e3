"""Firestore persistence for scheduled notification records."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta

from firebase_admin import firestore
from google.api_core.exceptions import GoogleAPIError
from google.cloud.firestore import Client as FirestoreClient
from google.cloud.firestore import FieldFilter
from starlette.concurrency import run_in_threadpool

from notifier.notifications.contracts import NotificationStore, PurgeKind, StoreError
from notifier.schema.notifications import NOTIFICATIONS_COLLECTION, NotificationRequest

logger = logging.getLogger(__name__)

_PURGE_FIELDS: dict[str, tuple[str, str]] = {"sent": ("sent", "sentAt"), "skipped": ("skipped", "skippedAt")}


class FirestoreNotificationRepository(NotificationStore):
  """Read and update `scheduled_notifications` documents.

  The Firestore SDK is synchronous, so every public coroutine hands the
  blocking call to the threadpool. Google API errors surface as StoreError.
  """

  def __init__(self, db: FirestoreClient, *, collection: str = NOTIFICATIONS_COLLECTION) -> None:
    self._db = db
    self._collection_name = collection

  def _collection(self) -> firestore.CollectionReference:
    return self._db.collection(self._collection_name)

  async def list_due(self, *, window_start: datetime, window_end: datetime) -> list[NotificationRequest]:
    """Return unsent records scheduled within [window_start, window_end]."""
    return await run_in_threadpool(self._list_due_sync, window_start, window_end)

  def _list_due_sync(self, window_start: datetime, window_end: datetime) -> list[NotificationRequest]:
    query = self._collection().where(filter=FieldFilter("sent", "==", False)).where(filter=FieldFilter("scheduledTime", ">=", window_start)).where(filter=FieldFilter("scheduledTime", "<=", window_end))
    try:
      return [NotificationRequest.from_document(snapshot.id, snapshot.to_dict() or {}) for snapshot in query.stream()]
    except GoogleAPIError as exc:
      raise StoreError(f"Due notification query failed: {exc}") from exc

  async def claim(self, notification_id: str, *, now: datetime, lease_seconds: int) -> bool:
    """Reserve a record for this run inside a single-document transaction."""
    return await run_in_threadpool(self._claim_sync, notification_id, now, lease_seconds)

  def _claim_sync(self, notification_id: str, now: datetime, lease_seconds: int) -> bool:
    doc_ref = self._collection().document(notification_id)
    transaction = self._db.transaction()
    lease_floor = now - timedelta(seconds=lease_seconds)

    @firestore.transactional
    def claim_in_transaction(transaction: firestore.Transaction, doc_ref: firestore.DocumentReference) -> bool:
      snapshot = doc_ref.get(transaction=transaction)
      if not snapshot.exists:
        return False

      data = snapshot.to_dict() or {}
      if data.get("sent") or data.get("skipped"):
        return False

      # A claim older than the lease belongs to a run that died mid-dispatch.
      claimed_at = data.get("claimedAt")
      if claimed_at is not None and claimed_at > lease_floor:
        return False

      transaction.update(doc_ref, {"claimedAt": now})
      return True

    try:
      return claim_in_transaction(transaction, doc_ref)
    except GoogleAPIError as exc:
      raise StoreError(f"Claim failed for notification {notification_id}: {exc}") from exc

  async def release_claim(self, notification_id: str) -> None:
    await self._update(notification_id, {"claimedAt": firestore.DELETE_FIELD})

  async def mark_sent(self, notification_id: str, *, sent_at: datetime) -> None:
    await self._update(notification_id, {"sent": True, "sentAt": sent_at, "claimedAt": firestore.DELETE_FIELD})

  async def mark_skipped(self, notification_id: str, *, skipped_at: datetime) -> None:
    await self._update(notification_id, {"skipped": True, "skippedAt": skipped_at})

  async def _update(self, notification_id: str, fields: dict) -> None:
    await run_in_threadpool(self._update_sync, notification_id, fields)

  def _update_sync(self, notification_id: str, fields: dict) -> None:
    # update() fails when the document is gone, so a swept record is never resurrected.
    try:
      self._collection().document(notification_id).update(fields)
    except GoogleAPIError as exc:
      raise StoreError(f"Update failed for notification {notification_id}: {exc}") from exc

  async def list_purgeable_ids(self, *, kind: PurgeKind, cutoff: datetime, limit: int) -> list[str]:
    """Return ids of sent or skipped records stamped before the cutoff."""
    return await run_in_threadpool(self._list_purgeable_ids_sync, kind, cutoff, limit)

  def _list_purgeable_ids_sync(self, kind: PurgeKind, cutoff: datetime, limit: int) -> list[str]:
    flag_field, stamp_field = _PURGE_FIELDS[kind]
    query = self._collection().where(filter=FieldFilter(flag_field, "==", True)).where(filter=FieldFilter(stamp_field, "<", cutoff)).limit(limit)
    try:
      return [snapshot.id for snapshot in query.stream()]
    except GoogleAPIError as exc:
      raise StoreError(f"Purge query failed kind={kind}: {exc}") from exc

  async def delete_many(self, notification_ids: list[str]) -> int:
    """Delete records in one write batch."""
    if not notification_ids:
      return 0
    return await run_in_threadpool(self._delete_many_sync, notification_ids)

  def _delete_many_sync(self, notification_ids: list[str]) -> int:
    batch = self._db.batch()
    for notification_id in notification_ids:
      batch.delete(self._collection().document(notification_id))
    try:
      batch.commit()
    except GoogleAPIError as exc:
      raise StoreError(f"Batch delete of {len(notification_ids)} notification(s) failed: {exc}") from exc
    return len(notification_ids)
