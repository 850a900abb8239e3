"""Firestore lookups against the app's `users` collection."""

from __future__ import annotations

from google.api_core.exceptions import GoogleAPIError
from google.cloud.firestore import Client as FirestoreClient
from google.cloud.firestore import FieldFilter
from starlette.concurrency import run_in_threadpool

from notifier.notifications.contracts import StoreError, UserDirectory
from notifier.schema.notifications import STUDENT_ROLE, USERS_COLLECTION, UserAccount


class FirestoreUserDirectory(UserDirectory):
  """Read-only access to user accounts."""

  def __init__(self, db: FirestoreClient, *, collection: str = USERS_COLLECTION) -> None:
    self._db = db
    self._collection_name = collection

  async def find_test_recipient(self) -> UserAccount | None:
    """Return the first student that has registered an FCM token."""
    return await run_in_threadpool(self._find_test_recipient_sync)

  def _find_test_recipient_sync(self) -> UserAccount | None:
    query = self._db.collection(self._collection_name).where(filter=FieldFilter("role", "==", STUDENT_ROLE)).where(filter=FieldFilter("fcmToken", "!=", None)).limit(1)
    try:
      snapshots = list(query.stream())
    except GoogleAPIError as exc:
      raise StoreError(f"Test recipient lookup failed: {exc}") from exc

    if not snapshots:
      return None
    return UserAccount.from_document(snapshots[0].id, snapshots[0].to_dict() or {})
