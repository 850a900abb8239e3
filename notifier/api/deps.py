"""Shared FastAPI dependencies for collaborators and internal job auth."""

from __future__ import annotations

import logging
import secrets

from fastapi import Depends, Header, HTTPException, status
from google.cloud.firestore import Client as FirestoreClient

from notifier.config import Settings, get_settings
from notifier.core.firebase import get_firestore_client
from notifier.notifications.contracts import NotificationStore, PushGateway, StoreError, UserDirectory
from notifier.notifications.factory import build_notification_store, build_push_gateway, build_user_directory

logger = logging.getLogger(__name__)


def get_firestore() -> FirestoreClient:
  """Return the process-wide Firestore client."""
  db = get_firestore_client()
  if db is None:
    raise StoreError("Firestore client is not available.")
  return db


def get_notification_store(settings: Settings = Depends(get_settings), db: FirestoreClient = Depends(get_firestore)) -> NotificationStore:  # noqa: B008
  return build_notification_store(settings, db)


def get_user_directory(settings: Settings = Depends(get_settings), db: FirestoreClient = Depends(get_firestore)) -> UserDirectory:  # noqa: B008
  return build_user_directory(settings, db)


def get_push_gateway(settings: Settings = Depends(get_settings)) -> PushGateway:  # noqa: B008
  return build_push_gateway(settings)


def require_task_secret(settings: Settings = Depends(get_settings), authorization: str | None = Header(default=None), x_notifier_task_secret: str | None = Header(default=None)) -> None:  # noqa: B008
  """Reject job triggers that do not carry the shared task secret."""
  # Secure-by-default: internal job endpoints must be authenticated to avoid arbitrary sends.
  if not settings.task_secret:
    raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Task authentication is not configured.")
  expected_auth = f"Bearer {settings.task_secret}"
  # Scheduler OIDC tokens occupy Authorization, so the dedicated header is checked first.
  shared_secret_valid = secrets.compare_digest((x_notifier_task_secret or ""), settings.task_secret)
  bearer_valid = secrets.compare_digest((authorization or ""), expected_auth)
  if not shared_secret_valid and not bearer_valid:
    logger.warning("Unauthorized job trigger attempt")
    raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Invalid task secret.")
