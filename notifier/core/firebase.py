"""Process-wide Firebase app shared by the Firestore store and the FCM gateway."""

from __future__ import annotations

import logging

import firebase_admin
from firebase_admin import credentials, firestore
from google.cloud.firestore import Client as FirestoreClient

from notifier.config import Settings, get_settings

logger = logging.getLogger(__name__)


def _credential(settings: Settings) -> credentials.Base:
  if settings.firebase_service_account_json_path:
    return credentials.Certificate(settings.firebase_service_account_json_path)
  # Cloud Run and local gcloud logins both resolve through ADC.
  return credentials.ApplicationDefault()


def initialize_firebase(settings: Settings | None = None) -> bool:
  """Create the default Firebase app once; return whether one is available."""
  if firebase_admin._apps:
    return True

  settings = settings or get_settings()
  if not settings.firebase_project_id:
    logger.warning("FIREBASE_PROJECT_ID is not set; Firestore and FCM are unavailable.")
    return False

  try:
    firebase_admin.initialize_app(_credential(settings), {"projectId": settings.firebase_project_id})
  except (ValueError, OSError) as exc:
    logger.error("Firebase initialization failed project_id=%s: %s", settings.firebase_project_id, exc)
    return False

  logger.info("Firebase initialized project_id=%s", settings.firebase_project_id)
  return True


def get_firestore_client() -> FirestoreClient | None:
  """Return the Firestore client for the default app, or None when Firebase is not configured."""
  if not initialize_firebase():
    return None

  try:
    return firestore.client()
  except Exception as exc:  # noqa: BLE001
    logger.error("Firestore client unavailable: %s", exc)
    return None
