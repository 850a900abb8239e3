"""Factory helpers for the dispatcher's collaborators."""

from __future__ import annotations

from google.cloud.firestore import Client as FirestoreClient

from notifier.config import Settings
from notifier.notifications.contracts import NotificationStore, PushGateway, UserDirectory
from notifier.notifications.push_sender import FcmPushGateway, NullPushGateway
from notifier.storage.notifications_repo import FirestoreNotificationRepository
from notifier.storage.users_repo import FirestoreUserDirectory


def build_push_gateway(settings: Settings) -> PushGateway:
  """Construct the push gateway based on environment configuration."""
  # Disabled push keeps local runs from reaching real devices.
  if settings.push_enabled:
    return FcmPushGateway()
  return NullPushGateway()


def build_notification_store(settings: Settings, db: FirestoreClient) -> NotificationStore:
  return FirestoreNotificationRepository(db, collection=settings.notifications_collection)


def build_user_directory(settings: Settings, db: FirestoreClient) -> UserDirectory:
  return FirestoreUserDirectory(db, collection=settings.users_collection)
