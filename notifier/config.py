"""Application configuration loaded from environment variables."""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache

from notifier.schema.notifications import NOTIFICATIONS_COLLECTION, USERS_COLLECTION
from notifier.utils.env import default_env_path, load_env_file

load_env_file(default_env_path(), override=False)

# Firestore rejects write batches larger than this.
FIRESTORE_MAX_BATCH_WRITES = 500


@dataclass(frozen=True)
class Settings:
  """Typed settings for the notification dispatcher."""

  environment: str
  debug: bool
  log_dir: str | None
  log_max_bytes: int
  log_backup_count: int
  log_http_4xx: bool
  firebase_project_id: str | None
  firebase_service_account_json_path: str | None
  push_enabled: bool
  notifications_collection: str
  users_collection: str
  dispatch_lookback_seconds: int
  claim_lease_seconds: int
  retention_days: int
  delete_batch_size: int
  task_secret: str | None


_TRUTHY = frozenset({"1", "true", "yes", "on"})


def _parse_bool(raw: str | None, *, default: bool = False) -> bool:
  """Read a flag such as `NOTIFIER_PUSH_ENABLED`; unset or blank falls back to `default`."""
  value = (raw or "").strip().lower()
  return value in _TRUTHY if value else default


def _parse_positive_int(name: str, default: str) -> int:
  value = int(os.getenv(name, default))
  if value <= 0:
    raise ValueError(f"{name} must be a positive integer.")
  return value


@lru_cache(maxsize=1)
def get_settings() -> Settings:
  """Build settings from the environment once per process; tests call `get_settings.cache_clear()`."""
  environment = os.getenv("NOTIFIER_ENV", "development").lower()
  debug = _parse_bool(os.getenv("NOTIFIER_DEBUG"))

  log_max_bytes = _parse_positive_int("NOTIFIER_LOG_MAX_BYTES", "5242880")  # 5MB default
  log_backup_count = int(os.getenv("NOTIFIER_LOG_BACKUP_COUNT", "10"))
  if log_backup_count < 0:
    raise ValueError("NOTIFIER_LOG_BACKUP_COUNT must be zero or a positive integer.")

  # The lookback matches the scheduler tick so a slightly late trigger still sees the previous minute.
  dispatch_lookback_seconds = _parse_positive_int("NOTIFIER_DISPATCH_LOOKBACK_SECONDS", "60")
  claim_lease_seconds = _parse_positive_int("NOTIFIER_CLAIM_LEASE_SECONDS", "30")
  # A claim left by a crashed run must expire while the record is still inside the window.
  if claim_lease_seconds >= dispatch_lookback_seconds:
    raise ValueError("NOTIFIER_CLAIM_LEASE_SECONDS must be shorter than NOTIFIER_DISPATCH_LOOKBACK_SECONDS.")
  retention_days = _parse_positive_int("NOTIFIER_RETENTION_DAYS", "30")

  delete_batch_size = _parse_positive_int("NOTIFIER_DELETE_BATCH_SIZE", str(FIRESTORE_MAX_BATCH_WRITES))
  if delete_batch_size > FIRESTORE_MAX_BATCH_WRITES:
    raise ValueError(f"NOTIFIER_DELETE_BATCH_SIZE must not exceed {FIRESTORE_MAX_BATCH_WRITES}.")

  return Settings(
    environment=environment,
    debug=debug,
    log_dir=_optional_str(os.getenv("NOTIFIER_LOG_DIR")),
    log_max_bytes=log_max_bytes,
    log_backup_count=log_backup_count,
    log_http_4xx=_parse_bool(os.getenv("NOTIFIER_LOG_HTTP_4XX")),
    firebase_project_id=_optional_str(os.getenv("FIREBASE_PROJECT_ID")),
    firebase_service_account_json_path=_optional_str(os.getenv("FIREBASE_SERVICE_ACCOUNT_JSON_PATH")),
    push_enabled=_parse_bool(os.getenv("NOTIFIER_PUSH_ENABLED"), default=True),
    notifications_collection=(os.getenv("NOTIFIER_NOTIFICATIONS_COLLECTION") or NOTIFICATIONS_COLLECTION).strip(),
    users_collection=(os.getenv("NOTIFIER_USERS_COLLECTION") or USERS_COLLECTION).strip(),
    dispatch_lookback_seconds=dispatch_lookback_seconds,
    claim_lease_seconds=claim_lease_seconds,
    retention_days=retention_days,
    delete_batch_size=delete_batch_size,
    task_secret=_optional_str(os.getenv("NOTIFIER_TASK_SECRET")),
  )


def _optional_str(raw: str | None) -> str | None:
  value = (raw or "").strip()
  return value or None
