from __future__ import annotations

import os

import pytest

from notifier.config import get_settings
from notifier.utils.env import load_env_file, parse_env_line

_ENV_VARS = (
  "NOTIFIER_ENV",
  "NOTIFIER_DEBUG",
  "NOTIFIER_LOG_DIR",
  "NOTIFIER_PUSH_ENABLED",
  "NOTIFIER_NOTIFICATIONS_COLLECTION",
  "NOTIFIER_USERS_COLLECTION",
  "NOTIFIER_DISPATCH_LOOKBACK_SECONDS",
  "NOTIFIER_CLAIM_LEASE_SECONDS",
  "NOTIFIER_RETENTION_DAYS",
  "NOTIFIER_DELETE_BATCH_SIZE",
  "NOTIFIER_TASK_SECRET",
  "FIREBASE_PROJECT_ID",
)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
  for name in _ENV_VARS:
    monkeypatch.delenv(name, raising=False)
  get_settings.cache_clear()
  yield
  get_settings.cache_clear()


def test_settings_defaults():
  settings = get_settings()

  assert settings.environment == "development"
  assert settings.debug is False
  assert settings.log_dir is None
  assert settings.push_enabled is True
  assert settings.notifications_collection == "scheduled_notifications"
  assert settings.users_collection == "users"
  assert settings.dispatch_lookback_seconds == 60
  assert settings.claim_lease_seconds == 30
  assert settings.retention_days == 30
  assert settings.delete_batch_size == 500
  assert settings.task_secret is None


def test_settings_read_overrides(monkeypatch):
  monkeypatch.setenv("NOTIFIER_ENV", "Production")
  monkeypatch.setenv("NOTIFIER_PUSH_ENABLED", "false")
  monkeypatch.setenv("NOTIFIER_RETENTION_DAYS", "14")
  monkeypatch.setenv("NOTIFIER_DELETE_BATCH_SIZE", "100")
  monkeypatch.setenv("NOTIFIER_TASK_SECRET", "  s3cret  ")
  monkeypatch.setenv("FIREBASE_PROJECT_ID", "attendance-prod")

  settings = get_settings()

  assert settings.environment == "production"
  assert settings.push_enabled is False
  assert settings.retention_days == 14
  assert settings.delete_batch_size == 100
  assert settings.task_secret == "s3cret"
  assert settings.firebase_project_id == "attendance-prod"


def test_blank_task_secret_is_treated_as_unset(monkeypatch):
  monkeypatch.setenv("NOTIFIER_TASK_SECRET", "   ")

  assert get_settings().task_secret is None


@pytest.mark.parametrize("name,value", [("NOTIFIER_DISPATCH_LOOKBACK_SECONDS", "0"), ("NOTIFIER_RETENTION_DAYS", "-3"), ("NOTIFIER_CLAIM_LEASE_SECONDS", "soon")])
def test_invalid_numeric_settings_raise(monkeypatch, name, value):
  monkeypatch.setenv(name, value)

  with pytest.raises(ValueError):
    get_settings()


def test_delete_batch_size_is_capped_by_firestore_limit(monkeypatch):
  monkeypatch.setenv("NOTIFIER_DELETE_BATCH_SIZE", "501")

  with pytest.raises(ValueError, match="must not exceed 500"):
    get_settings()


@pytest.mark.parametrize(
  "line,expected",
  [
    ("NOTIFIER_TASK_SECRET=abc", ("NOTIFIER_TASK_SECRET", "abc")),
    ("export FIREBASE_PROJECT_ID='attendance-dev'", ("FIREBASE_PROJECT_ID", "attendance-dev")),
    ('NOTIFIER_ENV = "staging" ', ("NOTIFIER_ENV", "staging")),
    ("# comment", None),
    ("", None),
    ("NO_SEPARATOR", None),
  ],
)
def test_parse_env_line(line, expected):
  assert parse_env_line(line) == expected


def test_load_env_file_keeps_existing_environment(monkeypatch, tmp_path):
  env_file = tmp_path / ".env"
  env_file.write_text("NOTIFIER_RETENTION_DAYS=7\nNOTIFIER_ENV=staging\n", encoding="utf-8")
  monkeypatch.setenv("NOTIFIER_ENV", "production")
  # Registers an undo so the value written by the loader does not leak into other tests.
  monkeypatch.setenv("NOTIFIER_RETENTION_DAYS", "30")
  monkeypatch.delenv("NOTIFIER_RETENTION_DAYS")

  load_env_file(env_file)

  assert os.environ["NOTIFIER_RETENTION_DAYS"] == "7"
  assert os.environ["NOTIFIER_ENV"] == "production"
  assert get_settings().retention_days == 7


@pytest.mark.parametrize("lease", ["60", "90"])
def test_claim_lease_must_be_shorter_than_lookback(monkeypatch, lease):
  monkeypatch.setenv("NOTIFIER_DISPATCH_LOOKBACK_SECONDS", "60")
  monkeypatch.setenv("NOTIFIER_CLAIM_LEASE_SECONDS", lease)

  with pytest.raises(ValueError, match="must be shorter than"):
    get_settings()


def test_claim_lease_below_lookback_is_accepted(monkeypatch):
  monkeypatch.setenv("NOTIFIER_DISPATCH_LOOKBACK_SECONDS", "120")
  monkeypatch.setenv("NOTIFIER_CLAIM_LEASE_SECONDS", "90")

  settings = get_settings()

  assert settings.claim_lease_seconds == 90
  assert settings.dispatch_lookback_seconds == 120
