"""Run a single dispatcher job from cron, Cloud Run Jobs or a shell."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from typing import Any

from notifier.config import Settings, get_settings
from notifier.core.firebase import get_firestore_client, initialize_firebase
from notifier.core.logging import initialize_logging
from notifier.notifications.contracts import NoEligibleRecipientError
from notifier.notifications.factory import build_notification_store, build_push_gateway, build_user_directory
from notifier.services.adhoc import send_test_notification
from notifier.services.dispatch import dispatch_due_notifications
from notifier.services.maintenance import purge_old_notifications

logger = logging.getLogger("notifier.cli")

JOBS = ("dispatch", "cleanup", "test")


async def run_job(job: str, settings: Settings) -> tuple[bool, dict[str, Any]]:
  """Execute one job and return (ok, report)."""
  initialize_firebase(settings)
  db = get_firestore_client()
  if db is None:
    return False, {"error": "Firestore client is not available."}

  gateway = build_push_gateway(settings)
  if job == "dispatch":
    summary = await dispatch_due_notifications(build_notification_store(settings, db), gateway, lookback_seconds=settings.dispatch_lookback_seconds, claim_lease_seconds=settings.claim_lease_seconds)
    return not summary.query_failed, summary.to_dict()

  if job == "cleanup":
    cleanup = await purge_old_notifications(build_notification_store(settings, db), retention_days=settings.retention_days, batch_size=settings.delete_batch_size)
    return not cleanup.failed, cleanup.to_dict()

  try:
    result = await send_test_notification(build_user_directory(settings, db), gateway)
  except NoEligibleRecipientError as exc:
    return False, {"success": False, "error": str(exc)}
  except Exception as exc:  # noqa: BLE001
    logger.error("Error sending test notification: %s", exc, exc_info=True)
    return False, {"success": False, "error": str(exc)}
  return True, {"success": True, "messageId": result.message_id, "sentTo": result.sent_to}


def main(argv: list[str] | None = None) -> int:
  parser = argparse.ArgumentParser(description="Run one notification dispatcher job.")
  parser.add_argument("job", choices=JOBS, help="dispatch: send due reminders; cleanup: purge old records; test: send one test push")
  args = parser.parse_args(argv)

  settings = get_settings()
  initialize_logging(settings)
  ok, report = asyncio.run(run_job(args.job, settings))
  print(json.dumps(report, sort_keys=True))
  return 0 if ok else 1


if __name__ == "__main__":
  sys.exit(main())
