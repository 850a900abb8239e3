"""On-demand delivery of a single fixed notification to check the push pipeline."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import UTC, datetime

from starlette.concurrency import run_in_threadpool

from notifier.notifications.contracts import NoEligibleRecipientError, PushGateway, UserDirectory
from notifier.notifications.payloads import build_test_payload

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AdhocSendResult:
  message_id: str
  sent_to: str | None


async def send_test_notification(users: UserDirectory, gateway: PushGateway, *, now: datetime | None = None) -> AdhocSendResult:
  """Send the fixed test payload to the first student with a device token."""
  recipient = await users.find_test_recipient()
  # Mirrors the `fcmToken != null` lookup: an empty token is still sent and fails at the gateway.
  if recipient is None or recipient.fcm_token is None:
    raise NoEligibleRecipientError("No students with FCM tokens found")

  payload = build_test_payload(now=now or datetime.now(UTC))
  message_id = await run_in_threadpool(gateway.send, payload, recipient.fcm_token)
  logger.info("Test notification sent user_id=%s message_id=%s", recipient.id, message_id)
  return AdhocSendResult(message_id=message_id, sent_to=recipient.name)
