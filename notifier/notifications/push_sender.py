"""Push gateway implementations."""

from __future__ import annotations

import logging

from firebase_admin import exceptions as firebase_exceptions
from firebase_admin import messaging

from notifier.notifications.contracts import MulticastResult, PushDeliveryError, PushGateway, PushPayload

logger = logging.getLogger(__name__)

# FCM rejects multicast messages addressed to more tokens than this.
FCM_MULTICAST_MAX_TOKENS = 500


class FcmPushGateway(PushGateway):
  """`firebase_admin.messaging` backed gateway with a single attempt per call."""

  def send_multicast(self, payload: PushPayload, tokens: list[str]) -> MulticastResult:
    """Send one payload to every token, splitting oversized recipient lists into provider-sized chunks.

    Raises PushDeliveryError only while nothing has been delivered. Once a chunk has reached
    devices, a failing later chunk is reported through `failed_tokens` instead, so the record
    is committed and the delivered chunk is never sent twice.
    """
    success_count = 0
    failure_count = 0
    failed_tokens: list[str] = []

    for start in range(0, len(tokens), FCM_MULTICAST_MAX_TOKENS):
      chunk = tokens[start : start + FCM_MULTICAST_MAX_TOKENS]
      message = messaging.MulticastMessage(tokens=chunk, notification=_notification(payload), data=dict(payload.data), android=_android_config(payload))
      try:
        response = messaging.send_each_for_multicast(message)
      except (firebase_exceptions.FirebaseError, ValueError) as exc:
        if success_count == 0:
          raise PushDeliveryError(f"Multicast submission failed: {exc}") from exc
        logger.warning("Multicast chunk of %s token(s) failed after %s delivered: %s", len(chunk), success_count, exc)
        failure_count += len(chunk)
        failed_tokens.extend(chunk)
        continue

      success_count += response.success_count
      failure_count += response.failure_count
      # Responses are index-aligned with the tokens of the submitted chunk.
      for token, send_response in zip(chunk, response.responses, strict=False):
        if not send_response.success:
          failed_tokens.append(token)

    return MulticastResult(success_count=success_count, failure_count=failure_count, failed_tokens=failed_tokens)

  def send(self, payload: PushPayload, token: str) -> str:
    """Send one payload to one device and return the FCM message id."""
    message = messaging.Message(token=token, notification=_notification(payload), data=dict(payload.data), android=_android_config(payload))
    try:
      return messaging.send(message)
    except (firebase_exceptions.FirebaseError, ValueError) as exc:
      raise PushDeliveryError(f"Push submission failed: {exc}") from exc


class NullPushGateway(PushGateway):
  """No-op gateway used when push delivery is disabled; every token counts as delivered."""

  def send_multicast(self, payload: PushPayload, tokens: list[str]) -> MulticastResult:
    logger.debug("Push delivery disabled; dropping multicast title=%s recipients=%s", payload.title, len(tokens))
    return MulticastResult(success_count=len(tokens), failure_count=0)

  def send(self, payload: PushPayload, token: str) -> str:
    logger.debug("Push delivery disabled; dropping single push title=%s", payload.title)
    return "push-disabled"


def _notification(payload: PushPayload) -> messaging.Notification:
  return messaging.Notification(title=payload.title, body=payload.body)


def _android_config(payload: PushPayload) -> messaging.AndroidConfig | None:
  """Map the platform hints onto Android delivery options."""
  if payload.priority == "normal" and payload.android_channel_id is None and payload.sound is None:
    return None
  android_notification = messaging.AndroidNotification(channel_id=payload.android_channel_id, sound=payload.sound, priority=payload.priority if payload.priority == "high" else None)
  return messaging.AndroidConfig(priority=payload.priority, notification=android_notification)
