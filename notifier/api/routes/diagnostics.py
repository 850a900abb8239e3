"""Manual trigger for checking push delivery end-to-end."""

from __future__ import annotations

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse

from notifier.api.deps import get_push_gateway, get_user_directory
from notifier.notifications.contracts import NoEligibleRecipientError, PushGateway, UserDirectory
from notifier.services.adhoc import send_test_notification

router = APIRouter()
logger = logging.getLogger(__name__)


@router.api_route("/test-notification", methods=["GET", "POST"])
async def trigger_test_notification(users: Annotated[UserDirectory, Depends(get_user_directory)], gateway: Annotated[PushGateway, Depends(get_push_gateway)]) -> JSONResponse:
  """Send the fixed test notification to one student and report the outcome."""
  try:
    result = await send_test_notification(users, gateway)
  except NoEligibleRecipientError as exc:
    return JSONResponse(status_code=status.HTTP_404_NOT_FOUND, content={"success": False, "error": str(exc)})
  except Exception as exc:  # noqa: BLE001
    logger.error("Error sending test notification: %s", exc, exc_info=True)
    return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content={"success": False, "error": str(exc)})

  return JSONResponse(content={"success": True, "messageId": result.message_id, "sentTo": result.sent_to})
