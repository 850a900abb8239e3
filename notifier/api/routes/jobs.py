"""Internal endpoints invoked by the scheduler to run the recurring jobs."""

from __future__ import annotations

import logging
from typing import Annotated, Any

from fastapi import APIRouter, Depends, status

from notifier.api.deps import get_notification_store, get_push_gateway, require_task_secret
from notifier.config import Settings, get_settings
from notifier.notifications.contracts import NotificationStore, PushGateway
from notifier.services.dispatch import dispatch_due_notifications
from notifier.services.maintenance import purge_old_notifications

router = APIRouter(dependencies=[Depends(require_task_secret)])
logger = logging.getLogger(__name__)


@router.post("/dispatch-due", status_code=status.HTTP_200_OK)
async def dispatch_due_job(settings: Annotated[Settings, Depends(get_settings)], store: Annotated[NotificationStore, Depends(get_notification_store)], gateway: Annotated[PushGateway, Depends(get_push_gateway)]) -> dict[str, Any]:
  """Run one due-notification scan (scheduled every minute)."""
  summary = await dispatch_due_notifications(store, gateway, lookback_seconds=settings.dispatch_lookback_seconds, claim_lease_seconds=settings.claim_lease_seconds)
  # Per-record failures are retried by the next scan, so only a failed query marks the run as an error.
  return {"status": "error" if summary.query_failed else "ok", "summary": summary.to_dict()}


@router.post("/cleanup", status_code=status.HTTP_200_OK)
async def cleanup_job(settings: Annotated[Settings, Depends(get_settings)], store: Annotated[NotificationStore, Depends(get_notification_store)]) -> dict[str, Any]:
  """Run one retention sweep (scheduled daily)."""
  summary = await purge_old_notifications(store, retention_days=settings.retention_days, batch_size=settings.delete_batch_size)
  return {"status": "error" if summary.failed else "ok", "summary": summary.to_dict()}
