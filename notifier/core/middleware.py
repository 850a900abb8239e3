import logging
import time
import uuid
from typing import Any

from starlette.datastructures import MutableHeaders
from starlette.types import ASGIApp, Message, Receive, Scope, Send

logger = logging.getLogger("notifier.core.middleware")

REQUEST_ID_HEADER = "x-request-id"


class RequestLoggingMiddleware:
  """Tag every HTTP request with an id and log its outcome and duration.

  Scheduler-triggered job runs are only visible through these lines, so the
  id is echoed back in the response header and kept on `request.state`.
  """

  def __init__(self, app: ASGIApp) -> None:
    self.app = app

  async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
    if scope["type"] != "http":
      await self.app(scope, receive, send)
      return

    request_id = uuid.uuid4().hex
    state: dict[str, Any] = scope.setdefault("state", {})
    state["request_id"] = request_id
    started = time.perf_counter()
    response_status = 0

    async def send_with_request_id(message: Message) -> None:
      nonlocal response_status
      if message["type"] == "http.response.start":
        response_status = message["status"]
        MutableHeaders(scope=message).setdefault(REQUEST_ID_HEADER, request_id)
      await send(message)

    try:
      await self.app(scope, receive, send_with_request_id)
    finally:
      elapsed_ms = (time.perf_counter() - started) * 1000
      logger.info("%s %s status=%s request_id=%s duration_ms=%.1f", scope.get("method", "-"), scope.get("path", ""), response_status, request_id, elapsed_ms)
