"""FastAPI exception handlers that log failures and keep internals out of responses."""

from __future__ import annotations

import logging
from typing import Any

from fastapi import HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from notifier.config import get_settings
from notifier.notifications.contracts import NoEligibleRecipientError, NotificationError

logger = logging.getLogger("uvicorn.error")

# Pydantic error keys that may echo request data (headers carry the task secret).
_UNSAFE_ERROR_KEYS = frozenset({"input", "ctx", "url"})
_JSON_SCALARS = (str, int, float, bool, list, tuple)


def _request_id(request: Request) -> str | None:
  return getattr(request.state, "request_id", None)


def _error_payload(detail: Any, *, request_id: str | None = None) -> dict[str, Any]:
  """Wrap `detail` in the standard error body, tagged with the request id when known."""
  payload: dict[str, Any] = {"detail": detail}
  if request_id:
    payload["requestId"] = request_id
  return payload


def _sanitize_validation_errors(errors: list[dict[str, Any]]) -> list[dict[str, Any]]:
  """Strip raw input from validation errors and stringify anything that is not JSON-safe."""
  return [{key: value if value is None or isinstance(value, _JSON_SCALARS) else str(value) for key, value in error.items() if key not in _UNSAFE_ERROR_KEYS} for error in errors]


async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
  request_id = _request_id(request)
  logger.error("Unhandled exception request_id=%s path=%s error_type=%s", request_id, request.url.path, type(exc).__name__, exc_info=True)
  return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content=_error_payload("Internal Server Error", request_id=request_id))


async def notification_exception_handler(request: Request, exc: NotificationError) -> JSONResponse:
  """Answer dispatcher failures that escape a route with the structured failure body."""
  if isinstance(exc, NoEligibleRecipientError):
    return JSONResponse(status_code=status.HTTP_404_NOT_FOUND, content={"success": False, "error": str(exc)})

  logger.error("Notification failure request_id=%s path=%s error=%s", _request_id(request), request.url.path, exc, exc_info=True)
  return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content={"success": False, "error": str(exc)})


async def request_validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
  request_id = _request_id(request)
  errors = _sanitize_validation_errors(list(exc.errors()))
  logger.warning("Request validation failed request_id=%s %s %s errors=%s", request_id, request.method, request.url.path, errors)
  return JSONResponse(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, content=_error_payload(errors, request_id=request_id))


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
  """Pass 4xx details through (auth failures on job endpoints); replace 5xx details with a generic message."""
  request_id = _request_id(request)
  if exc.status_code >= 500:
    logger.error("HTTP %s request_id=%s path=%s detail=%s", exc.status_code, request_id, request.url.path, exc.detail, exc_info=True)
    return JSONResponse(status_code=exc.status_code, content=_error_payload("Internal Server Error", request_id=request_id))

  if get_settings().log_http_4xx:
    logger.warning("HTTP %s request_id=%s path=%s detail=%s", exc.status_code, request_id, request.url.path, exc.detail)
  return JSONResponse(status_code=exc.status_code, content=_error_payload(exc.detail, request_id=request_id), headers=exc.headers)
