from __future__ import annotations

from fastapi import FastAPI, HTTPException
from fastapi.exceptions import RequestValidationError

from notifier.api.routes import diagnostics, jobs
from notifier.core.exceptions import global_exception_handler, http_exception_handler, notification_exception_handler, request_validation_exception_handler
from notifier.core.lifespan import lifespan
from notifier.core.middleware import RequestLoggingMiddleware
from notifier.notifications.contracts import NotificationError

__version__ = "0.1.0"

app = FastAPI(title="Class Notification Dispatcher", lifespan=lifespan, docs_url=None, redoc_url=None, openapi_url=None)

app.add_exception_handler(Exception, global_exception_handler)
app.add_exception_handler(HTTPException, http_exception_handler)
app.add_exception_handler(NotificationError, notification_exception_handler)
app.add_exception_handler(RequestValidationError, request_validation_exception_handler)

app.add_middleware(RequestLoggingMiddleware)


@app.get("/health", include_in_schema=False)
async def health_check() -> dict[str, str]:
  """Return a simple health status."""
  return {"status": "ok", "version": __version__}


app.include_router(diagnostics.router, tags=["diagnostics"])
app.include_router(jobs.router, prefix="/internal/jobs", tags=["jobs"])
