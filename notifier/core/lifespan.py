import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from notifier.config import get_settings
from notifier.core.firebase import initialize_firebase
from notifier.core.logging import initialize_logging


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
  """Set up logging and the shared Firebase app before serving requests."""
  settings = get_settings()
  logger = logging.getLogger("notifier.core.lifespan")

  initialize_logging(settings)
  # Firebase holds the process-wide Firestore and FCM clients for every job.
  initialize_firebase(settings)
  logger.info("Startup complete environment=%s push_enabled=%s", settings.environment, settings.push_enabled)

  yield
