"""Logging setup shared by the HTTP service and the one-shot job runner."""

from __future__ import annotations

import logging
import logging.handlers
import sys
import time
import traceback
from pathlib import Path
from types import TracebackType

from notifier.config import Settings

LOG_LINE_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%dT%H:%M:%S"

# Frames kept from the bottom of a traceback on stdout.
TRACEBACK_TAIL_FRAMES = 5

_log_file_path: Path | None = None
_initialized = False


class TruncatedFormatter(logging.Formatter):
  """Keep the first and the last few traceback lines so stdout stays readable in Cloud Logging."""

  def formatException(self, ei: tuple[type[BaseException], BaseException, TracebackType | None] | tuple[None, None, None]) -> str:  # noqa: N802
    lines = traceback.format_exception(*ei)
    if len(lines) <= TRACEBACK_TAIL_FRAMES + 1:
      return "".join(lines)
    return "".join([lines[0], "    ...\n", *lines[-TRACEBACK_TAIL_FRAMES:]])


def _rotated_name(default_name: str) -> str:
  # notifier_x.log.3 -> notifier_x.log-3
  stem, _, suffix = default_name.rpartition(".")
  return f"{stem}-{suffix}" if stem and suffix.isdigit() else default_name


def _build_file_handler(settings: Settings) -> tuple[logging.Handler, Path]:
  """Open a size-rotated log file in `settings.log_dir`."""
  log_dir = Path(settings.log_dir or "logs").resolve()
  try:
    log_dir.mkdir(parents=True, exist_ok=True)
  except OSError as exc:
    raise RuntimeError(f"Cannot create log directory {log_dir}: {exc}") from exc

  log_path = log_dir / f"notifier_{time.strftime('%Y%m%d_%H%M%S')}.log"
  handler = logging.handlers.RotatingFileHandler(log_path, encoding="utf-8", maxBytes=settings.log_max_bytes, backupCount=settings.log_backup_count)
  handler.namer = _rotated_name
  # Files keep the full traceback.
  handler.setFormatter(logging.Formatter(LOG_LINE_FORMAT, datefmt=LOG_DATE_FORMAT))
  return handler, log_path


def setup_logging(settings: Settings) -> Path | None:
  """Attach stdout (and optionally file) handlers to the root and uvicorn loggers."""
  stdout_handler = logging.StreamHandler(sys.stdout)
  stdout_handler.setFormatter(TruncatedFormatter(LOG_LINE_FORMAT, datefmt=LOG_DATE_FORMAT))
  handlers: list[logging.Handler] = [stdout_handler]

  log_path: Path | None = None
  if settings.log_dir:
    file_handler, log_path = _build_file_handler(settings)
    handlers.append(file_handler)

  # uvicorn installs its own handlers; replace them so every line shares one format.
  for name in ("uvicorn", "uvicorn.error", "uvicorn.access"):
    uvicorn_logger = logging.getLogger(name)
    uvicorn_logger.handlers = list(handlers)
    uvicorn_logger.propagate = False

  logging.basicConfig(level=logging.DEBUG if settings.debug else logging.INFO, handlers=handlers, force=True)
  return log_path


def initialize_logging(settings: Settings) -> None:
  """Configure logging on first call; later calls are no-ops."""
  global _log_file_path, _initialized
  if _initialized:
    return
  _log_file_path = setup_logging(settings)
  _initialized = True
  logging.getLogger(__name__).info("Logging initialized environment=%s file=%s", settings.environment, _log_file_path or "-")
