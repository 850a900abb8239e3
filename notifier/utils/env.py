"""Read a local `.env` file into the environment before settings load."""

from __future__ import annotations

import os
from pathlib import Path

_QUOTES = ('"', "'")


def default_env_path() -> Path:
  return Path(__file__).resolve().parents[2] / ".env"


def parse_env_line(raw_line: str) -> tuple[str, str] | None:
  """Return the (key, value) pair of one `.env` line, or None for blanks, comments and junk."""
  line = raw_line.strip()
  if not line or line.startswith("#"):
    return None
  line = line.removeprefix("export ").lstrip()
  key, separator, value = line.partition("=")
  key = key.strip()
  if not separator or not key:
    return None
  value = value.strip()
  if len(value) >= 2 and value[0] == value[-1] and value[0] in _QUOTES:
    value = value[1:-1]
  return key, value


def load_env_file(path: Path, *, override: bool = False) -> None:
  """Export every pair in `path`; real environment variables win unless `override` is set."""
  if not path.is_file():
    return

  for raw_line in path.read_text(encoding="utf-8").splitlines():
    parsed = parse_env_line(raw_line)
    if parsed is None:
      continue
    key, value = parsed
    if override or key not in os.environ:
      os.environ[key] = value
