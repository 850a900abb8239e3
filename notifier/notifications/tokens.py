from __future__ import annotations

from collections.abc import Iterable
from typing import Any


def sanitize_tokens(raw_tokens: Iterable[Any] | None) -> list[str]:
  """Drop null, non-string and blank device tokens, keeping order and duplicates."""
  if raw_tokens is None or isinstance(raw_tokens, str | bytes):
    return []
  return [token for token in raw_tokens if isinstance(token, str) and token.strip() != ""]
