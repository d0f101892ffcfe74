"""Local ``.env`` support for development runs."""

from __future__ import annotations

import os
from collections.abc import Iterable
from pathlib import Path

_QUOTES = ('"', "'")


def default_env_path() -> Path:
  """Return the ``.env`` path next to the ``studio`` package."""
  return Path(__file__).resolve().parents[2] / ".env"


def _unquote(value: str) -> str:
  if len(value) >= 2 and value[0] == value[-1] and value[0] in _QUOTES:
    return value[1:-1]
  return value


def parse_env_lines(lines: Iterable[str]) -> dict[str, str]:
  """Parse ``KEY=value`` lines; comments, blanks and malformed lines are skipped."""
  values: dict[str, str] = {}
  for raw_line in lines:
    line = raw_line.strip()
    if not line or line.startswith("#"):
      continue
    line = line.removeprefix("export ").lstrip()
    key, sep, value = line.partition("=")
    key = key.strip()
    if not sep or not key:
      continue
    values[key] = _unquote(value.strip())
  return values


def load_env_file(path: Path, *, override: bool = False) -> list[str]:
  """Copy a ``.env`` file into ``os.environ`` and return the keys that were set.

  Variables already present in the process environment win unless ``override``.
  """
  if not path.is_file():
    return []

  applied: list[str] = []
  for key, value in parse_env_lines(path.read_text(encoding="utf-8").splitlines()).items():
    if not override and key in os.environ:
      continue
    os.environ[key] = value
    applied.append(key)
  return applied
