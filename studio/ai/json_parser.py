"""Payload extraction and lenient JSON parsing for completion output."""

from __future__ import annotations

import json
import re
from typing import Any

_TRAILING_COMMA_RE = re.compile(r",\s*([}\]])")
_FENCE_OPEN_RE = re.compile(r"^```[a-zA-Z0-9_-]*\s*\n?")
_FENCE_CLOSE_RE = re.compile(r"\n?```\s*$")


def strip_code_fences(text: str) -> str:
  """Remove a wrapping markdown code fence (```json ... ```) when present."""
  stripped = text.strip()
  if not stripped.startswith("```"):
    return stripped
  stripped = _FENCE_OPEN_RE.sub("", stripped, count=1)
  stripped = _FENCE_CLOSE_RE.sub("", stripped, count=1)
  return stripped.strip()


def extract_payload(text: str) -> str:
  """Return the JSON-looking portion of a completion.

  Fences are stripped first. When the remainder does not open with a JSON
  container character, the first brace-delimited object in the text is used
  instead; if none exists the stripped text is returned unchanged so the
  caller's parse attempt reports the failure.
  """
  payload = strip_code_fences(text)
  if payload.startswith("{") or payload.startswith("["):
    return payload
  start = payload.find("{")
  end = payload.rfind("}")
  if start != -1 and end > start:
    return payload[start : end + 1]
  return payload


def parse_payload(text: str, *, lenient: bool = True) -> Any:
  """Extract and parse a completion payload.

  Strict parsing is attempted first. With ``lenient`` set, a balanced block is
  re-extracted and trailing commas are stripped before giving up. Raises
  ``json.JSONDecodeError`` when every pass fails.
  """
  payload = extract_payload(text)
  try:
    return json.loads(payload)
  except json.JSONDecodeError as exc:
    if not lenient:
      raise
    last_error = exc

  candidate = _extract_balanced_block(payload)
  if candidate is None:
    raise last_error

  for attempt in (candidate, _TRAILING_COMMA_RE.sub(r"\1", candidate)):
    try:
      return json.loads(attempt)
    except json.JSONDecodeError as exc:
      last_error = exc

  raise last_error


def _extract_balanced_block(raw: str) -> str | None:
  """Locate the first balanced JSON object/array while honoring string escapes."""
  start_index: int | None = None
  depth = 0
  in_string = False
  escape = False

  for index, char in enumerate(raw):
    if start_index is None:
      if char in "{[":
        start_index = index
        depth = 1
      continue

    if in_string:
      if escape:
        escape = False
      elif char == "\\":
        escape = True
      elif char == '"':
        in_string = False
      continue

    if char == '"':
      in_string = True
    elif char in "{[":
      depth += 1
    elif char in "}]":
      depth -= 1
      if depth == 0:
        return raw[start_index : index + 1]

  # Unbalanced: the payload was cut off before its closing bracket.
  return None
