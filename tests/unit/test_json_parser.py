from __future__ import annotations

import json

import pytest

from studio.ai.json_parser import extract_payload, parse_payload, strip_code_fences


def test_strip_code_fences_handles_language_tags() -> None:
  assert strip_code_fences('```json\n{"a": 1}\n```') == '{"a": 1}'
  assert strip_code_fences('```\n{"a": 1}\n```') == '{"a": 1}'
  assert strip_code_fences('  {"a": 1}  ') == '{"a": 1}'


def test_extract_payload_finds_embedded_object() -> None:
  assert extract_payload('Sure! {"a": {"b": 2}} Hope this helps.') == '{"a": {"b": 2}}'
  assert extract_payload("[1, 2]") == "[1, 2]"
  assert extract_payload("no json here") == "no json here"


def test_lenient_parse_ignores_trailing_text_after_balanced_block() -> None:
  assert parse_payload('{"a": "x}y", "b": [1, 2]} {"c": 3}') == {"a": "x}y", "b": [1, 2]}


def test_strict_parse_raises_on_trailing_comma() -> None:
  with pytest.raises(json.JSONDecodeError):
    parse_payload('{"a": 1,}', lenient=False)
  assert parse_payload('{"a": 1,}') == {"a": 1}


def test_unbalanced_payload_raises() -> None:
  with pytest.raises(json.JSONDecodeError):
    parse_payload('{"a": [1, 2')
