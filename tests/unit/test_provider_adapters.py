from __future__ import annotations

from types import SimpleNamespace
from typing import Any

import httpx
import pytest

from studio.ai.errors import ProviderError
from studio.ai.providers.anthropic import AnthropicModel
from studio.ai.providers.gemini import GeminiModel
from studio.ai.providers.openrouter import OpenRouterModel


class _Recorder:
  def __init__(self, response: Any) -> None:
    self.response = response
    self.kwargs: dict[str, Any] = {}

  async def create(self, **kwargs: Any) -> Any:
    self.kwargs = kwargs
    return self.response


def _anthropic_response(stop_reason: str) -> SimpleNamespace:
  content = [SimpleNamespace(type="text", text='{"weeks": []'), SimpleNamespace(type="thinking", text="ignored")]
  return SimpleNamespace(content=content, stop_reason=stop_reason, usage=SimpleNamespace(input_tokens=120, output_tokens=900), model="claude-sonnet-4-5-20250929")


@pytest.mark.anyio
@pytest.mark.parametrize(("stop_reason", "expected"), [("max_tokens", "truncated"), ("end_turn", "complete")])
async def test_anthropic_stop_reason_maps_to_termination(stop_reason: str, expected: str) -> None:
  model = AnthropicModel("claude-sonnet-4-5-20250929", api_key="test-key")
  messages = _Recorder(_anthropic_response(stop_reason))
  model._client = SimpleNamespace(messages=messages)

  completion = await model.complete(system="sys", prompt="go", max_tokens=11480, temperature=0.7)

  assert completion.termination_reason == expected
  assert completion.text == '{"weeks": []'
  assert (completion.input_tokens, completion.output_tokens) == (120, 900)
  assert messages.kwargs["max_tokens"] == 11480
  assert messages.kwargs["system"] == "sys"


@pytest.mark.anyio
async def test_openrouter_length_finish_is_truncated() -> None:
  model = OpenRouterModel("anthropic/claude-sonnet-4.5", api_key="test-key")
  choice = SimpleNamespace(message=SimpleNamespace(content="{}"), finish_reason="length")
  response = SimpleNamespace(choices=[choice], usage=SimpleNamespace(prompt_tokens=10, completion_tokens=20), model="anthropic/claude-sonnet-4.5")
  model._client = SimpleNamespace(chat=SimpleNamespace(completions=_Recorder(response)))

  completion = await model.complete(system="sys", prompt="go", max_tokens=10000, temperature=0.7)

  assert completion.truncated
  assert completion.raw_stop_reason == "length"
  assert completion.output_tokens == 20


def test_missing_api_key_is_a_configuration_error(monkeypatch: pytest.MonkeyPatch) -> None:
  monkeypatch.delenv("ANTHROPIC_API_KEY", raising=False)
  with pytest.raises(ValueError, match="ANTHROPIC_API_KEY"):
    AnthropicModel("claude-sonnet-4-5-20250929")


class _Unreachable:
  async def generate_content(self, **kwargs: Any) -> Any:
    raise httpx.ConnectError("connection refused")


@pytest.mark.anyio
async def test_gemini_transport_failure_is_a_retryable_provider_error() -> None:
  model = GeminiModel("gemini-2.5-flash", api_key="test-key")
  model._client = SimpleNamespace(aio=SimpleNamespace(models=_Unreachable()))

  with pytest.raises(ProviderError) as exc_info:
    await model.complete(system="sys", prompt="go", max_tokens=10000, temperature=0.7)
  assert exc_info.value.retryable
  assert exc_info.value.provider == "gemini"
  assert "connection refused" in str(exc_info.value)
