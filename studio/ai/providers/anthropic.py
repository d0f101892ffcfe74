"""Anthropic provider implementation using the anthropic SDK."""

from __future__ import annotations

import logging
import os
from typing import Final

import anthropic
from anthropic import AsyncAnthropic

from studio.ai.errors import ProviderError
from studio.ai.providers.base import TERMINATION_COMPLETE, TERMINATION_TRUNCATED, Completion, CompletionModel, Provider

logger = logging.getLogger(__name__)


class AnthropicModel(CompletionModel):
  """Claude messages client."""

  def __init__(self, name: str, api_key: str | None = None) -> None:
    self.name = name
    self.provider = "anthropic"

    api_key = api_key or os.getenv("ANTHROPIC_API_KEY")
    if not api_key:
      raise ValueError("ANTHROPIC_API_KEY environment variable is required")

    self._client = AsyncAnthropic(api_key=api_key)

  async def complete(self, *, system: str, prompt: str, max_tokens: int, temperature: float) -> Completion:
    """Generate a completion from Claude."""
    try:
      response = await self._client.messages.create(model=self.name, max_tokens=max_tokens, temperature=temperature, system=system, messages=[{"role": "user", "content": prompt}])
    except anthropic.APIStatusError as exc:
      raise ProviderError(f"Anthropic API error ({exc.status_code}): {exc.message}", provider=self.provider, retryable=exc.status_code in {429, 500, 502, 503, 529}) from exc
    except anthropic.APIError as exc:
      raise ProviderError(f"Anthropic API error: {exc}", provider=self.provider) from exc

    text = "\n".join(block.text for block in response.content if block.type == "text")
    stop_reason = response.stop_reason
    if stop_reason == "max_tokens":
      logger.warning("Anthropic response truncated by max_tokens (requested=%d used=%d)", max_tokens, response.usage.output_tokens)
    reason = TERMINATION_TRUNCATED if stop_reason == "max_tokens" else TERMINATION_COMPLETE
    return Completion(text=text, termination_reason=reason, input_tokens=response.usage.input_tokens, output_tokens=response.usage.output_tokens, model=response.model or self.name, provider=self.provider, raw_stop_reason=stop_reason)


class AnthropicProvider(Provider):
  """Anthropic provider."""

  _DEFAULT_MODEL: Final[str] = "claude-sonnet-4-5-20250929"

  def __init__(self, api_key: str | None = None) -> None:
    self.name = "anthropic"
    self._api_key = api_key

  def get_model(self, model: str | None = None) -> CompletionModel:
    """Return a Claude model client."""
    return AnthropicModel(model or self._DEFAULT_MODEL, api_key=self._api_key)
