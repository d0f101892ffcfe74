"""OpenRouter provider implementation using the openai SDK."""

from __future__ import annotations

import logging
import os
from typing import Final

import openai
from openai import AsyncOpenAI

from studio.ai.errors import ProviderError
from studio.ai.providers.base import TERMINATION_COMPLETE, TERMINATION_TRUNCATED, Completion, CompletionModel, Provider

logger = logging.getLogger(__name__)


class OpenRouterModel(CompletionModel):
  """OpenRouter chat-completions client."""

  def __init__(self, name: str, api_key: str | None = None, base_url: str | None = None) -> None:
    self.name = name
    self.provider = "openrouter"

    api_key = api_key or os.getenv("OPENROUTER_API_KEY")
    if not api_key:
      raise ValueError("OPENROUTER_API_KEY environment variable is required")

    # OpenRouter uses the OpenAI-compatible API; attribution headers are optional.
    default_headers = {}
    referer = os.getenv("OPENROUTER_HTTP_REFERER")
    if referer:
      default_headers["HTTP-Referer"] = referer
    title = os.getenv("OPENROUTER_TITLE")
    if title:
      default_headers["X-Title"] = title

    self._client = AsyncOpenAI(api_key=api_key, base_url=base_url or "https://openrouter.ai/api/v1", default_headers=default_headers or None)

  async def complete(self, *, system: str, prompt: str, max_tokens: int, temperature: float) -> Completion:
    """Generate a completion through OpenRouter."""
    try:
      response = await self._client.chat.completions.create(model=self.name, messages=[{"role": "system", "content": system}, {"role": "user", "content": prompt}], max_tokens=max_tokens, temperature=temperature)
    except openai.APIStatusError as exc:
      raise ProviderError(f"OpenRouter API error ({exc.status_code}): {exc.message}", provider=self.provider, retryable=exc.status_code in {429, 502, 503}) from exc
    except openai.APIError as exc:
      raise ProviderError(f"OpenRouter API error: {exc}", provider=self.provider) from exc

    if not response.choices:
      raise ProviderError("OpenRouter returned no choices", provider=self.provider)

    choice = response.choices[0]
    content = choice.message.content or ""
    input_tokens = 0
    output_tokens = 0
    if response.usage:
      input_tokens = response.usage.prompt_tokens
      output_tokens = response.usage.completion_tokens

    logger.debug("OpenRouter response model=%s finish_reason=%s output_tokens=%d", response.model, choice.finish_reason, output_tokens)
    reason = TERMINATION_TRUNCATED if choice.finish_reason == "length" else TERMINATION_COMPLETE
    return Completion(text=content, termination_reason=reason, input_tokens=input_tokens, output_tokens=output_tokens, model=response.model or self.name, provider=self.provider, raw_stop_reason=choice.finish_reason)


class OpenRouterProvider(Provider):
  """OpenRouter provider."""

  _DEFAULT_MODEL: Final[str] = "anthropic/claude-sonnet-4.5"

  def __init__(self, api_key: str | None = None, base_url: str | None = None) -> None:
    self.name = "openrouter"
    self._api_key = api_key
    self._base_url = base_url

  def get_model(self, model: str | None = None) -> CompletionModel:
    """Return an OpenRouter model client."""
    return OpenRouterModel(model or self._DEFAULT_MODEL, api_key=self._api_key, base_url=self._base_url)
