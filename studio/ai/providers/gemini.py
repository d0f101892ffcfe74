"""Gemini provider implementation using the google-genai SDK."""

from __future__ import annotations

import logging
import os
from typing import Final

import httpx
from google import genai
from google.genai import errors as genai_errors
from google.genai import types

from studio.ai.errors import ProviderError
from studio.ai.providers.base import TERMINATION_COMPLETE, TERMINATION_TRUNCATED, Completion, CompletionModel, Provider

logger = logging.getLogger(__name__)


class GeminiModel(CompletionModel):
  """Gemini model client."""

  def __init__(self, name: str, api_key: str | None = None) -> None:
    self.name = name
    self.provider = "gemini"

    api_key = api_key or os.getenv("GEMINI_API_KEY")
    if not api_key:
      raise ValueError("GEMINI_API_KEY environment variable is required")

    self._client = genai.Client(api_key=api_key)

  async def complete(self, *, system: str, prompt: str, max_tokens: int, temperature: float) -> Completion:
    """Generate a completion from Gemini."""
    config = types.GenerateContentConfig(system_instruction=system, max_output_tokens=max_tokens, temperature=temperature, response_mime_type="application/json")
    try:
      # Use the async client so cancellation reaches the underlying request.
      response = await self._client.aio.models.generate_content(model=self.name, contents=prompt, config=config)
    except genai_errors.APIError as exc:
      raise ProviderError(f"Gemini API error ({exc.code}): {exc.message}", provider=self.provider, retryable=exc.code in {429, 500, 503}) from exc
    except httpx.HTTPError as exc:
      # The SDK lets transport failures from its httpx client through unwrapped.
      raise ProviderError(f"Gemini connection error: {exc}", provider=self.provider, retryable=True) from exc

    finish_reason = None
    if response.candidates:
      finish_reason = response.candidates[0].finish_reason
    truncated = finish_reason == types.FinishReason.MAX_TOKENS
    if truncated:
      logger.warning("Gemini response truncated by max_output_tokens=%d", max_tokens)

    input_tokens = 0
    output_tokens = 0
    if response.usage_metadata:
      input_tokens = int(response.usage_metadata.prompt_token_count or 0)
      output_tokens = int(response.usage_metadata.candidates_token_count or 0)

    raw_reason = str(finish_reason.value) if finish_reason is not None else None
    reason = TERMINATION_TRUNCATED if truncated else TERMINATION_COMPLETE
    return Completion(text=response.text or "", termination_reason=reason, input_tokens=input_tokens, output_tokens=output_tokens, model=self.name, provider=self.provider, raw_stop_reason=raw_reason)


class GeminiProvider(Provider):
  """Gemini provider."""

  _DEFAULT_MODEL: Final[str] = "gemini-2.5-flash"
  _AVAILABLE_MODELS: Final[set[str]] = {"gemini-2.5-pro", "gemini-2.5-flash", "gemini-2.0-flash"}

  def __init__(self, api_key: str | None = None) -> None:
    self.name = "gemini"
    self._api_key = api_key

  def get_model(self, model: str | None = None) -> CompletionModel:
    """Return a Gemini model client."""
    model_name = model or self._DEFAULT_MODEL
    if model_name not in self._AVAILABLE_MODELS:
      raise ValueError(f"Unsupported Gemini model '{model_name}'.")
    return GeminiModel(model_name, api_key=self._api_key)
