"""Routing utilities for provider/model selection."""

from __future__ import annotations

from enum import Enum

from studio.ai.providers.anthropic import AnthropicProvider
from studio.ai.providers.base import CompletionModel, Provider
from studio.ai.providers.gemini import GeminiProvider
from studio.ai.providers.openrouter import OpenRouterProvider
from studio.config import Settings


class ProviderMode(str, Enum):
  """Supported provider modes."""

  ANTHROPIC = "anthropic"
  GEMINI = "gemini"
  OPENROUTER = "openrouter"


def get_provider_for_mode(mode: str | ProviderMode, settings: Settings | None = None) -> Provider:
  """Return a provider instance for the given mode."""
  key = mode.value if isinstance(mode, ProviderMode) else str(mode).strip().lower()
  if key == ProviderMode.ANTHROPIC.value:
    return AnthropicProvider(api_key=settings.anthropic_api_key if settings else None)
  if key == ProviderMode.GEMINI.value:
    return GeminiProvider(api_key=settings.gemini_api_key if settings else None)
  if key == ProviderMode.OPENROUTER.value:
    return OpenRouterProvider(api_key=settings.openrouter_api_key if settings else None)
  raise ValueError(f"Unsupported provider mode '{mode}'.")


def get_model_for_mode(mode: str | ProviderMode, model: str | None = None, *, settings: Settings | None = None) -> CompletionModel:
  """Return a model client for the given mode and model name."""
  provider = get_provider_for_mode(mode, settings)
  return provider.get_model(model)
