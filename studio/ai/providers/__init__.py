"""Provider implementations."""

from studio.ai.providers.base import Completion, CompletionModel, Provider

__all__ = ["Completion", "CompletionModel", "Provider"]
