"""Base interfaces for completion providers."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Final, Literal

TerminationReason = Literal["complete", "truncated", "other"]

TERMINATION_COMPLETE: Final[str] = "complete"
TERMINATION_TRUNCATED: Final[str] = "truncated"


@dataclass(frozen=True)
class Completion:
  """Text returned by a completion service plus its usage metadata."""

  text: str
  termination_reason: TerminationReason
  input_tokens: int
  output_tokens: int
  model: str
  provider: str
  raw_stop_reason: str | None = None

  @property
  def truncated(self) -> bool:
    return self.termination_reason == TERMINATION_TRUNCATED


class CompletionModel(ABC):
  """Abstract base class for a single-shot text completion model."""

  name: str
  provider: str

  @abstractmethod
  async def complete(self, *, system: str, prompt: str, max_tokens: int, temperature: float) -> Completion:
    """Run one completion.

    Implementations must use an async client so cancelling the awaiting task
    aborts the in-flight request, and must raise ``ProviderError`` for any
    transport or provider-side failure.
    """


class Provider(ABC):
  """Abstract base class for completion providers."""

  name: str

  @abstractmethod
  def get_model(self, model: str | None = None) -> CompletionModel:
    """Return the model client for the provider."""
