"""Error taxonomy for the program generation pipeline."""

from __future__ import annotations

from collections.abc import Iterable

_RETRYABLE_HINTS: tuple[str, ...] = (
  "429",
  "rate limit",
  "rate_limit",
  "too many requests",
  "overloaded",
  "resource exhausted",
  "quota exceeded",
  "service unavailable",
  "503",
  "529",
)


class GenerationError(RuntimeError):
  """Base class for failures that terminate a generation job."""

  code = "generation_error"

  def user_message(self) -> str:
    """Return the message written to the job record for polling clients."""
    return str(self)


class InsufficientCandidatesError(GenerationError):
  """Raised when the filtered exercise pool cannot support the requested program."""

  code = "insufficient_candidates"

  def __init__(self, available: int, required: int) -> None:
    super().__init__(f"Insufficient exercises: only {available} available (need at least {required})")
    self.available = available
    self.required = required


class DeadlineExceededError(GenerationError):
  """Raised when a job does not finish before its deadline."""

  code = "deadline_exceeded"

  def __init__(self, message: str, *, structural: bool) -> None:
    super().__init__(message)
    # Structural means the request could never fit inside the platform limit.
    self.structural = structural


class ProviderError(GenerationError):
  """Transport, auth or rate-limit failure reported by the completion service."""

  code = "provider_error"

  def __init__(self, message: str, *, provider: str | None = None, retryable: bool | None = None) -> None:
    super().__init__(message)
    self.provider = provider
    self.retryable = is_retryable_message(message) if retryable is None else retryable


class TruncatedOutputError(GenerationError):
  """The provider stopped for length and the payload could not be parsed."""

  code = "truncated_output"

  def __init__(self, message: str, *, output_tokens: int = 0, token_budget: int = 0) -> None:
    super().__init__(message)
    self.output_tokens = output_tokens
    self.token_budget = token_budget


class MalformedOutputError(GenerationError):
  """The provider finished normally but returned an unusable payload."""

  code = "malformed_output"


class InternalGenerationError(GenerationError):
  """Unexpected failure inside the generation loop."""

  code = "internal_error"


class ProfileNotFoundError(GenerationError):
  """The referenced client profile does not exist."""

  code = "profile_not_found"


class ProgramValidationError(GenerationError):
  """The assembled program failed referential or structural checks."""

  code = "validation_error"

  def __init__(self, errors: list[str]) -> None:
    super().__init__(f"Validation failed: {', '.join(errors)}")
    self.errors = list(errors)


def _match_hint(message: str, hints: Iterable[str]) -> bool:
  """Return True when any hint appears in the message."""
  for hint in hints:
    if hint in message:
      return True
  return False


def is_retryable_message(message: str) -> bool:
  """Return True when a provider message indicates a transient rate limit or overload."""
  return _match_hint(message.lower(), _RETRYABLE_HINTS)
