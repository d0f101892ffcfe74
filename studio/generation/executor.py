"""Single completion call per chunk with output classification."""

from __future__ import annotations

import json
import logging

from pydantic import ValidationError

from studio.ai.errors import MalformedOutputError, TruncatedOutputError
from studio.ai.json_parser import parse_payload
from studio.ai.providers.base import CompletionModel
from studio.ai.utils.cost import UsageLedger, UsageRecord, estimate_cost
from studio.generation.contracts import Chunk, GeneratedProgram, PartialResult

logger = logging.getLogger(__name__)


class GenerationStepExecutor:
  """Invoke the completion service once for a chunk and classify the outcome.

  The executor never retries; retry policy belongs to the caller. Every call
  that returns usage is recorded in the shared ledger, including calls whose
  output is later rejected.
  """

  def __init__(self, model: CompletionModel, *, ledger: UsageLedger, temperature: float = 0.7) -> None:
    self._model = model
    self._ledger = ledger
    self._temperature = temperature

  async def execute(self, chunk: Chunk, *, system: str, prompt: str, max_tokens: int | None = None) -> PartialResult:
    budget = max_tokens or chunk.token_budget
    logger.info("Chunk %d (%s): token allocation %d (estimated %d)", chunk.index + 1, chunk.label(), budget, chunk.estimated_tokens)

    # ProviderError propagates with the provider's message intact.
    completion = await self._model.complete(system=system, prompt=prompt, max_tokens=budget, temperature=self._temperature)

    record = UsageRecord(provider=completion.provider, model=completion.model, input_tokens=completion.input_tokens, output_tokens=completion.output_tokens, chunk_index=chunk.index, termination_reason=completion.termination_reason)
    self._ledger.add(record)
    logger.info(
      "Chunk %d usage: input=%d output=%d reason=%s cost=$%.4f",
      chunk.index + 1,
      completion.input_tokens,
      completion.output_tokens,
      completion.termination_reason,
      estimate_cost(record, self._ledger.pricing_table),
    )

    payload = self._parse(chunk, completion.text, truncated=completion.truncated, output_tokens=completion.output_tokens, budget=budget)
    if not isinstance(payload, dict):
      raise MalformedOutputError(f"Chunk {chunk.index + 1} returned a {type(payload).__name__} instead of a JSON object")

    try:
      program = GeneratedProgram.model_validate(payload)
    except ValidationError as exc:
      raise MalformedOutputError(f"Chunk {chunk.index + 1} returned an invalid program structure: {exc.error_count()} error(s)") from exc

    if program.error:
      raise MalformedOutputError(f"Chunk {chunk.index + 1} was declined by the model: {program.error}")

    weeks = [week.week_number for week in program.weekly_structure]
    logger.info("Chunk %d returned %d week(s): %s", chunk.index + 1, len(weeks), weeks)
    return PartialResult(
      chunk=chunk,
      program=program,
      termination_reason=completion.termination_reason,
      input_tokens=completion.input_tokens,
      output_tokens=completion.output_tokens,
      model=completion.model,
      provider=completion.provider,
      parse_risk=completion.truncated,
    )

  def _parse(self, chunk: Chunk, text: str, *, truncated: bool, output_tokens: int, budget: int) -> object:
    if truncated:
      # A cut-off payload is only trusted when it parses without repair.
      try:
        payload = parse_payload(text, lenient=False)
      except json.JSONDecodeError as exc:
        raise TruncatedOutputError(
          f"Chunk {chunk.index + 1} ({chunk.label()}) was truncated at {output_tokens} output tokens (budget {budget}) and could not be parsed",
          output_tokens=output_tokens,
          token_budget=budget,
        ) from exc
      logger.warning("Chunk %d reported truncation but parsed cleanly; treating as parse-risk", chunk.index + 1)
      return payload

    try:
      return parse_payload(text, lenient=True)
    except json.JSONDecodeError as exc:
      raise MalformedOutputError(f"Chunk {chunk.index + 1} ({chunk.label()}) returned malformed JSON: {exc.msg} at position {exc.pos}") from exc
