"""Token usage accounting and cost estimation."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

PricingTable = dict[str, dict[str, tuple[float, float]]]

# USD per million (input, output) tokens.
DEFAULT_PRICING: PricingTable = {
  "anthropic": {
    "claude-sonnet-4-5-20250929": (3.0, 15.0),
    "claude-sonnet-4-20250514": (3.0, 15.0),
    "claude-opus-4-20250514": (15.0, 75.0),
    "claude-3-5-haiku-20241022": (0.8, 4.0),
  },
  "gemini": {
    "gemini-2.5-pro": (1.25, 10.0),
    "gemini-2.5-flash": (0.3, 2.5),
    "gemini-2.0-flash": (0.1, 0.4),
  },
  "openrouter": {
    "anthropic/claude-sonnet-4.5": (3.0, 15.0),
  },
}


@dataclass(frozen=True)
class UsageRecord:
  """Usage reported by one completion call."""

  provider: str
  model: str
  input_tokens: int
  output_tokens: int
  chunk_index: int | None = None
  termination_reason: str | None = None


def build_pricing_table(overrides: dict[str, Any] | None = None) -> PricingTable:
  """Merge JSON pricing overrides ({provider: {model: [in, out]}}) onto the defaults."""
  table: PricingTable = {provider: dict(models) for provider, models in DEFAULT_PRICING.items()}
  for provider, models in (overrides or {}).items():
    if not isinstance(models, dict):
      continue
    bucket = table.setdefault(str(provider).strip().lower(), {})
    for model, rates in models.items():
      if isinstance(rates, (list, tuple)) and len(rates) == 2:
        bucket[str(model)] = (float(rates[0]), float(rates[1]))
  return table


def estimate_cost(record: UsageRecord, pricing_table: PricingTable | None = None) -> float:
  """Estimate the USD cost of one call; unknown models price at zero."""
  pricing = pricing_table or DEFAULT_PRICING
  price_in, price_out = pricing.get(record.provider.strip().lower(), {}).get(record.model, (0.0, 0.0))
  call_cost = (record.input_tokens / 1_000_000) * price_in
  call_cost += (record.output_tokens / 1_000_000) * price_out
  return round(call_cost, 6)


@dataclass
class UsageLedger:
  """Accumulates usage across every call of a job."""

  pricing_table: PricingTable = field(default_factory=lambda: DEFAULT_PRICING)
  records: list[UsageRecord] = field(default_factory=list)

  def add(self, record: UsageRecord) -> None:
    self.records.append(record)

  @property
  def input_tokens(self) -> int:
    return sum(record.input_tokens for record in self.records)

  @property
  def output_tokens(self) -> int:
    return sum(record.output_tokens for record in self.records)

  @property
  def total_tokens(self) -> int:
    return self.input_tokens + self.output_tokens

  @property
  def call_count(self) -> int:
    return len(self.records)

  def total_cost(self) -> float:
    """Return the summed cost estimate for all recorded calls."""
    return round(sum(estimate_cost(record, self.pricing_table) for record in self.records), 6)

  def as_dict(self) -> dict[str, Any]:
    """Serialize the ledger for the job record and the audit row."""
    return {
      "calls": self.call_count,
      "input_tokens": self.input_tokens,
      "output_tokens": self.output_tokens,
      "total_tokens": self.total_tokens,
      "estimated_cost_usd": self.total_cost(),
    }
