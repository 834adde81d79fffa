"""
Usage normalization and cost computation.

WHAT: Turn provider usage payloads into UsageRecord and price them
WHY: Providers name token counters differently; cost display must not drift
HOW: Key aliasing for usage, Decimal arithmetic quantized to 6 digits for cost
"""

from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP

from .types import Model, UsageRecord

PER_MILLION = Decimal(1_000_000)
COST_PRECISION = Decimal("0.000001")

_PROMPT_KEYS = ("prompt_tokens", "promptTokens", "input_tokens")
_COMPLETION_KEYS = ("completion_tokens", "completionTokens", "output_tokens")
_TOTAL_KEYS = ("total_tokens", "totalTokens")


@dataclass(frozen=True)
class CostReport:
    """Cost of one response, optionally scaled to N repeated calls."""
    cost: Decimal
    multiplier: int = 1
    scaled_cost: Decimal | None = None


def _first_int(raw: dict, keys: tuple[str, ...]) -> int | None:
    for key in keys:
        value = raw.get(key)
        if value is None or isinstance(value, bool):
            continue
        try:
            return int(value)
        except (TypeError, ValueError):
            continue
    return None


def normalize_usage(raw: dict | None) -> UsageRecord | None:
    """
    Convert a raw usage payload into a UsageRecord.

    Missing counters stay None; nothing is derived from the others.
    Returns None when the payload carries no counter at all.
    """
    if not raw or not isinstance(raw, dict):
        return None

    usage = UsageRecord(
        prompt_tokens=_first_int(raw, _PROMPT_KEYS),
        completion_tokens=_first_int(raw, _COMPLETION_KEYS),
        total_tokens=_first_int(raw, _TOTAL_KEYS),
    )
    if usage.prompt_tokens is None and usage.completion_tokens is None and usage.total_tokens is None:
        return None
    return usage


def compute_cost(usage: UsageRecord | None, model: Model | None) -> Decimal | None:
    """
    Price a usage record with the model's per-million-token prices.

    Returns None when usage, either token count or either price is missing.
    """
    if usage is None or model is None:
        return None
    if usage.prompt_tokens is None or usage.completion_tokens is None:
        return None
    if model.input_token_price is None or model.output_token_price is None:
        return None

    input_price = Decimal(str(model.input_token_price))
    output_price = Decimal(str(model.output_token_price))
    cost = (
        Decimal(usage.prompt_tokens) * input_price
        + Decimal(usage.completion_tokens) * output_price
    ) / PER_MILLION
    return cost.quantize(COST_PRECISION, rounding=ROUND_HALF_UP)


def cost_report(
    usage: UsageRecord | None,
    model: Model | None,
    multiplier: int = 1
) -> CostReport | None:
    """
    Build a CostReport, adding the scaled cost when multiplier > 1.

    Raises:
        ValueError: multiplier is below 1
    """
    if multiplier < 1:
        raise ValueError(f"multiplier must be >= 1, got {multiplier}")

    cost = compute_cost(usage, model)
    if cost is None:
        return None

    scaled = None
    if multiplier > 1:
        scaled = (cost * multiplier).quantize(COST_PRECISION, rounding=ROUND_HALF_UP)
    return CostReport(cost=cost, multiplier=multiplier, scaled_cost=scaled)


def format_cost(value: Decimal | None) -> str | None:
    """Fixed 6-digit rendering, e.g. Decimal('0.000014') -> '0.000014'."""
    if value is None:
        return None
    return f"{value.quantize(COST_PRECISION, rounding=ROUND_HALF_UP):.6f}"
