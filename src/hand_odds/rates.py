"""
Fixed-point success rates and the calculation result record.

Rates are carried as Decimal percentages with two fractional digits and only
turned into "NN.NN" strings at the boundary (to_dict / format_rate).
"""

from dataclasses import dataclass, field
from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, Mapping, Optional

from deck_mechanics.rules import CalculationMode

HUNDRED = Decimal(100)
RATE_QUANTUM = Decimal("0.01")
ZERO_RATE = Decimal("0.00")


def exact_rate(count: int, denominator: int) -> Decimal:
    """
    count / denominator as a percentage, truncated to two decimals.

    Works on the integers directly (count * 10000 // denominator) so that
    arbitrarily large combination counts never pass through a float.
    """
    if denominator <= 0:
        return ZERO_RATE
    return (Decimal(count * 10000 // denominator) / HUNDRED).quantize(RATE_QUANTUM)


def frequency_rate(hits: int, trials: int) -> Decimal:
    """hits / trials as a percentage, rounded half-up to two decimals."""
    if trials <= 0:
        raise ValueError(f"trials must be positive, got {trials}")
    return (Decimal(hits) * HUNDRED / Decimal(trials)).quantize(
        RATE_QUANTUM, rounding=ROUND_HALF_UP
    )


def format_rate(rate: Decimal) -> str:
    return f"{rate:.2f}"


def parse_rate(text: str) -> Decimal:
    return Decimal(text).quantize(RATE_QUANTUM)


def sort_descending(rates: Mapping[str, Decimal]) -> Dict[str, Decimal]:
    # sorted() is stable, so equal rates keep their insertion order
    return dict(sorted(rates.items(), key=lambda item: item[1], reverse=True))


@dataclass
class CalculationResult:
    overall_probability: Decimal = ZERO_RATE
    pattern_success_rates: Dict[str, Decimal] = field(default_factory=dict)
    label_success_rates: Dict[str, Decimal] = field(default_factory=dict)
    mode: Optional[CalculationMode] = None

    def pattern_rate(self, uid: str) -> Decimal:
        return self.pattern_success_rates.get(uid, ZERO_RATE)

    def label_rate(self, uid: str) -> Decimal:
        return self.label_success_rates.get(uid, ZERO_RATE)

    def to_dict(self) -> Dict:
        """Convert to the boundary record with "NN.NN" strings, rates in descending order."""
        data = {
            "overallProbability": format_rate(self.overall_probability),
            "patternSuccessRates": {
                uid: format_rate(rate)
                for uid, rate in sort_descending(self.pattern_success_rates).items()
            },
            "labelSuccessRates": {
                uid: format_rate(rate)
                for uid, rate in sort_descending(self.label_success_rates).items()
            },
        }
        if self.mode is not None:
            data["mode"] = self.mode.value
        return data

    @classmethod
    def from_dict(cls, data: Dict) -> "CalculationResult":
        mode = data.get("mode")
        return cls(
            overall_probability=parse_rate(data.get("overallProbability", "0.00")),
            pattern_success_rates={
                uid: parse_rate(rate)
                for uid, rate in (data.get("patternSuccessRates") or {}).items()
            },
            label_success_rates={
                uid: parse_rate(rate)
                for uid, rate in (data.get("labelSuccessRates") or {}).items()
            },
            mode=CalculationMode(mode) if mode else None,
        )
