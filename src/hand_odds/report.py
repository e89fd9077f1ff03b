"""
Tabular view of a calculation result.

Resolves pattern and label ids to display names, optionally fills in
never-satisfied entries at 0.00, and adds deltas against a previous exact
result.
"""

from decimal import Decimal
from typing import Dict, List, Optional

import pandas as pd

from deck_mechanics.rules import CalculationMode
from hand_odds.rates import (
    ZERO_RATE,
    CalculationResult,
    format_rate,
    sort_descending,
)
from hand_odds.records import LabelState, PatternState

TABLE_COLUMNS = ["section", "uid", "name", "rate", "delta"]


def format_delta(delta: Decimal) -> str:
    return f"{delta:+.2f}"


def build_rate_table(
    result: CalculationResult,
    patterns: PatternState,
    labels: LabelState,
    *,
    previous: Optional[CalculationResult] = None,
    show_zero: bool = False,
) -> pd.DataFrame:
    """
    One row per pattern and per label, each section in descending rate order.

    Deltas are only reported against a previous result computed in exact
    mode; simulated results are too noisy to diff.
    """
    pattern_rates = dict(result.pattern_success_rates)
    label_rates = dict(result.label_success_rates)
    if show_zero:
        for pattern in patterns.active_patterns:
            pattern_rates.setdefault(pattern.uid, ZERO_RATE)
        for label in labels.labels:
            label_rates.setdefault(label.uid, ZERO_RATE)

    baseline = previous if previous is not None and previous.mode == CalculationMode.EXACT else None

    rows: List[Dict] = []
    for section, rates, previous_rates, resolve in (
        (
            "pattern",
            pattern_rates,
            baseline.pattern_success_rates if baseline else None,
            patterns.find,
        ),
        (
            "label",
            label_rates,
            baseline.label_success_rates if baseline else None,
            labels.find,
        ),
    ):
        for uid, rate in sort_descending(rates).items():
            if rate == ZERO_RATE and not show_zero:
                continue
            entry = resolve(uid)
            delta = None
            if previous_rates is not None:
                delta = format_delta(rate - previous_rates.get(uid, ZERO_RATE))
            rows.append(
                {
                    "section": section,
                    "uid": uid,
                    "name": entry.name if entry is not None else "",
                    "rate": format_rate(rate),
                    "delta": delta,
                }
            )

    return pd.DataFrame(rows, columns=TABLE_COLUMNS)


def format_report(result: CalculationResult, table: pd.DataFrame) -> str:
    mode = result.mode.value if result.mode is not None else "unknown"
    lines = [f"Overall success rate: {format_rate(result.overall_probability)}% ({mode})"]

    show_delta = table["delta"].notna().any() if not table.empty else False
    columns = ["name", "rate", "delta"] if show_delta else ["name", "rate"]

    for section, title in (("pattern", "Pattern success rates"), ("label", "Label success rates")):
        subset = table[table["section"] == section]
        lines.append("")
        lines.append(f"{title}:")
        if subset.empty:
            lines.append("  (none)")
        else:
            lines.append(subset[columns].to_string(index=False))

    return "\n".join(lines)
