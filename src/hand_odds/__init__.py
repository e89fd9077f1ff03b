"""
Opening-hand probability calculation.

Estimates how often a drawn hand (possibly enlarged by the two bonus-draw pot
cards) satisfies user-defined card patterns.

Key components:
- records: The five input records (deck, cards, pattern, pot, label) and Scenario
- exact_engine: Exact enumeration weighted by binomials, exact integers throughout
- simulation_engine: Monte-Carlo trials over a shuffled deck
- pot_effects: Prosperity and desires/extravagance effects for both engines
- rates: Fixed-point percentages and the CalculationResult record
- calculator: compute_exact, compute_simulation and the mode-selection policy
- report: Name-resolved rate tables with deltas
- cli: Command-line interface

Usage:
    hand-odds scenario.json --mode auto --seed 42 --show-zero
"""

from .aggregator import CheckResult, find_satisfied
from .calculator import calculate, compute_exact, compute_simulation, select_mode
from .exact_engine import ExactCombinatoricsEngine, MemoCache, Tally, binomial
from .pot_effects import PotEffectResolver
from .rates import CalculationResult, exact_rate, format_rate, frequency_rate
from .records import (
    CardData,
    CardsState,
    DeckState,
    LabelState,
    PatternState,
    PotState,
    Scenario,
    load_scenario,
)
from .report import build_rate_table, format_report
from .simulation_engine import SimulationEngine

__version__ = "0.1.0"

__all__ = [
    "CalculationResult",
    "CardData",
    "CardsState",
    "CheckResult",
    "DeckState",
    "ExactCombinatoricsEngine",
    "LabelState",
    "MemoCache",
    "PatternState",
    "PotEffectResolver",
    "PotState",
    "Scenario",
    "SimulationEngine",
    "Tally",
    "binomial",
    "build_rate_table",
    "calculate",
    "compute_exact",
    "compute_simulation",
    "exact_rate",
    "find_satisfied",
    "format_rate",
    "format_report",
    "frequency_rate",
    "load_scenario",
    "select_mode",
]
