"""
CLI interface for opening-hand probability calculation.

Implements the command:
hand-odds scenario.json --mode auto --trials 10000 --seed 42 \
  --previous last_result.json --show-zero
"""

import argparse
import json
import sys
import time
from dataclasses import replace
from pathlib import Path
from typing import List, Optional

from deck_mechanics.composition import ValidationFailure
from deck_mechanics.rules import CalculationMode
from hand_odds.calculator import calculate, select_mode
from hand_odds.logging_config import configure_logging
from hand_odds.rates import CalculationResult
from hand_odds.records import Scenario, load_scenario
from hand_odds.report import build_rate_table, format_report

MODE_CHOICES = ["auto", "exact", "simulation"]


def parse_arguments(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Calculate opening-hand success rates for a deck"
    )

    parser.add_argument(
        "scenario",
        type=Path,
        help="Scenario JSON with deck, cards, pattern, pot and label records"
    )

    parser.add_argument(
        "--mode",
        choices=MODE_CHOICES,
        default="auto",
        help="Calculation mode (default: auto, i.e. the scenario's settings; "
             "prosperity always forces simulation)"
    )

    parser.add_argument(
        "--trials",
        type=int,
        help="Number of simulation trials (default: scenario setting or 10000)"
    )

    parser.add_argument(
        "--seed",
        type=int,
        help="Random seed for reproducible simulation (default: unseeded)"
    )

    parser.add_argument(
        "--previous",
        type=Path,
        help="Previous result JSON; deltas are shown when it was an exact result"
    )

    parser.add_argument(
        "--show-zero",
        action="store_true",
        help="List patterns and labels with a 0.00%% rate"
    )

    parser.add_argument(
        "--json",
        action="store_true",
        help="Print the raw result record as JSON"
    )

    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable verbose output"
    )

    return parser.parse_args(argv)


def apply_overrides(scenario: Scenario, args: argparse.Namespace) -> Scenario:
    """Fold CLI flags into the scenario settings."""
    settings = scenario.settings
    if args.mode != "auto":
        settings = replace(settings, mode=CalculationMode(args.mode))
    if args.trials is not None:
        if args.trials <= 0:
            raise ValueError(f"--trials must be positive, got {args.trials}")
        settings = replace(settings, simulation_trials=args.trials)
    if args.seed is not None:
        settings = replace(settings, seed=args.seed)
    return replace(scenario, settings=settings)


def load_previous(path: Path) -> CalculationResult:
    with open(path, "r", encoding="utf-8") as f:
        return CalculationResult.from_dict(json.load(f))


def progress_callback(processed: int, total: int) -> None:
    """Print progress updates."""
    if processed % max(1, total // 20) == 0 or processed == total:
        percent = 100.0 * processed / total
        print(f"Progress: {processed}/{total} ({percent:.1f}%)")


def main(argv: Optional[List[str]] = None) -> int:
    """Main CLI entry point."""
    args = parse_arguments(argv)
    configure_logging(args.verbose)

    scenario = apply_overrides(load_scenario(args.scenario), args)

    if scenario.has_invalid_conditions():
        print("Error: scenario contains invalid pattern conditions")
        return 1
    if scenario.card_count_exceeds_deck():
        print("Error: card counts exceed the deck size")
        return 1

    mode = select_mode(scenario.pot, scenario.settings)
    if not args.json:
        print(f"Deck: {scenario.deck.card_count} cards, hand {scenario.deck.first_hand}")
        print(f"Patterns: {len(scenario.pattern.active_patterns)} active")
        if mode == CalculationMode.SIMULATION:
            print(f"Mode: simulation ({scenario.settings.simulation_trials} trials)")
        else:
            print("Mode: exact")
        print()

    start_time = time.time()
    result = calculate(
        scenario,
        progress_callback=progress_callback if args.verbose and not args.json else None,
    )
    computation_time = time.time() - start_time

    if isinstance(result, ValidationFailure):
        print(f"Error: {result}")
        return 1

    if args.json:
        print(json.dumps(result.to_dict(), ensure_ascii=False, indent=2))
        return 0

    previous = load_previous(args.previous) if args.previous else None
    table = build_rate_table(
        result,
        scenario.pattern,
        scenario.label,
        previous=previous,
        show_zero=args.show_zero,
    )
    print(format_report(result, table))
    print(f"\nCalculation completed in {computation_time:.2f} seconds")
    return 0


def cli_entry_point():
    """Entry point for setuptools console script."""
    try:
        exit_code = main()
        sys.exit(exit_code)
    except KeyboardInterrupt:
        print("\nInterrupted by user")
        sys.exit(1)
    except Exception as e:
        print(f"Error: {e}")
        if "--verbose" in sys.argv or "-v" in sys.argv:
            import traceback
            traceback.print_exc()
        sys.exit(1)


if __name__ == "__main__":
    cli_entry_point()
