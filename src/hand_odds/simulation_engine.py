from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Mapping, Optional, Sequence

import numpy as np

from deck_mechanics.condition_mode import ConditionMode
from deck_mechanics.pattern_matcher import ALL_MODES, PatternMatcher
from deck_mechanics.patterns import Label, Pattern, sort_by_priority
from deck_mechanics.rules import CalculationMode, PotConfig
from hand_odds.aggregator import find_satisfied
from hand_odds.logging_config import get_logger
from hand_odds.pot_effects import PotEffectResolver
from hand_odds.rates import CalculationResult, frequency_rate, sort_descending

logger = get_logger(__name__)

# required_distinct is not modelled on the simulation path
SIMULATION_MODES = ALL_MODES - {ConditionMode.REQUIRED_DISTINCT}


@dataclass
class TrialCounters:
    trials: int = 0
    successes: int = 0
    patterns: Dict[str, int] = field(default_factory=dict)
    labels: Dict[str, int] = field(default_factory=dict)


class SimulationEngine:
    """
    Monte-Carlo hand-probability engine.

    Each trial shuffles the full deck (numpy's Generator shuffle is a
    Fisher-Yates shuffle), deals the opening hand, plays out pot effects and
    checks every active pattern. Pass a seeded Generator for reproducible runs.
    """

    def __init__(
        self,
        pot: PotConfig | None = None,
        patterns: Sequence[Pattern] = (),
        labels: Sequence[Label] = (),
        *,
        rng: np.random.Generator | None = None,
        simulate_required_distinct: bool = False,
    ):
        self.pot = pot or PotConfig()
        self.rng = rng if rng is not None else np.random.default_rng()
        self.matcher = PatternMatcher(
            ALL_MODES if simulate_required_distinct else SIMULATION_MODES
        )
        self.patterns = list(patterns)
        self.sorted_patterns = sort_by_priority(self.patterns)
        self.labels = list(labels)
        self.resolver = PotEffectResolver(self.pot, self.matcher, self.sorted_patterns)

    # ------------ Public API ------------

    def evaluate(
        self,
        deck: Mapping[str, int],
        hand_size: int,
        trials: int,
        *,
        progress_callback: Optional[Callable[[int, int], None]] = None,
    ) -> CalculationResult:
        if trials <= 0:
            raise ValueError(f"trials must be positive, got {trials}")

        counters = self.run_trials(deck, hand_size, trials, progress_callback)

        # Every active pattern and every label is reported, even at 0.00
        pattern_rates = {
            p.uid: frequency_rate(counters.patterns.get(p.uid, 0), trials)
            for p in self.patterns
            if p.active and p.uid
        }
        label_rates = {
            label.uid: frequency_rate(counters.labels.get(label.uid, 0), trials)
            for label in self.labels
        }
        for uid, hits in counters.labels.items():
            label_rates.setdefault(uid, frequency_rate(hits, trials))

        return CalculationResult(
            overall_probability=frequency_rate(counters.successes, trials),
            pattern_success_rates=sort_descending(pattern_rates),
            label_success_rates=sort_descending(label_rates),
            mode=CalculationMode.SIMULATION,
        )

    def run_trials(
        self,
        deck: Mapping[str, int],
        hand_size: int,
        trials: int,
        progress_callback: Optional[Callable[[int, int], None]] = None,
    ) -> TrialCounters:
        flat_deck = self._flatten(deck)
        counters = TrialCounters()
        logger.debug(
            "Simulating %d trials: %d cards, hand %d", trials, len(flat_deck), hand_size
        )

        for trial in range(trials):
            self._run_trial(flat_deck, hand_size, counters)
            if progress_callback:
                progress_callback(trial + 1, trials)

        return counters

    # ------------ Trial mechanics ------------

    def _run_trial(
        self, flat_deck: np.ndarray, hand_size: int, counters: TrialCounters
    ) -> None:
        shuffled = self.rng.permutation(flat_deck).tolist()
        hand, deck = self.resolver.resolve_simulated(
            shuffled[:hand_size], shuffled[hand_size:]
        )

        check = find_satisfied(
            self.matcher, Counter(hand), Counter(deck), self.sorted_patterns
        )
        counters.trials += 1
        if not check.is_success:
            return

        counters.successes += 1
        for uid in check.pattern_uids:
            counters.patterns[uid] = counters.patterns.get(uid, 0) + 1
        # Each label counts at most once per trial
        for uid in check.label_uids:
            counters.labels[uid] = counters.labels.get(uid, 0) + 1

    @staticmethod
    def _flatten(deck: Mapping[str, int]) -> np.ndarray:
        cards: List[str] = []
        for kind, count in deck.items():
            cards.extend([kind] * count)
        return np.array(cards, dtype=object)
