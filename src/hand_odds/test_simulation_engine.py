"""
Tests for the Monte-Carlo engine and the simulated pot effects.

Seeded generators keep every assertion deterministic; convergence checks use
enough trials that the tolerance sits several standard errors out.
"""

import unittest
from decimal import Decimal
from pathlib import Path

import numpy as np

from deck_mechanics.condition_mode import ConditionMode
from deck_mechanics.pattern_matcher import PatternMatcher
from deck_mechanics.patterns import Condition, Label, Pattern
from deck_mechanics.rules import (
    DESIRES_KIND,
    PROSPERITY_KIND,
    CalculationMode,
    DesiresPot,
    PotConfig,
    ProsperityPot,
)
from hand_odds.calculator import compute_exact, compute_simulation
from hand_odds.pot_effects import PotEffectResolver
from hand_odds.rates import format_rate
from hand_odds.records import (
    CardData,
    CardsState,
    DeckState,
    LabelState,
    PatternState,
    load_scenario,
)
from hand_odds.simulation_engine import SimulationEngine

SAMPLE_DECK = Path(__file__).parent / "testdata" / "sample_deck.json"
SEED = 20240611


def required(count, *kinds):
    return Condition(ConditionMode.REQUIRED, count, tuple(kinds))


def pattern(uid, *conditions, labels=(), priority=0, active=True):
    return Pattern(
        uid=uid,
        name=uid,
        conditions=tuple(conditions),
        label_uids=tuple(labels),
        priority=priority,
        active=active,
    )


class TestSimulationEngine(unittest.TestCase):
    """Test trial bookkeeping and result shape."""

    def engine(self, patterns, labels=(), pot=None, **kwargs):
        return SimulationEngine(
            pot, patterns, labels, rng=np.random.default_rng(SEED), **kwargs
        )

    def test_certain_draw(self):
        result = self.engine([pattern("p1", required(3, "A"))]).evaluate({"A": 3}, 3, 100)
        self.assertEqual(result.to_dict()["overallProbability"], "100.00")
        self.assertEqual(result.mode, CalculationMode.SIMULATION)

    def test_zero_rates_are_reported(self):
        """Every active pattern and every label appears, even when never hit."""
        patterns = [
            pattern("hit", required(1, "A"), labels=["l1"]),
            pattern("miss", required(1, "Z"), labels=["l2"]),
            pattern("off", required(1, "A"), active=False),
        ]
        labels = [Label("l1"), Label("l2"), Label("l3")]
        result = self.engine(patterns, labels).evaluate({"A": 2}, 1, 50)

        data = result.to_dict()
        self.assertEqual(data["patternSuccessRates"], {"hit": "100.00", "miss": "0.00"})
        self.assertEqual(data["labelSuccessRates"], {"l1": "100.00", "l2": "0.00", "l3": "0.00"})

    def test_label_counted_once_per_trial(self):
        patterns = [
            pattern("a", required(1, "A"), labels=["shared"]),
            pattern("b", required(1, "A"), labels=["shared"]),
        ]
        counters = self.engine(patterns, [Label("shared")]).run_trials({"A": 1}, 1, 40)
        self.assertEqual(counters.labels["shared"], 40)
        self.assertEqual(counters.successes, 40)

    def test_same_seed_same_result(self):
        patterns = [pattern("p1", required(1, "A"))]
        first = self.engine(patterns).evaluate({"A": 3, "B": 7}, 2, 500)
        second = self.engine(patterns).evaluate({"A": 3, "B": 7}, 2, 500)
        self.assertEqual(first.to_dict(), second.to_dict())

    def test_rejects_non_positive_trials(self):
        engine = self.engine([pattern("p1", required(1, "A"))])
        for trials in (0, -5):
            with self.assertRaises(ValueError):
                engine.evaluate({"A": 1}, 1, trials)

    def test_progress_callback(self):
        calls = []
        self.engine([]).evaluate({"A": 1}, 1, 25, progress_callback=lambda i, n: calls.append((i, n)))
        self.assertEqual(len(calls), 25)
        self.assertEqual(calls[-1], (25, 25))

    def test_required_distinct_unsupported_by_default(self):
        """
        The simulation path never matches required_distinct unless asked to;
        the exact path does. This divergence is deliberate and kept visible.
        """
        distinct = Condition(ConditionMode.REQUIRED_DISTINCT, 2, ("A", "B"))
        patterns = [pattern("p1", distinct)]
        deck = {"A": 2, "B": 2}

        default = self.engine(patterns).evaluate(deck, 4, 100)
        self.assertEqual(default.pattern_rate("p1"), Decimal("0.00"))

        enabled = self.engine(patterns, simulate_required_distinct=True).evaluate(deck, 4, 100)
        self.assertEqual(enabled.pattern_rate("p1"), Decimal("100.00"))

    def test_desires_draws_two_more(self):
        # The desires hand always draws the A
        pot = PotConfig(desires_or_extravagance=DesiresPot(count=1))
        result = self.engine([pattern("p1", required(1, "A"))], pot=pot).evaluate(
            {DESIRES_KIND: 1, "A": 1}, 1, 200
        )
        self.assertEqual(result.to_dict()["overallProbability"], "100.00")

    def test_pattern_without_uid_still_succeeds(self):
        """A match counts toward overall and label rates even when the pattern has no id."""
        patterns = [pattern("", required(1, "A"), labels=["l1"])]
        result = self.engine(patterns, [Label("l1")]).evaluate({"A": 2}, 1, 100)

        data = result.to_dict()
        self.assertEqual(data["overallProbability"], "100.00")
        self.assertEqual(data["labelSuccessRates"], {"l1": "100.00"})
        self.assertEqual(data["patternSuccessRates"], {})

    def test_pattern_without_uid_agrees_with_exact(self):
        patterns = [pattern("", required(1, "A"), labels=["l1"])]
        records = (
            DeckState(card_count=2, first_hand=1),
            CardsState(cards=(CardData("A", "A", 1), CardData("B", "B", 1))),
            PatternState(patterns=tuple(patterns)),
            PotConfig(),
            LabelState(labels=(Label("l1"),)),
        )
        expected = compute_exact(*records)
        simulated = compute_simulation(*records, 2000, rng=np.random.default_rng(SEED))

        self.assertEqual(format_rate(expected.overall_probability), "50.00")
        self.assertLessEqual(
            abs(simulated.overall_probability - expected.overall_probability), Decimal("5.00")
        )
        self.assertLessEqual(abs(simulated.label_rate("l1") - expected.label_rate("l1")), Decimal("5.00"))


class TestConvergence(unittest.TestCase):
    """Seeded simulation against exact results."""

    TOLERANCE = Decimal("1.00")

    def test_sample_deck_matches_exact(self):
        scenario = load_scenario(SAMPLE_DECK)
        args = (scenario.deck, scenario.cards, scenario.pattern, scenario.pot, scenario.label)

        expected = compute_exact(*args)
        simulated = compute_simulation(*args, 50000, rng=np.random.default_rng(SEED))

        self.assertLessEqual(
            abs(simulated.overall_probability - expected.overall_probability), self.TOLERANCE
        )
        for uid, rate in expected.pattern_success_rates.items():
            self.assertLessEqual(abs(simulated.pattern_rate(uid) - rate), self.TOLERANCE, uid)
        for uid, rate in expected.label_success_rates.items():
            self.assertLessEqual(abs(simulated.label_rate(uid) - rate), self.TOLERANCE, uid)


class TestSimulatedPotEffects(unittest.TestCase):
    """Test prosperity and desires played out on an ordered deck."""

    def resolver(self, pot, patterns=()):
        return PotEffectResolver(pot, PatternMatcher(), patterns)

    def test_no_pot_card_in_hand(self):
        pot = PotConfig(desires_or_extravagance=DesiresPot(count=1))
        hand, deck = self.resolver(pot).resolve_simulated(["A"], ["B", "C"])
        self.assertEqual((hand, deck), (["A"], ["B", "C"]))

    def test_desires(self):
        pot = PotConfig(desires_or_extravagance=DesiresPot(count=1))
        hand, deck = self.resolver(pot).resolve_simulated([DESIRES_KIND, "A"], ["B", "C", "D"])
        self.assertEqual(hand, [DESIRES_KIND, "A", "B", "C"])
        self.assertEqual(deck, ["D"])

    def test_prosperity_keeps_matching_card(self):
        pot = PotConfig(prosperity=ProsperityPot(count=1, cost=3))
        resolver = self.resolver(pot, [pattern("a", required(1, "A"))])

        hand, deck = resolver.resolve_simulated([PROSPERITY_KIND], ["B", "A", "C", "D"])
        self.assertEqual(hand, ["A"])
        # Unchosen cards go under the rest in reveal order
        self.assertEqual(deck, ["D", "B", "C"])

    def test_prosperity_prefers_lower_priority_number(self):
        pot = PotConfig(prosperity=ProsperityPot(count=1, cost=3))
        patterns = [
            pattern("b", required(1, "B"), priority=2),
            pattern("c", required(1, "C"), priority=1),
        ]
        hand, deck = self.resolver(pot, patterns).resolve_simulated(
            [PROSPERITY_KIND], ["B", "A", "C", "D"]
        )
        self.assertEqual(hand, ["C"])
        self.assertEqual(deck, ["D", "B", "A"])

    def test_prosperity_defaults_to_first_revealed(self):
        pot = PotConfig(prosperity=ProsperityPot(count=1, cost=3))
        hand, deck = self.resolver(pot, [pattern("z", required(1, "Z"))]).resolve_simulated(
            ["X", PROSPERITY_KIND], ["B", "A", "C", "D"]
        )
        self.assertEqual(hand, ["X", "B"])
        self.assertEqual(deck, ["D", "A", "C"])

    def test_prosperity_with_short_deck(self):
        """Every prosperity copy leaves the hand and nothing is added."""
        pot = PotConfig(prosperity=ProsperityPot(count=2, cost=6))
        hand, deck = self.resolver(pot).resolve_simulated(
            [PROSPERITY_KIND, "A", PROSPERITY_KIND], ["B", "C"]
        )
        self.assertEqual(hand, ["A"])
        self.assertEqual(deck, ["B", "C"])

    def test_prosperity_takes_precedence_over_desires(self):
        pot = PotConfig(
            prosperity=ProsperityPot(count=1, cost=3),
            desires_or_extravagance=DesiresPot(count=1),
        )
        hand, deck = self.resolver(pot).resolve_simulated(
            [PROSPERITY_KIND, DESIRES_KIND], ["B", "A", "C", "D"]
        )
        self.assertEqual(hand, [DESIRES_KIND, "B"])
        self.assertEqual(deck, ["D", "A", "C"])

    def test_inputs_are_not_modified(self):
        pot = PotConfig(desires_or_extravagance=DesiresPot(count=1))
        hand, deck = [DESIRES_KIND], ["A", "B", "C"]
        self.resolver(pot).resolve_simulated(hand, deck)
        self.assertEqual(hand, [DESIRES_KIND])
        self.assertEqual(deck, ["A", "B", "C"])


if __name__ == "__main__":
    unittest.main()
