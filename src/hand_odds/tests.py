"""
Test suite for exact hand-probability calculation.

Tests include:
- Known probabilities on tiny decks and a 43-card regression deck
- Aggregation properties: label monotonicity, idempotence, short-circuit
- Validation failures returned instead of raised
- Exact pot effect approximations (desires union, prosperity best case)
- Rate arithmetic, result records, scenario parsing and mode selection
- Rate tables with deltas and zero rows
- The command line: output formats, overrides and rejected input
"""

import io
import json
import shutil
import tempfile
import unittest
from collections import Counter
from contextlib import redirect_stdout
from decimal import Decimal
from pathlib import Path

from deck_mechanics.composition import (
    CompositionError,
    DeckCompositionBuilder,
    ValidationFailure,
)
from deck_mechanics.condition_mode import ConditionMode
from deck_mechanics.pattern_matcher import PatternMatcher
from deck_mechanics.patterns import Condition, Label, Pattern
from deck_mechanics.rules import (
    DESIRES_KIND,
    PROSPERITY_KIND,
    CalculationMode,
    CalculationSettings,
    DesiresPot,
    PotConfig,
    ProsperityPot,
)
from hand_odds import cli
from hand_odds.aggregator import CheckResult, find_satisfied
from hand_odds.calculator import calculate, compute_exact, select_mode
from hand_odds.exact_engine import ExactCombinatoricsEngine, MemoCache, binomial
from hand_odds.pot_effects import PotEffectResolver
from hand_odds.rates import (
    CalculationResult,
    exact_rate,
    format_rate,
    frequency_rate,
    sort_descending,
)
from hand_odds.records import (
    CardData,
    CardsState,
    DeckState,
    LabelState,
    PatternState,
    Scenario,
    load_scenario,
)
from hand_odds.report import build_rate_table, format_report

SAMPLE_DECK = Path(__file__).parent / "testdata" / "sample_deck.json"

SAMPLE_PATTERN_RATES = {
    "6ce579f8-cff5-48cd-beeb-68011370ea89": "75.34",
    "49fc6e53-1d9d-4dbd-abb6-48b226c1becd": "5.93",
    "64fe9abc-6e08-4145-86ed-c23fb2a9003e": "7.37",
    "a9d7a907-a9bb-4135-846a-2011f5108c3e": "28.85",
    "b9b968f6-9060-4fdb-8fe6-fdee5b555729": "9.80",
    "d60cb6a9-6ed6-478b-848a-437ad9d472c0": "1.10",
    "dc198698-f5c8-48e8-bab8-4f2e52e282ef": "7.89",
}
SAMPLE_LABEL_RATES = {
    "a1f3b9e2-4c7d-4f9a-9a2e-1b2c3d4e5f60": "75.34",
    "b2e4c7d1-5f8a-4b9c-8d3f-2e4f5a6b7c81": "50.02",
}


def condition(mode, count, *kinds, valid=True):
    return Condition(ConditionMode(mode), count, tuple(kinds), valid)


def pattern(uid, *conditions, labels=(), priority=0, active=True):
    return Pattern(
        uid=uid,
        name=uid,
        conditions=tuple(conditions),
        label_uids=tuple(labels),
        priority=priority,
        active=active,
    )


def exact(counts, hand_size, patterns, deck_size=None, pot=None, labels=()):
    """Run compute_exact on plain {uid: count} input."""
    if deck_size is None:
        deck_size = sum(counts.values())
    return compute_exact(
        DeckState(card_count=deck_size, first_hand=hand_size),
        CardsState(cards=tuple(CardData(uid, uid, n) for uid, n in counts.items())),
        PatternState(patterns=tuple(patterns)),
        pot or PotConfig(),
        LabelState(labels=tuple(Label(uid) for uid in labels)),
    )


class TestBasicProbabilities(unittest.TestCase):
    """Test small decks with hand-checked answers."""

    def test_certain_draw(self):
        result = exact({"A": 3}, 3, [pattern("p1", condition("required", 3, "A"))])
        self.assertEqual(result.to_dict()["overallProbability"], "100.00")

    def test_coin_flip(self):
        result = exact({"A": 1, "B": 1}, 1, [pattern("p1", condition("required", 1, "A"))])
        data = result.to_dict()
        self.assertEqual(data["overallProbability"], "50.00")
        self.assertEqual(data["patternSuccessRates"]["p1"], "50.00")

    def test_two_of_three(self):
        result = exact({"A": 2, "B": 1}, 2, [pattern("p1", condition("required", 2, "A"))])
        data = result.to_dict()
        self.assertEqual(data["overallProbability"], "33.33")
        self.assertEqual(data["patternSuccessRates"]["p1"], "33.33")
        self.assertEqual(result.mode, CalculationMode.EXACT)

    def test_rates_truncate(self):
        """Two out of three hands is 66.66, never rounded up."""
        result = exact(
            {"A": 2, "B": 2},
            2,
            [pattern("p1", condition("required_distinct", 2, "A", "B"))],
        )
        self.assertEqual(format_rate(result.overall_probability), "66.66")

    def test_unknown_cards_fill_the_deck(self):
        result = exact({"A": 1}, 1, [pattern("p1", condition("required", 1, "A"))], deck_size=4)
        self.assertEqual(format_rate(result.overall_probability), "25.00")

    def test_not_drawn(self):
        # C(3,2) / C(4,2)
        result = exact({"A": 1, "B": 3}, 2, [pattern("p1", condition("not_drawn", 1, "A"))])
        self.assertEqual(format_rate(result.overall_probability), "50.00")

    def test_leave_deck(self):
        # Only the BB hand leaves both A in the deck: 1 / 6
        result = exact({"A": 2, "B": 2}, 2, [pattern("p1", condition("leave_deck", 2, "A"))])
        self.assertEqual(format_rate(result.overall_probability), "16.66")

    def test_vacuous_conditions_always_hold(self):
        result = exact(
            {"A": 2, "B": 2},
            2,
            [pattern("p1", condition("leave_deck", 0, "A"), condition("not_drawn", 1))],
        )
        self.assertEqual(format_rate(result.overall_probability), "100.00")

    def test_one_card_fills_one_slot(self):
        """Two required conditions over the same single card cannot both hold."""
        result = exact(
            {"A": 1, "B": 1},
            2,
            [pattern("p1", condition("required", 1, "A"), condition("required", 1, "A"))],
        )
        self.assertEqual(format_rate(result.overall_probability), "0.00")
        self.assertEqual(result.pattern_success_rates, {})

    def test_joint_packing_backtracks(self):
        result = exact(
            {"A": 1, "B": 1},
            2,
            [pattern("p1", condition("required", 1, "A", "B"), condition("required", 1, "A"))],
        )
        self.assertEqual(format_rate(result.overall_probability), "100.00")

    def test_invalid_condition_never_succeeds(self):
        result = exact(
            {"A": 1, "B": 1},
            1,
            [
                pattern("bad", condition("required", 1, "A", valid=False)),
                pattern("good", condition("required", 1, "B")),
            ],
        )
        self.assertNotIn("bad", result.pattern_success_rates)
        self.assertEqual(format_rate(result.pattern_rate("good")), "50.00")

    def test_inactive_pattern_is_ignored(self):
        result = exact(
            {"A": 1, "B": 1},
            1,
            [
                pattern("off", condition("required", 1, "A"), active=False),
                pattern("on", condition("required", 1, "B")),
            ],
        )
        self.assertEqual(list(result.pattern_success_rates), ["on"])
        self.assertEqual(format_rate(result.overall_probability), "50.00")


class TestSampleDeck(unittest.TestCase):
    """Regression deck: 43 cards, 23 named, 7 patterns, 2 labels, hand of 5."""

    @classmethod
    def setUpClass(cls):
        cls.scenario = load_scenario(SAMPLE_DECK)
        cls.result = calculate(cls.scenario)

    def test_overall_probability(self):
        self.assertEqual(self.result.to_dict()["overallProbability"], "91.52")

    def test_pattern_rates(self):
        self.assertEqual(self.result.to_dict()["patternSuccessRates"], SAMPLE_PATTERN_RATES)

    def test_label_rates(self):
        self.assertEqual(self.result.to_dict()["labelSuccessRates"], SAMPLE_LABEL_RATES)

    def test_rates_are_in_descending_order(self):
        rates = [Decimal(r) for r in self.result.to_dict()["patternSuccessRates"].values()]
        self.assertEqual(rates, sorted(rates, reverse=True))

    def test_label_at_least_its_best_pattern(self):
        for p in self.scenario.pattern.patterns:
            for label_uid in p.label_uids:
                self.assertGreaterEqual(
                    self.result.label_rate(label_uid), self.result.pattern_rate(p.uid)
                )

    def test_repeated_calls_agree(self):
        """No memo state leaks between calls."""
        again = compute_exact(
            self.scenario.deck,
            self.scenario.cards,
            self.scenario.pattern,
            self.scenario.pot,
            self.scenario.label,
        )
        self.assertEqual(again.to_dict(), self.result.to_dict())

    def test_mode_is_exact(self):
        self.assertEqual(self.result.mode, CalculationMode.EXACT)


class TestShortCircuitAndFailures(unittest.TestCase):
    """Test empty inputs and validation failures."""

    def test_no_patterns_and_no_pot(self):
        result = exact({"A": 2}, 1, [])
        self.assertEqual(result.overall_probability, Decimal("0.00"))
        self.assertEqual(result.pattern_success_rates, {})
        self.assertEqual(result.label_success_rates, {})
        self.assertEqual(result.mode, CalculationMode.EXACT)

    def test_only_inactive_patterns(self):
        result = exact({"A": 2}, 1, [pattern("p1", condition("required", 1, "A"), active=False)])
        self.assertEqual(result.to_dict()["overallProbability"], "0.00")

    def test_count_exceeds_deck_size(self):
        result = exact({"A": 5}, 1, [pattern("p1", condition("required", 1, "A"))], deck_size=4)
        self.assertIsInstance(result, ValidationFailure)
        self.assertEqual(result.error, CompositionError.COUNT_EXCEEDS_DECK_SIZE)

    def test_hand_larger_than_deck(self):
        result = exact({"A": 2}, 3, [pattern("p1", condition("required", 1, "A"))])
        self.assertIsInstance(result, ValidationFailure)
        self.assertEqual(result.error, CompositionError.INVALID_HAND_SIZE)
        self.assertIn("InvalidHandSize", str(result))

    def test_pot_cards_count_toward_deck(self):
        pot = PotConfig(desires_or_extravagance=DesiresPot(count=1))
        result = exact({"A": 4}, 1, [], deck_size=4, pot=pot)
        self.assertIsInstance(result, ValidationFailure)

    def test_empty_hand(self):
        """A hand of zero cards is valid; only vacuous patterns hold."""
        result = exact(
            {"A": 2},
            0,
            [pattern("empty", condition("not_drawn", 1, "A")), pattern("a", condition("required", 1, "A"))],
        )
        self.assertEqual(format_rate(result.overall_probability), "100.00")
        self.assertEqual(list(result.pattern_success_rates), ["empty"])


class TestExactEngine(unittest.TestCase):
    """Test binomials and enumeration bookkeeping."""

    def test_binomial(self):
        self.assertEqual(binomial(5, 2), 10)
        self.assertEqual(binomial(43, 5), 962598)
        self.assertEqual(binomial(4, 0), 1)
        self.assertEqual(binomial(4, 5), 0)
        self.assertEqual(binomial(4, -1), 0)
        self.assertEqual(binomial(60, 30), 118264581564861424)

    def test_enumeration_covers_every_hand(self):
        built = DeckCompositionBuilder().build(10, 4, [("A", 3), ("B", 2), ("C", 1)])
        engine = ExactCombinatoricsEngine(patterns=[pattern("p1", condition("required", 1, "A"))])
        tally = engine.count_successes(built)

        self.assertEqual(tally.total, binomial(10, 4))
        # Complement: hands with no A
        self.assertEqual(tally.overall, binomial(10, 4) - binomial(7, 4))
        self.assertEqual(tally.patterns["p1"], tally.overall)

    def test_memo_key_ignores_zero_counts(self):
        self.assertEqual(
            MemoCache.key(1, 2, Counter({"A": 1, "B": 0})),
            MemoCache.key(1, 2, Counter({"A": 1})),
        )

    def test_enumeration_logs_sub_state_count(self):
        built = DeckCompositionBuilder().build(4, 2, [("A", 2), ("B", 2)])
        engine = ExactCombinatoricsEngine(patterns=[pattern("p1", condition("required", 1, "A"))])
        with self.assertLogs("hand_odds.exact_engine", level="DEBUG") as logs:
            engine.count_successes(built)
        self.assertTrue(any("sub-states" in line for line in logs.output))
        self.assertFalse(any("hits" in line for line in logs.output))

    def test_match_without_uid_is_success(self):
        patterns = [pattern("", condition("required", 1, "A"), labels=["l1"])]
        check = find_satisfied(PatternMatcher(), Counter({"A": 1}), Counter(), patterns)
        self.assertTrue(check.is_success)
        self.assertEqual(check.pattern_uids, {})
        self.assertEqual(list(check.label_uids), ["l1"])

        merged = CheckResult()
        merged.merge(check)
        self.assertTrue(merged.is_success)
        self.assertFalse(CheckResult(label_uids={"l1": None}).is_success)


class TestExactPotEffects(unittest.TestCase):
    """Test the existence-based pot approximations of the exact path."""

    def test_desires_unions_over_extra_draws(self):
        # desires, A, B, B; hand of 1. The desires hand can reach A via (A, B).
        pot = PotConfig(desires_or_extravagance=DesiresPot(count=1))
        result = exact(
            {"A": 1, "B": 2},
            1,
            [pattern("p1", condition("required", 1, "A"))],
            deck_size=4,
            pot=pot,
        )
        self.assertEqual(format_rate(result.overall_probability), "50.00")

    def test_desires_alone_counts_as_pot(self):
        """A pot with no patterns still enumerates and reports zero."""
        pot = PotConfig(desires_or_extravagance=DesiresPot(count=1))
        result = exact({"A": 1}, 1, [], deck_size=2, pot=pot)
        self.assertEqual(format_rate(result.overall_probability), "0.00")

    def test_prosperity_best_case(self):
        pot = PotConfig(prosperity=ProsperityPot(count=1, cost=3))
        result = exact(
            {"A": 1, "B": 3},
            1,
            [pattern("p1", condition("required", 1, "A"))],
            deck_size=5,
            pot=pot,
        )
        self.assertEqual(format_rate(result.overall_probability), "40.00")

    def test_prosperity_without_enough_cards(self):
        pot = PotConfig(prosperity=ProsperityPot(count=1, cost=6))
        result = exact(
            {"A": 1, "B": 3},
            1,
            [pattern("p1", condition("required", 1, "A"))],
            deck_size=5,
            pot=pot,
        )
        self.assertEqual(format_rate(result.overall_probability), "20.00")

    def test_resolver_desires_adds_pairs_and_doubles(self):
        patterns = [pattern("two_b", condition("required", 2, "B"))]
        pot = PotConfig(desires_or_extravagance=DesiresPot(count=1))
        resolver = PotEffectResolver(pot, PatternMatcher(), patterns)

        check = resolver.resolve_exact(Counter({DESIRES_KIND: 1}), Counter({"A": 1, "B": 2}))
        self.assertEqual(list(check.pattern_uids), ["two_b"])

        check = resolver.resolve_exact(Counter({DESIRES_KIND: 1}), Counter({"A": 1, "B": 1}))
        self.assertFalse(check.is_success)

    def test_resolver_prosperity_takes_precedence(self):
        patterns = [pattern("a", condition("required", 1, "A"))]
        pot = PotConfig(
            prosperity=ProsperityPot(count=1, cost=6),
            desires_or_extravagance=DesiresPot(count=1),
        )
        resolver = PotEffectResolver(pot, PatternMatcher(), patterns)
        hand = Counter({PROSPERITY_KIND: 1, DESIRES_KIND: 1})

        # Too few cards for prosperity, and desires is not applied instead
        check = resolver.resolve_exact(hand, Counter({"A": 2}))
        self.assertFalse(check.is_success)


class TestRates(unittest.TestCase):
    """Test fixed-point rate helpers and the result record."""

    def test_exact_rate(self):
        self.assertEqual(exact_rate(1, 3), Decimal("33.33"))
        self.assertEqual(exact_rate(2, 3), Decimal("66.66"))
        self.assertEqual(exact_rate(3, 3), Decimal("100.00"))
        self.assertEqual(exact_rate(1, 0), Decimal("0.00"))

    def test_exact_rate_on_huge_counts(self):
        denominator = binomial(200, 100)
        self.assertEqual(exact_rate(denominator // 2, denominator), Decimal("50.00"))

    def test_frequency_rate_rounds_half_up(self):
        self.assertEqual(frequency_rate(2, 3), Decimal("66.67"))
        self.assertEqual(frequency_rate(1, 8), Decimal("12.50"))
        self.assertEqual(frequency_rate(1, 80000), Decimal("0.00"))
        self.assertEqual(frequency_rate(1, 40000), Decimal("0.00"))
        self.assertEqual(frequency_rate(1, 20000), Decimal("0.01"))

    def test_frequency_rate_rejects_zero_trials(self):
        with self.assertRaises(ValueError):
            frequency_rate(0, 0)

    def test_format_rate(self):
        self.assertEqual(format_rate(Decimal("5.9")), "5.90")
        self.assertEqual(format_rate(Decimal("0")), "0.00")

    def test_sort_descending_is_stable(self):
        rates = {"a": Decimal("1.00"), "b": Decimal("5.00"), "c": Decimal("1.00")}
        self.assertEqual(list(sort_descending(rates)), ["b", "a", "c"])

    def test_result_record(self):
        result = CalculationResult(
            overall_probability=Decimal("12.30"),
            pattern_success_rates={"low": Decimal("1.00"), "high": Decimal("9.99")},
            label_success_rates={},
            mode=CalculationMode.SIMULATION,
        )
        data = result.to_dict()
        self.assertEqual(data["overallProbability"], "12.30")
        self.assertEqual(list(data["patternSuccessRates"].items()), [("high", "9.99"), ("low", "1.00")])
        self.assertEqual(data["mode"], "simulation")

        parsed = CalculationResult.from_dict(data)
        self.assertEqual(parsed.pattern_rate("high"), Decimal("9.99"))
        self.assertEqual(parsed.mode, CalculationMode.SIMULATION)
        self.assertEqual(parsed.label_rate("missing"), Decimal("0.00"))


class TestScenario(unittest.TestCase):
    """Test scenario parsing, input gates and mode selection."""

    def test_from_dict_defaults(self):
        scenario = Scenario.from_dict({})
        self.assertEqual(scenario.deck.card_count, 40)
        self.assertEqual(scenario.deck.first_hand, 5)
        self.assertEqual(scenario.settings.mode, CalculationMode.EXACT)
        self.assertEqual(scenario.settings.simulation_trials, 10000)

    def test_from_dict_rejects_non_object(self):
        with self.assertRaises(ValueError):
            Scenario.from_dict(["not", "a", "scenario"])

    def test_card_record_validation(self):
        with self.assertRaises(ValueError):
            CardData.from_dict({"name": "no id", "count": 1})
        with self.assertRaises(ValueError):
            CardData.from_dict({"uid": "A", "count": -2})

    def test_input_gates(self):
        scenario = Scenario.from_dict(
            {
                "deck": {"cardCount": 3, "firstHand": 1},
                "cards": {"cards": [{"uid": "A", "name": "A", "count": 3}]},
                "pot": {"desiresOrExtravagance": {"count": 1}},
                "pattern": {
                    "patterns": [
                        {
                            "uid": "p1",
                            "conditions": [
                                {"uids": ["A"], "count": 1, "mode": "required", "invalid": True}
                            ],
                        }
                    ]
                },
            }
        )
        self.assertTrue(scenario.has_invalid_conditions())
        self.assertTrue(scenario.card_count_exceeds_deck())

    def test_sample_deck_loads(self):
        scenario = load_scenario(SAMPLE_DECK)
        self.assertEqual(len(scenario.cards.cards), 23)
        self.assertEqual(scenario.cards.total_count, 35)
        self.assertEqual(len(scenario.pattern.active_patterns), 7)
        self.assertEqual(scenario.label.find("a1f3b9e2-4c7d-4f9a-9a2e-1b2c3d4e5f60").name, "1枚初動")
        self.assertIsNone(scenario.pattern.find("missing"))

    def test_select_mode(self):
        exact_settings = CalculationSettings()
        simulation_settings = CalculationSettings(mode=CalculationMode.SIMULATION)
        prosperity = PotConfig(prosperity=ProsperityPot(count=1))
        desires = PotConfig(desires_or_extravagance=DesiresPot(count=3))

        self.assertEqual(select_mode(PotConfig(), exact_settings), CalculationMode.EXACT)
        self.assertEqual(select_mode(desires, exact_settings), CalculationMode.EXACT)
        self.assertEqual(select_mode(prosperity, exact_settings), CalculationMode.SIMULATION)
        self.assertEqual(select_mode(PotConfig(), simulation_settings), CalculationMode.SIMULATION)

    def test_prosperity_forces_simulation(self):
        scenario = Scenario.from_dict(
            {
                "deck": {"cardCount": 4, "firstHand": 1},
                "cards": {"cards": [{"uid": "A", "name": "A", "count": 3}]},
                "pot": {"prosperity": {"count": 1, "cost": 3}},
                "pattern": {
                    "patterns": [
                        {"uid": "p1", "conditions": [{"uids": ["A"], "count": 1, "mode": "required"}]}
                    ]
                },
                "settings": {"mode": "exact", "simulationTrials": 200, "seed": 3},
            }
        )
        result = calculate(scenario)
        self.assertEqual(result.mode, CalculationMode.SIMULATION)
        # Every deal ends with an A in hand
        self.assertEqual(format_rate(result.overall_probability), "100.00")


class TestReport(unittest.TestCase):
    """Test rate tables."""

    def setUp(self):
        self.patterns = PatternState(
            patterns=(
                Pattern(uid="p1", name="Starter", conditions=()),
                Pattern(uid="p2", name="Backup", conditions=()),
                Pattern(uid="p3", name="Off", conditions=(), active=False),
            )
        )
        self.labels = LabelState(labels=(Label("l1", "Opener"), Label("l2", "Extender")))
        self.result = CalculationResult(
            overall_probability=Decimal("40.00"),
            pattern_success_rates={"p1": Decimal("40.00")},
            label_success_rates={"l1": Decimal("40.00")},
            mode=CalculationMode.EXACT,
        )

    def test_zero_rows_hidden_by_default(self):
        table = build_rate_table(self.result, self.patterns, self.labels)
        self.assertEqual(list(table["uid"]), ["p1", "l1"])
        self.assertEqual(list(table["name"]), ["Starter", "Opener"])
        self.assertTrue(table["delta"].isna().all())

    def test_show_zero_fills_active_patterns_and_labels(self):
        table = build_rate_table(self.result, self.patterns, self.labels, show_zero=True)
        self.assertEqual(list(table["uid"]), ["p1", "p2", "l1", "l2"])
        self.assertEqual(list(table["rate"]), ["40.00", "0.00", "40.00", "0.00"])

    def test_delta_against_previous_exact_result(self):
        previous = CalculationResult(
            overall_probability=Decimal("30.00"),
            pattern_success_rates={"p1": Decimal("42.50")},
            label_success_rates={},
            mode=CalculationMode.EXACT,
        )
        table = build_rate_table(self.result, self.patterns, self.labels, previous=previous)
        self.assertEqual(list(table["delta"]), ["-2.50", "+40.00"])

    def test_no_delta_against_simulated_result(self):
        previous = CalculationResult(
            pattern_success_rates={"p1": Decimal("10.00")},
            mode=CalculationMode.SIMULATION,
        )
        table = build_rate_table(self.result, self.patterns, self.labels, previous=previous)
        self.assertTrue(table["delta"].isna().all())

    def test_format_report(self):
        result = CalculationResult(
            overall_probability=Decimal("40.00"),
            pattern_success_rates={"p1": Decimal("40.00")},
            mode=CalculationMode.EXACT,
        )
        table = build_rate_table(result, self.patterns, LabelState())
        text = format_report(result, table)
        self.assertIn("Overall success rate: 40.00% (exact)", text)
        self.assertIn("Starter", text)
        self.assertIn("(none)", text)


class TestCommandLine(unittest.TestCase):
    """Test the hand-odds command end to end."""

    def setUp(self):
        self.temp_dir = Path(tempfile.mkdtemp())
        self.scenario = {
            "deck": {"cardCount": 2, "firstHand": 1},
            "cards": {
                "cards": [
                    {"uid": "A", "name": "Alpha", "count": 1},
                    {"uid": "B", "name": "Beta", "count": 1},
                ]
            },
            "pattern": {
                "patterns": [
                    {
                        "uid": "p1",
                        "name": "Draw Alpha",
                        "labels": [{"uid": "l1"}],
                        "conditions": [{"uids": ["A"], "count": 1, "mode": "required"}],
                    }
                ]
            },
            "label": {"labels": [{"uid": "l1", "name": "Opener"}]},
        }

    def tearDown(self):
        shutil.rmtree(self.temp_dir, ignore_errors=True)

    def write_json(self, name, data):
        path = self.temp_dir / name
        with open(path, "w", encoding="utf-8") as f:
            json.dump(data, f)
        return str(path)

    def run_cli(self, *argv):
        output = io.StringIO()
        with redirect_stdout(output):
            exit_code = cli.main(list(argv))
        return exit_code, output.getvalue()

    def test_json_output(self):
        exit_code, output = self.run_cli(self.write_json("scenario.json", self.scenario), "--json")
        self.assertEqual(exit_code, 0)
        data = json.loads(output)
        self.assertEqual(data["overallProbability"], "50.00")
        self.assertEqual(data["labelSuccessRates"], {"l1": "50.00"})
        self.assertEqual(data["mode"], "exact")

    def test_report_output(self):
        exit_code, output = self.run_cli(self.write_json("scenario.json", self.scenario))
        self.assertEqual(exit_code, 0)
        self.assertIn("Overall success rate: 50.00% (exact)", output)
        self.assertIn("Draw Alpha", output)
        self.assertIn("Opener", output)

    def test_simulation_override(self):
        exit_code, output = self.run_cli(
            self.write_json("scenario.json", self.scenario),
            "--mode", "simulation", "--trials", "200", "--seed", "5", "--json",
        )
        self.assertEqual(exit_code, 0)
        self.assertEqual(json.loads(output)["mode"], "simulation")

    def test_delta_against_previous(self):
        previous = {
            "overallProbability": "40.00",
            "patternSuccessRates": {"p1": "40.00"},
            "labelSuccessRates": {},
            "mode": "exact",
        }
        exit_code, output = self.run_cli(
            self.write_json("scenario.json", self.scenario),
            "--previous", self.write_json("previous.json", previous),
        )
        self.assertEqual(exit_code, 0)
        self.assertIn("+10.00", output)
        self.assertIn("+50.00", output)

    def test_invalid_conditions_rejected(self):
        self.scenario["pattern"]["patterns"][0]["conditions"][0]["invalid"] = True
        exit_code, output = self.run_cli(self.write_json("scenario.json", self.scenario))
        self.assertEqual(exit_code, 1)
        self.assertIn("invalid pattern conditions", output)

    def test_card_counts_over_deck_rejected(self):
        self.scenario["deck"]["cardCount"] = 1
        exit_code, output = self.run_cli(self.write_json("scenario.json", self.scenario))
        self.assertEqual(exit_code, 1)
        self.assertIn("exceed the deck size", output)

    def test_validation_failure_reported(self):
        self.scenario["deck"]["firstHand"] = 3
        exit_code, output = self.run_cli(self.write_json("scenario.json", self.scenario))
        self.assertEqual(exit_code, 1)
        self.assertIn("InvalidHandSize", output)

    def test_non_positive_trials(self):
        with self.assertRaises(ValueError):
            self.run_cli(self.write_json("scenario.json", self.scenario), "--trials", "0")

    def test_malformed_scenario(self):
        path = self.temp_dir / "broken.json"
        path.write_text("{not json", encoding="utf-8")
        with self.assertRaises(ValueError):
            self.run_cli(str(path))


if __name__ == "__main__":
    unittest.main()
