"""
Test suite for deck composition, pattern parsing and pattern matching.

Tests include:
- Composition: kind order, unknown fill, every validation failure
- Records: condition/pattern/pot parsing and rejection of malformed input
- Matching: each condition mode, joint slot packing with backtracking,
  vacuous conditions, invalid conditions, unsupported modes
"""

import unittest
from collections import Counter

from deck_mechanics.composition import (
    BuiltDeck,
    CompositionError,
    DeckCompositionBuilder,
    ValidationFailure,
    remaining_after,
)
from deck_mechanics.condition_mode import ConditionMode
from deck_mechanics.pattern_matcher import PatternMatcher, SlotPacker
from deck_mechanics.patterns import Condition, Label, Pattern, sort_by_priority
from deck_mechanics.rules import (
    DESIRES_KIND,
    PROSPERITY_KIND,
    UNKNOWN_KIND,
    CalculationMode,
    CalculationSettings,
    DesiresPot,
    PotConfig,
    ProsperityPot,
)


def make_pattern(uid, conditions, **kwargs):
    return Pattern(uid=uid, name=uid, conditions=tuple(conditions), **kwargs)


def required(count, *kinds):
    return Condition(ConditionMode.REQUIRED, count, tuple(kinds))


class TestDeckCompositionBuilder(unittest.TestCase):
    """Test composition building and validation."""

    def test_kind_order_and_unknown_fill(self):
        """Pot kinds come first, then cards in input order, then unknown."""
        pot = PotConfig(
            prosperity=ProsperityPot(count=1, cost=3),
            desires_or_extravagance=DesiresPot(count=2),
        )
        built = DeckCompositionBuilder(pot).build(40, 5, [("A", 3), ("B", 2)])

        self.assertIsInstance(built, BuiltDeck)
        self.assertEqual(built.kinds, (PROSPERITY_KIND, DESIRES_KIND, "A", "B", UNKNOWN_KIND))
        self.assertEqual(built.composition[UNKNOWN_KIND], 32)
        self.assertEqual(sum(built.composition.values()), 40)
        self.assertEqual(built.hand_size, 5)

    def test_zero_counts_and_full_deck(self):
        """Zero-count cards are skipped and no unknown kind is added for a full deck."""
        built = DeckCompositionBuilder().build(4, 2, [("A", 4), ("B", 0)])

        self.assertEqual(dict(built.composition), {"A": 4})

    def test_duplicate_uids_merge(self):
        built = DeckCompositionBuilder().build(5, 1, [("A", 2), ("A", 3)])
        self.assertEqual(dict(built.composition), {"A": 5})

    def test_count_exceeds_deck_size(self):
        """Explicit plus pot cards above the deck size fail."""
        pot = PotConfig(desires_or_extravagance=DesiresPot(count=1))
        result = DeckCompositionBuilder(pot).build(3, 1, [("A", 3)])

        self.assertIsInstance(result, ValidationFailure)
        self.assertEqual(result.error, CompositionError.COUNT_EXCEEDS_DECK_SIZE)

    def test_invalid_hand_size(self):
        for hand_size in (5, -1):
            result = DeckCompositionBuilder().build(4, hand_size, [("A", 4)])
            self.assertIsInstance(result, ValidationFailure)
            self.assertEqual(result.error, CompositionError.INVALID_HAND_SIZE)

    def test_unchecked_build_skips_validation(self):
        """The unchecked variant never fails and only fills a positive gap."""
        composition = DeckCompositionBuilder().build_unchecked(3, [("A", 5)])
        self.assertEqual(dict(composition), {"A": 5})

        composition = DeckCompositionBuilder().build_unchecked(6, [("A", 5)])
        self.assertEqual(dict(composition), {"A": 5, UNKNOWN_KIND: 1})

    def test_remaining_after(self):
        remaining = remaining_after(Counter({"A": 2, "B": 1}), Counter({"A": 1, "B": 1}))
        self.assertEqual(dict(remaining), {"A": 1})


class TestRecords(unittest.TestCase):
    """Test parsing of condition, pattern and pot records."""

    def test_condition_from_record(self):
        condition = Condition.from_record(
            {"uids": ["A", "B"], "count": 2, "mode": "required_distinct", "invalid": False}
        )
        self.assertEqual(condition.mode, ConditionMode.REQUIRED_DISTINCT)
        self.assertEqual(condition.candidate_kinds, ("A", "B"))
        self.assertTrue(condition.valid)
        self.assertEqual(Condition.from_record(condition.to_record()), condition)

    def test_condition_rejects_unknown_mode(self):
        with self.assertRaises(ValueError):
            Condition.from_record({"uids": ["A"], "count": 1, "mode": "sometimes"})

    def test_condition_rejects_negative_count(self):
        with self.assertRaises(ValueError):
            Condition.from_record({"uids": ["A"], "count": -1, "mode": "required"})

    def test_pattern_from_record(self):
        pattern = Pattern.from_record(
            {
                "uid": "p1",
                "name": "Starter",
                "conditions": [{"uids": ["A"], "count": 1, "mode": "required", "invalid": True}],
                "labels": [{"uid": "l1"}, {"uid": ""}],
                "priority": 3,
                "active": True,
                "expanded": True,
                "memo": "",
            }
        )
        self.assertEqual(pattern.label_uids, ("l1",))
        self.assertEqual(pattern.priority, 3)
        self.assertFalse(pattern.is_valid)

    def test_label_requires_uid(self):
        with self.assertRaises(ValueError):
            Label.from_record({"name": "no id"})

    def test_pot_from_dict(self):
        pot = PotConfig.from_dict(
            {
                "prosperity": {"count": 1, "cost": 3, "priority": 1},
                "desiresOrExtravagance": {"count": 2, "priority": 2},
            }
        )
        self.assertEqual(pot.prosperity.cost, 3)
        self.assertEqual(pot.total_count, 3)
        self.assertTrue(pot.requires_simulation)
        self.assertEqual(PotConfig.from_dict(pot.to_dict()), pot)

    def test_pot_rejects_invalid_cost(self):
        with self.assertRaises(ValueError):
            PotConfig.from_dict({"prosperity": {"count": 1, "cost": 4}})

    def test_settings_from_dict(self):
        settings = CalculationSettings.from_dict(
            {"mode": "simulation", "simulationTrials": 500, "seed": 7}
        )
        self.assertEqual(settings.mode, CalculationMode.SIMULATION)
        self.assertEqual(settings.simulation_trials, 500)
        self.assertEqual(settings.seed, 7)
        self.assertFalse(settings.simulate_required_distinct)

        with self.assertRaises(ValueError):
            CalculationSettings.from_dict({"mode": "fast"})

    def test_sort_by_priority(self):
        """Inactive patterns drop out; equal priorities keep list order."""
        patterns = [
            make_pattern("a", [], priority=2),
            make_pattern("b", [], priority=1),
            make_pattern("c", [], priority=2),
            make_pattern("d", [], priority=0, active=False),
        ]
        self.assertEqual([p.uid for p in sort_by_priority(patterns)], ["b", "a", "c"])


class TestSlotPacker(unittest.TestCase):
    """Test joint slot packing."""

    def test_backtracks_to_alternative_kind(self):
        """The first condition must give up A so the second can use it."""
        conditions = [required(1, "A", "B"), required(1, "A")]
        self.assertTrue(SlotPacker({"A": 1, "B": 1}).can_pack(conditions))

    def test_one_card_cannot_fill_two_slots(self):
        conditions = [required(1, "A"), required(1, "A")]
        self.assertFalse(SlotPacker({"A": 1, "B": 1}).can_pack(conditions))

    def test_pool_is_not_modified(self):
        pool = {"A": 2}
        SlotPacker(pool).can_pack([required(2, "A")])
        self.assertEqual(pool, {"A": 2})

    def test_zero_count_and_empty_candidates(self):
        self.assertTrue(SlotPacker({}).can_pack([required(0)]))
        self.assertFalse(SlotPacker({"A": 1}).can_pack([required(1)]))


class TestPatternMatcher(unittest.TestCase):
    """Test single-pattern evaluation for each mode."""

    def setUp(self):
        self.matcher = PatternMatcher()
        self.hand = Counter({"A": 2, "B": 1})
        self.deck = Counter({"A": 1, "C": 2})

    def matches(self, *conditions, **kwargs):
        return self.matcher.matches(make_pattern("p", conditions, **kwargs), self.hand, self.deck)

    def test_required(self):
        self.assertTrue(self.matches(required(2, "A")))
        self.assertTrue(self.matches(required(3, "A", "B")))
        self.assertFalse(self.matches(required(3, "A")))

    def test_required_is_packed_jointly(self):
        self.assertTrue(self.matches(required(2, "A"), required(1, "B")))
        self.assertFalse(self.matches(required(2, "A", "B"), required(2, "A")))

    def test_required_distinct(self):
        distinct = Condition(ConditionMode.REQUIRED_DISTINCT, 2, ("A", "B", "C"))
        self.assertTrue(self.matches(distinct))
        distinct = Condition(ConditionMode.REQUIRED_DISTINCT, 2, ("A", "C"))
        self.assertFalse(self.matches(distinct))

    def test_not_drawn(self):
        self.assertTrue(self.matches(Condition(ConditionMode.NOT_DRAWN, 1, ("C",))))
        self.assertFalse(self.matches(Condition(ConditionMode.NOT_DRAWN, 1, ("C", "B"))))

    def test_leave_deck(self):
        self.assertTrue(self.matches(Condition(ConditionMode.LEAVE_DECK, 3, ("A", "C"))))
        self.assertFalse(self.matches(Condition(ConditionMode.LEAVE_DECK, 2, ("A",))))

    def test_vacuous_conditions(self):
        """leave_deck count=0 and not_drawn with no candidates always hold."""
        self.assertTrue(self.matches(Condition(ConditionMode.LEAVE_DECK, 0, ("Z",))))
        self.assertTrue(self.matches(Condition(ConditionMode.NOT_DRAWN, 1, ())))
        self.assertTrue(self.matches())

    def test_inactive_pattern_fails(self):
        self.assertFalse(self.matches(required(1, "A"), active=False))

    def test_invalid_condition_fails(self):
        invalid = Condition(ConditionMode.REQUIRED, 1, ("A",), valid=False)
        self.assertFalse(self.matches(invalid))

    def test_unsupported_mode_fails(self):
        matcher = PatternMatcher(
            {ConditionMode.REQUIRED, ConditionMode.LEAVE_DECK, ConditionMode.NOT_DRAWN}
        )
        distinct = Condition(ConditionMode.REQUIRED_DISTINCT, 1, ("A",))
        pattern = make_pattern("p", [distinct])
        self.assertFalse(matcher.matches(pattern, self.hand, self.deck))
        self.assertTrue(self.matcher.matches(pattern, self.hand, self.deck))


if __name__ == "__main__":
    unittest.main()
