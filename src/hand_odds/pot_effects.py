"""
Bonus-draw pot effects.

Two pot kinds can modify the hand before patterns are checked. Prosperity
(cost-based) takes precedence over desires/extravagance (count-based) when
both are drawn.

The exact engine cannot know which cards a pot effect would actually deliver,
so it unions the outcome over every achievable addition. That is an
existence-based upper bound, not a probability: acceptable for desires,
not for prosperity, which is why prosperity decks are routed to simulation.
The simulated path plays the effects out on the shuffled deck.
"""

from collections import Counter
from itertools import combinations
from typing import Counter as CounterType, List, Mapping, Optional, Sequence, Tuple

from deck_mechanics.pattern_matcher import PatternMatcher
from deck_mechanics.patterns import Pattern, sort_by_priority
from deck_mechanics.rules import (
    DESIRES_EXTRA_DRAWS,
    DESIRES_KIND,
    PROSPERITY_KIND,
    PotConfig,
)
from hand_odds.aggregator import CheckResult, find_satisfied


class PotEffectResolver:
    def __init__(
        self,
        pot: PotConfig,
        matcher: PatternMatcher,
        patterns: Sequence[Pattern],
    ):
        self.pot = pot
        self.matcher = matcher
        self.patterns = list(patterns)
        self.sorted_patterns = sort_by_priority(self.patterns)

    # ------------ Exact (union over achievable additions) ------------

    def resolve_exact(
        self, hand: Mapping[str, int], remaining: Mapping[str, int]
    ) -> CheckResult:
        if self.pot.prosperity.count > 0 and hand.get(PROSPERITY_KIND, 0) > 0:
            return self._exact_prosperity(hand, remaining)
        if (
            self.pot.desires_or_extravagance.count > 0
            and hand.get(DESIRES_KIND, 0) > 0
        ):
            return self._exact_desires(hand, remaining)
        return self._satisfied(hand, remaining)

    def _exact_prosperity(
        self, hand: Mapping[str, int], remaining: Mapping[str, int]
    ) -> CheckResult:
        base: CounterType[str] = Counter(hand)
        base[PROSPERITY_KIND] -= 1

        result = self._satisfied(base, remaining)
        if sum(remaining.values()) < self.pot.prosperity.cost:
            return result

        # Best case: any kind still in the deck could be the one kept.
        # The remaining deck is deliberately left as-is.
        for kind, count in remaining.items():
            if count <= 0:
                continue
            candidate = base.copy()
            candidate[kind] += 1
            result.merge(self._satisfied(candidate, remaining))
        return result

    def _exact_desires(
        self, hand: Mapping[str, int], remaining: Mapping[str, int]
    ) -> CheckResult:
        result = self._satisfied(hand, remaining)
        available = [kind for kind, count in remaining.items() if count > 0]

        for first, second in combinations(available, 2):
            candidate: CounterType[str] = Counter(hand)
            candidate[first] += 1
            candidate[second] += 1
            result.merge(self._satisfied(candidate, remaining))

        for kind in available:
            if remaining[kind] < 2:
                continue
            candidate = Counter(hand)
            candidate[kind] += 2
            result.merge(self._satisfied(candidate, remaining))

        return result

    def _satisfied(
        self, hand: Mapping[str, int], remaining: Mapping[str, int]
    ) -> CheckResult:
        return find_satisfied(self.matcher, hand, remaining, self.patterns)

    # ------------ Simulated (played out on the shuffled deck) ------------

    def resolve_simulated(
        self, hand: List[str], deck: List[str]
    ) -> Tuple[List[str], List[str]]:
        """
        Apply pot effects to one dealt hand.

        `deck` is the undealt remainder with index 0 on top. Returns the
        effective (hand, deck) pair; the inputs are not modified.
        """
        if self.pot.prosperity.count > 0 and PROSPERITY_KIND in hand:
            return self._simulate_prosperity(hand, deck)
        if self.pot.desires_or_extravagance.count > 0 and DESIRES_KIND in hand:
            return self._simulate_desires(hand, deck)
        return list(hand), list(deck)

    def _simulate_prosperity(
        self, hand: List[str], deck: List[str]
    ) -> Tuple[List[str], List[str]]:
        cost = self.pot.prosperity.cost
        effective_hand = [kind for kind in hand if kind != PROSPERITY_KIND]

        revealed = deck[:cost]
        if len(revealed) < cost:
            return effective_hand, list(deck)
        rest = deck[cost:]

        selected = 0
        best: Optional[Pattern] = None
        for index, card in enumerate(revealed):
            test_hand: CounterType[str] = Counter(effective_hand)
            test_hand[card] += 1
            test_deck: CounterType[str] = Counter(rest)
            test_deck.update(c for j, c in enumerate(revealed) if j != index)

            top = self._top_match(test_hand, test_deck)
            if top is not None and (best is None or top.priority < best.priority):
                best = top
                selected = index

        effective_hand.append(revealed[selected])
        # Unchosen cards go to the bottom in reveal order
        effective_deck = rest + [c for j, c in enumerate(revealed) if j != selected]
        return effective_hand, effective_deck

    def _simulate_desires(
        self, hand: List[str], deck: List[str]
    ) -> Tuple[List[str], List[str]]:
        drawn = deck[:DESIRES_EXTRA_DRAWS]
        return list(hand) + drawn, deck[DESIRES_EXTRA_DRAWS:]

    def _top_match(
        self, hand: Mapping[str, int], deck: Mapping[str, int]
    ) -> Optional[Pattern]:
        for pattern in self.sorted_patterns:
            if self.matcher.matches(pattern, hand, deck):
                return pattern
        return None
