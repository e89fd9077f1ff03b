from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from typing import Counter as CounterType, Dict, List, Optional, Sequence, Tuple

from deck_mechanics.composition import BuiltDeck, remaining_after
from deck_mechanics.pattern_matcher import PatternMatcher
from deck_mechanics.patterns import Pattern, sort_by_priority
from deck_mechanics.rules import CalculationMode, PotConfig
from hand_odds.logging_config import get_logger
from hand_odds.pot_effects import PotEffectResolver
from hand_odds.rates import CalculationResult, exact_rate, sort_descending

logger = get_logger(__name__)


def binomial(n: int, k: int) -> int:
    """C(n, k) with exact integers; 0 when k is outside [0, n]."""
    if k < 0 or k > n:
        return 0
    if k == 0 or k == n:
        return 1
    # C(n, k) = C(n, n-k)
    k = min(k, n - k)
    result = 1
    for i in range(1, k + 1):
        # Each partial product is itself a binomial, so the division is exact
        result = result * (n - i + 1) // i
    return result


@dataclass
class Tally:
    """Weighted success counts for a sub-tree of hand compositions."""

    total: int = 0
    overall: int = 0
    patterns: Dict[str, int] = field(default_factory=dict)
    labels: Dict[str, int] = field(default_factory=dict)

    def add_weighted(self, other: "Tally", weight: int) -> None:
        self.total += weight * other.total
        self.overall += weight * other.overall
        for uid, count in other.patterns.items():
            self.patterns[uid] = self.patterns.get(uid, 0) + weight * count
        for uid, count in other.labels.items():
            self.labels[uid] = self.labels.get(uid, 0) + weight * count


MemoKey = Tuple[int, int, Tuple[Tuple[str, int], ...]]


class MemoCache:
    """Sub-result cache owned by a single top-level calculation.

    The key carries the full partial hand, so distinct draw paths never share
    an entry. The cache is scoped per call and holds one Tally per sub-state.
    """

    def __init__(self):
        self._entries: Dict[MemoKey, Tally] = {}

    @staticmethod
    def key(index: int, slots: int, hand: CounterType[str]) -> MemoKey:
        return (index, slots, tuple(sorted((k, v) for k, v in hand.items() if v > 0)))

    def get(self, key: MemoKey) -> Optional[Tally]:
        return self._entries.get(key)

    def put(self, key: MemoKey, tally: Tally) -> None:
        self._entries[key] = tally

    def __len__(self) -> int:
        return len(self._entries)


class _HandEnumeration:
    """
    State for one enumeration: the working hand with a draw/undo stack and the
    memo arena. Created fresh for every call, never shared.
    """

    def __init__(self, deck: BuiltDeck, resolver: PotEffectResolver):
        self.kinds: Tuple[str, ...] = deck.kinds
        self.deck: CounterType[str] = deck.composition
        self.resolver = resolver
        self.memo = MemoCache()
        self.hand: CounterType[str] = Counter()
        self._stack: List[Tuple[str, int]] = []

    def run(self, hand_size: int) -> Tally:
        return self._recurse(0, hand_size)

    def _recurse(self, index: int, slots: int) -> Tally:
        if index == len(self.kinds) or slots == 0:
            if slots == 0:
                return self._leaf()
            # Ran out of kinds before filling the hand
            return Tally()

        key = MemoCache.key(index, slots, self.hand)
        cached = self.memo.get(key)
        if cached is not None:
            return cached

        result = Tally()
        kind = self.kinds[index]
        available = self.deck[kind] - self.hand[kind]

        for draw in range(min(slots, available) + 1):
            weight = binomial(available, draw)
            if weight <= 0:
                continue
            self._draw(kind, draw)
            sub = self._recurse(index + 1, slots - draw)
            self._undo()
            if sub.total > 0:
                result.add_weighted(sub, weight)

        self.memo.put(key, result)
        return result

    def _leaf(self) -> Tally:
        hand = +self.hand  # drops zero counts
        remaining = remaining_after(self.deck, hand)
        check = self.resolver.resolve_exact(hand, remaining)
        return Tally(
            total=1,
            overall=1 if check.is_success else 0,
            patterns={uid: 1 for uid in check.pattern_uids},
            labels={uid: 1 for uid in check.label_uids},
        )

    def _draw(self, kind: str, n: int) -> None:
        self._stack.append((kind, n))
        self.hand[kind] += n

    def _undo(self) -> None:
        kind, n = self._stack.pop()
        self.hand[kind] -= n


class ExactCombinatoricsEngine:
    """
    Exact hand-probability engine.

    Enumerates every reachable hand composition kind by kind, weights each by
    the product of per-kind binomials, and sums success counts with exact
    integers. Rates are count * 10000 // C(deck, hand), read as hundredths of
    a percent.
    """

    def __init__(
        self,
        pot: PotConfig | None = None,
        patterns: Sequence[Pattern] = (),
        matcher: PatternMatcher | None = None,
    ):
        self.pot = pot or PotConfig()
        self.matcher = matcher or PatternMatcher()
        self.active_patterns = sort_by_priority(list(patterns))
        self.resolver = PotEffectResolver(self.pot, self.matcher, self.active_patterns)

    # ------------ Public API ------------

    def evaluate(self, deck: BuiltDeck) -> CalculationResult:
        denominator = binomial(deck.deck_size, deck.hand_size)
        if denominator <= 0:
            logger.warning(
                "Total combinations C(%d, %d) is zero; reporting zero probability",
                deck.deck_size,
                deck.hand_size,
            )
            return CalculationResult(mode=CalculationMode.EXACT)

        if not self.active_patterns and self.pot.total_count == 0:
            return CalculationResult(mode=CalculationMode.EXACT)

        tally = self.count_successes(deck)
        if tally.total != denominator:
            logger.warning(
                "Enumerated combinations (%d) differ from C(n,k) (%d); using C(n,k)",
                tally.total,
                denominator,
            )

        return CalculationResult(
            overall_probability=exact_rate(tally.overall, denominator),
            pattern_success_rates=sort_descending(
                {uid: exact_rate(c, denominator) for uid, c in tally.patterns.items()}
            ),
            label_success_rates=sort_descending(
                {uid: exact_rate(c, denominator) for uid, c in tally.labels.items()}
            ),
            mode=CalculationMode.EXACT,
        )

    def count_successes(self, deck: BuiltDeck) -> Tally:
        """Weighted success counts over every hand of size deck.hand_size."""
        enumeration = _HandEnumeration(deck, self.resolver)
        tally = enumeration.run(deck.hand_size)
        logger.debug(
            "Enumerated %d kinds, hand %d: %d sub-states",
            len(enumeration.kinds),
            deck.hand_size,
            len(enumeration.memo),
        )
        return tally
