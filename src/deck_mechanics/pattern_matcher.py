from typing import Dict, FrozenSet, Iterable, List, Mapping, Sequence

from .condition_mode import ConditionMode
from .patterns import Condition, Pattern


ALL_MODES: FrozenSet[ConditionMode] = frozenset(ConditionMode)


class SlotPacker:
    """
    Assigns condition slots to distinct card units drawn from a pool.

    Each condition needs `count` slots, each filled by one unit of any of its
    candidate kinds; a unit fills at most one slot across all conditions.
    Solved depth-first over an owned copy of the pool with a take/undo stack.
    """

    def __init__(self, pool: Mapping[str, int]):
        self.available: Dict[str, int] = {k: v for k, v in pool.items() if v > 0}
        self._stack: List[str] = []

    def can_pack(self, conditions: Sequence[Condition]) -> bool:
        return self._fill(conditions, 0, 1)

    def _fill(self, conditions: Sequence[Condition], index: int, slot: int) -> bool:
        if index >= len(conditions):
            return True

        condition = conditions[index]
        if slot > condition.count:
            return self._fill(conditions, index + 1, 1)

        for kind in condition.candidate_kinds:
            if self.available.get(kind, 0) <= 0:
                continue
            self._take(kind)
            if self._fill(conditions, index, slot + 1):
                return True
            self._undo()

        return False

    def _take(self, kind: str) -> None:
        self.available[kind] -= 1
        self._stack.append(kind)

    def _undo(self) -> None:
        kind = self._stack.pop()
        self.available[kind] += 1


class PatternMatcher:
    """Decides whether a pattern holds for a (hand, remaining deck) snapshot.

    Both engines share this evaluator. `supported_modes` lets an engine treat
    a mode it does not model as never satisfied.
    """

    def __init__(self, supported_modes: Iterable[ConditionMode] = ALL_MODES):
        self.supported_modes = frozenset(supported_modes)

    def matches(
        self,
        pattern: Pattern,
        hand: Mapping[str, int],
        remaining_deck: Mapping[str, int],
    ) -> bool:
        if not pattern.active or not pattern.is_valid:
            return False

        if any(c.mode not in self.supported_modes for c in pattern.conditions):
            return False

        # not_drawn: every listed kind must be absent from the hand
        for condition in pattern.conditions_by_mode(ConditionMode.NOT_DRAWN):
            for kind in condition.candidate_kinds:
                if hand.get(kind, 0) > 0:
                    return False

        for condition in pattern.conditions_by_mode(ConditionMode.REQUIRED_DISTINCT):
            distinct = sum(
                1 for kind in set(condition.candidate_kinds) if hand.get(kind, 0) > 0
            )
            if distinct < condition.count:
                return False

        required = pattern.conditions_by_mode(ConditionMode.REQUIRED)
        if required and not SlotPacker(hand).can_pack(required):
            return False

        leave_deck = pattern.conditions_by_mode(ConditionMode.LEAVE_DECK)
        if leave_deck and not SlotPacker(remaining_deck).can_pack(leave_deck):
            return False

        return True
