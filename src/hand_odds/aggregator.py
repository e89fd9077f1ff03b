from dataclasses import dataclass, field
from typing import Dict, Mapping, Sequence

from deck_mechanics.pattern_matcher import PatternMatcher
from deck_mechanics.patterns import Pattern


@dataclass
class CheckResult:
    """Patterns and labels satisfied by one final hand (or a union of candidate hands).

    Ids are kept in first-seen order; dict keys double as an ordered set.
    `matched` is set by any matching pattern, including one with an empty uid.
    """

    pattern_uids: Dict[str, None] = field(default_factory=dict)
    label_uids: Dict[str, None] = field(default_factory=dict)
    matched: bool = False

    @property
    def is_success(self) -> bool:
        return self.matched

    def merge(self, other: "CheckResult") -> None:
        self.matched = self.matched or other.matched
        self.pattern_uids.update(other.pattern_uids)
        self.label_uids.update(other.label_uids)


def find_satisfied(
    matcher: PatternMatcher,
    hand: Mapping[str, int],
    remaining_deck: Mapping[str, int],
    patterns: Sequence[Pattern],
) -> CheckResult:
    """Evaluate every pattern and collect satisfied pattern ids plus their labels."""
    result = CheckResult()
    for pattern in patterns:
        if not matcher.matches(pattern, hand, remaining_deck):
            continue
        result.matched = True
        if pattern.uid:
            result.pattern_uids[pattern.uid] = None
        for label_uid in pattern.label_uids:
            if label_uid:
                result.label_uids[label_uid] = None
    return result
