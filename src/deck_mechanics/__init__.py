from .condition_mode import ConditionMode
from .patterns import Condition, Label, Pattern, sort_by_priority
from .composition import (
    BuiltDeck,
    CompositionError,
    DeckCompositionBuilder,
    ValidationFailure,
    remaining_after,
)
from .pattern_matcher import PatternMatcher, SlotPacker

__all__ = [
    "BuiltDeck",
    "CompositionError",
    "Condition",
    "ConditionMode",
    "DeckCompositionBuilder",
    "Label",
    "Pattern",
    "PatternMatcher",
    "SlotPacker",
    "ValidationFailure",
    "remaining_after",
    "sort_by_priority",
]
