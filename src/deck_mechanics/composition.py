"""
Deck composition building for hand-probability calculations.

Turns per-card counts, pot-card counts and a total deck size into a canonical
kind -> count composition. Kind order is deterministic: prosperity, desires,
explicit cards in input order, then the synthetic unknown kind.
"""

from collections import Counter
from dataclasses import dataclass
from enum import Enum
from typing import Counter as CounterType, Iterable, Mapping, Tuple, Union

from .rules import PROSPERITY_KIND, DESIRES_KIND, UNKNOWN_KIND, PotConfig


class CompositionError(Enum):
    COUNT_EXCEEDS_DECK_SIZE = "CountExceedsDeckSize"
    COMPOSITION_CHECKSUM_MISMATCH = "CompositionChecksumMismatch"
    INVALID_HAND_SIZE = "InvalidHandSize"
    DENOMINATOR_ZERO = "DenominatorZero"


@dataclass(frozen=True)
class ValidationFailure:
    """Explicit "no result available" signal; callers must not read partial output."""

    error: CompositionError
    message: str

    def __str__(self) -> str:
        return f"{self.error.value}: {self.message}"


@dataclass(frozen=True)
class BuiltDeck:
    composition: CounterType[str]
    deck_size: int
    hand_size: int

    @property
    def kinds(self) -> Tuple[str, ...]:
        return tuple(self.composition.keys())


class DeckCompositionBuilder:
    """Builds and validates deck compositions."""

    def __init__(self, pot: PotConfig = None):
        self.pot = pot or PotConfig()

    def build(
        self,
        deck_size: int,
        hand_size: int,
        card_counts: Iterable[Tuple[str, int]],
    ) -> Union[BuiltDeck, ValidationFailure]:
        """
        Build the validated composition.

        Returns a BuiltDeck, or a ValidationFailure with no partial result when
        explicit counts exceed the deck, the checksum disagrees or the hand
        size is outside [0, deck_size].
        """
        composition = self._explicit_composition(card_counts)
        explicit_total = sum(composition.values())

        unknown = deck_size - explicit_total
        if unknown < 0:
            return ValidationFailure(
                CompositionError.COUNT_EXCEEDS_DECK_SIZE,
                f"explicit and pot cards ({explicit_total}) exceed deck size ({deck_size})",
            )
        if unknown > 0:
            composition[UNKNOWN_KIND] = unknown

        checksum = sum(composition.values())
        if checksum != deck_size:
            return ValidationFailure(
                CompositionError.COMPOSITION_CHECKSUM_MISMATCH,
                f"composition sums to {checksum}, expected {deck_size}",
            )

        if hand_size > deck_size or hand_size < 0:
            return ValidationFailure(
                CompositionError.INVALID_HAND_SIZE,
                f"hand size {hand_size} is outside [0, {deck_size}]",
            )

        return BuiltDeck(composition=composition, deck_size=deck_size, hand_size=hand_size)

    def build_unchecked(
        self, deck_size: int, card_counts: Iterable[Tuple[str, int]]
    ) -> CounterType[str]:
        """Same composition without validation; unknown cards only fill a positive gap."""
        composition = self._explicit_composition(card_counts)
        unknown = deck_size - sum(composition.values())
        if unknown > 0:
            composition[UNKNOWN_KIND] = unknown
        return composition

    def _explicit_composition(
        self, card_counts: Iterable[Tuple[str, int]]
    ) -> CounterType[str]:
        composition: CounterType[str] = Counter()

        if self.pot.prosperity.count > 0:
            composition[PROSPERITY_KIND] = self.pot.prosperity.count
        if self.pot.desires_or_extravagance.count > 0:
            composition[DESIRES_KIND] = self.pot.desires_or_extravagance.count

        # Duplicate uids merge into one kind
        for uid, count in card_counts:
            if count > 0:
                composition[uid] += count

        return composition


def remaining_after(
    deck: Mapping[str, int], hand: Mapping[str, int]
) -> CounterType[str]:
    """Deck minus hand, keeping only kinds with cards left."""
    remaining: CounterType[str] = Counter()
    for kind, count in deck.items():
        left = count - hand.get(kind, 0)
        if left > 0:
            remaining[kind] = left
    return remaining
