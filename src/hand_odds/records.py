"""
Input records for a calculation call.

These are the five records produced by the deck editor (or the chat
assistant): deck, cards, pattern, pot and label. A Scenario bundles them,
plus optional calculation settings, and can be loaded from JSON.
"""

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from deck_mechanics.patterns import Label, Pattern
from deck_mechanics.rules import (
    DEFAULT_DECK_SIZE,
    DEFAULT_HAND_SIZE,
    CalculationSettings,
    PotConfig,
)

# The pot record maps directly onto the pot configuration
PotState = PotConfig


@dataclass(frozen=True)
class DeckState:
    card_count: int = DEFAULT_DECK_SIZE
    first_hand: int = DEFAULT_HAND_SIZE

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "DeckState":
        if not data:
            return cls()
        return cls(
            card_count=int(data.get("cardCount", DEFAULT_DECK_SIZE)),
            first_hand=int(data.get("firstHand", DEFAULT_HAND_SIZE)),
        )

    def to_dict(self) -> Dict[str, int]:
        return {"cardCount": self.card_count, "firstHand": self.first_hand}


@dataclass(frozen=True)
class CardData:
    uid: str
    name: str
    count: int
    memo: str = ""

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CardData":
        if "uid" not in data:
            raise ValueError(f"Card record is missing 'uid': {data}")
        count = int(data.get("count", 0))
        if count < 0:
            raise ValueError(f"Card count must be non-negative, got {count} for {data['uid']}")
        return cls(
            uid=str(data["uid"]),
            name=str(data.get("name", "")),
            count=count,
            memo=str(data.get("memo", "")),
        )


@dataclass(frozen=True)
class CardsState:
    cards: Tuple[CardData, ...] = ()

    @property
    def counts(self) -> List[Tuple[str, int]]:
        return [(c.uid, c.count) for c in self.cards]

    @property
    def total_count(self) -> int:
        return sum(c.count for c in self.cards)

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "CardsState":
        if not data:
            return cls()
        return cls(cards=tuple(CardData.from_dict(c) for c in data.get("cards", [])))


@dataclass(frozen=True)
class PatternState:
    patterns: Tuple[Pattern, ...] = ()

    @property
    def active_patterns(self) -> List[Pattern]:
        return [p for p in self.patterns if p.active]

    def find(self, uid: str) -> Optional[Pattern]:
        for p in self.patterns:
            if p.uid == uid:
                return p
        return None

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "PatternState":
        if not data:
            return cls()
        return cls(
            patterns=tuple(Pattern.from_record(p) for p in data.get("patterns", []))
        )


@dataclass(frozen=True)
class LabelState:
    labels: Tuple[Label, ...] = ()

    def find(self, uid: str) -> Optional[Label]:
        for label in self.labels:
            if label.uid == uid:
                return label
        return None

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "LabelState":
        if not data:
            return cls()
        return cls(labels=tuple(Label.from_record(label) for label in data.get("labels", [])))


@dataclass(frozen=True)
class Scenario:
    deck: DeckState = field(default_factory=DeckState)
    cards: CardsState = field(default_factory=CardsState)
    pattern: PatternState = field(default_factory=PatternState)
    pot: PotState = field(default_factory=PotState)
    label: LabelState = field(default_factory=LabelState)
    settings: CalculationSettings = field(default_factory=CalculationSettings)

    def has_invalid_conditions(self) -> bool:
        return any(not p.is_valid for p in self.pattern.patterns)

    def card_count_exceeds_deck(self) -> bool:
        return self.cards.total_count + self.pot.total_count > self.deck.card_count

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Scenario":
        """Create from {deck, cards, pattern, pot, label, settings?}."""
        if not isinstance(data, dict):
            raise ValueError(f"Scenario must be a JSON object, got {type(data).__name__}")
        return cls(
            deck=DeckState.from_dict(data.get("deck")),
            cards=CardsState.from_dict(data.get("cards")),
            pattern=PatternState.from_dict(data.get("pattern")),
            pot=PotConfig.from_dict(data.get("pot")),
            label=LabelState.from_dict(data.get("label")),
            settings=CalculationSettings.from_dict(data.get("settings")),
        )


def load_scenario(path: Path) -> Scenario:
    """Read a scenario JSON file."""
    with open(path, "r", encoding="utf-8") as f:
        try:
            data = json.load(f)
        except json.JSONDecodeError as e:
            raise ValueError(f"Invalid scenario JSON in {path}: {e}")
    return Scenario.from_dict(data)
