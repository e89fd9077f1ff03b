from typing import Tuple, Optional, Dict, Any
from dataclasses import dataclass
from enum import Enum


# Synthetic card kinds. Pot cards enter the deck under these ids and the
# "unknown" kind absorbs the gap between explicit card counts and deck size.
PROSPERITY_KIND = "prosperity_card"
DESIRES_KIND = "desires_card"
UNKNOWN_KIND = "unknown_card"
SYNTHETIC_KINDS: Tuple[str, ...] = (PROSPERITY_KIND, DESIRES_KIND, UNKNOWN_KIND)

PROSPERITY_COSTS: Tuple[int, ...] = (3, 6)
DESIRES_EXTRA_DRAWS = 2

DEFAULT_DECK_SIZE = 40
DEFAULT_HAND_SIZE = 5
DEFAULT_SIMULATION_TRIALS = 10000


class CalculationMode(Enum):
    EXACT = "exact"
    SIMULATION = "simulation"


@dataclass(frozen=True)
class ProsperityPot:
    """Cost-based bonus draw: banish `cost` cards, reveal that many, add one."""

    count: int = 0
    cost: int = 6
    priority: int = 1

    def __post_init__(self):
        if self.count < 0:
            raise ValueError(f"Prosperity count must be non-negative, got {self.count}")
        if self.cost not in PROSPERITY_COSTS:
            raise ValueError(
                f"Invalid prosperity cost: {self.cost}. Valid: {list(PROSPERITY_COSTS)}"
            )


@dataclass(frozen=True)
class DesiresPot:
    """Count-based bonus draw: draw two more cards."""

    count: int = 0
    priority: int = 2

    def __post_init__(self):
        if self.count < 0:
            raise ValueError(f"Desires count must be non-negative, got {self.count}")


@dataclass(frozen=True)
class PotConfig:
    # Deck-inclusion counts for the two bonus-draw kinds
    prosperity: ProsperityPot = ProsperityPot()
    desires_or_extravagance: DesiresPot = DesiresPot()

    @property
    def total_count(self) -> int:
        return self.prosperity.count + self.desires_or_extravagance.count

    @property
    def requires_simulation(self) -> bool:
        """The exact engine only approximates prosperity, so any copy forces simulation."""
        return self.prosperity.count > 0

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "PotConfig":
        """Create from a PotState record ({prosperity, desiresOrExtravagance})."""
        if not data:
            return cls()
        prosperity = data.get("prosperity") or {}
        desires = data.get("desiresOrExtravagance") or {}
        return cls(
            prosperity=ProsperityPot(
                count=int(prosperity.get("count", 0)),
                cost=int(prosperity.get("cost", 6)),
                priority=int(prosperity.get("priority", 1)),
            ),
            desires_or_extravagance=DesiresPot(
                count=int(desires.get("count", 0)),
                priority=int(desires.get("priority", 2)),
            ),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "prosperity": {
                "count": self.prosperity.count,
                "cost": self.prosperity.cost,
                "priority": self.prosperity.priority,
            },
            "desiresOrExtravagance": {
                "count": self.desires_or_extravagance.count,
                "priority": self.desires_or_extravagance.priority,
            },
        }


@dataclass(frozen=True)
class CalculationSettings:
    mode: CalculationMode = CalculationMode.EXACT
    simulation_trials: int = DEFAULT_SIMULATION_TRIALS
    seed: Optional[int] = None  # None => unseeded generator, results vary run to run

    # The simulation path historically never matched required_distinct
    # conditions. Kept off until that is confirmed to be a missing feature.
    simulate_required_distinct: bool = False

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "CalculationSettings":
        if not data:
            return cls()
        try:
            mode = CalculationMode(data.get("mode", CalculationMode.EXACT.value))
        except ValueError:
            raise ValueError(
                f"Invalid calculation mode: {data.get('mode')}. "
                f"Valid: {[m.value for m in CalculationMode]}"
            )
        seed = data.get("seed")
        return cls(
            mode=mode,
            simulation_trials=int(
                data.get("simulationTrials", DEFAULT_SIMULATION_TRIALS)
            ),
            seed=None if seed is None else int(seed),
            simulate_required_distinct=bool(
                data.get("simulateRequiredDistinct", False)
            ),
        )


DEFAULT_POT = PotConfig()
DEFAULT_SETTINGS = CalculationSettings()
