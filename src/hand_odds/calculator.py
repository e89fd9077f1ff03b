"""
Calculation entry points.

compute_exact and compute_simulation take the five input records and return
a CalculationResult; calculate() applies the caller policy that picks one.
"""

from typing import Callable, Optional, Union

import numpy as np

from deck_mechanics.composition import DeckCompositionBuilder, ValidationFailure
from deck_mechanics.rules import CalculationMode, CalculationSettings, PotConfig
from hand_odds.exact_engine import ExactCombinatoricsEngine
from hand_odds.logging_config import get_logger
from hand_odds.rates import CalculationResult
from hand_odds.records import CardsState, DeckState, LabelState, PatternState, Scenario
from hand_odds.simulation_engine import SimulationEngine

logger = get_logger(__name__)


def compute_exact(
    deck: DeckState,
    cards: CardsState,
    patterns: PatternState,
    pot: PotConfig,
    labels: LabelState,
) -> Union[CalculationResult, ValidationFailure]:
    """
    Exact probabilities by full enumeration.

    Returns a ValidationFailure (never raises) when the deck does not add up.
    Prosperity is only approximated here; use simulation when it is in the deck.
    """
    builder = DeckCompositionBuilder(pot)
    built = builder.build(deck.card_count, deck.first_hand, cards.counts)
    if isinstance(built, ValidationFailure):
        logger.error("Exact calculation aborted: %s", built)
        return built

    engine = ExactCombinatoricsEngine(pot, patterns.patterns)
    return engine.evaluate(built)


def compute_simulation(
    deck: DeckState,
    cards: CardsState,
    patterns: PatternState,
    pot: PotConfig,
    labels: LabelState,
    trials: int,
    *,
    rng: Optional[np.random.Generator] = None,
    simulate_required_distinct: bool = False,
    progress_callback: Optional[Callable[[int, int], None]] = None,
) -> CalculationResult:
    """Estimated probabilities from `trials` random deals. No deck validation."""
    if trials <= 0:
        raise ValueError(f"trials must be positive, got {trials}")

    composition = DeckCompositionBuilder(pot).build_unchecked(
        deck.card_count, cards.counts
    )
    engine = SimulationEngine(
        pot,
        patterns.patterns,
        labels.labels,
        rng=rng,
        simulate_required_distinct=simulate_required_distinct,
    )
    return engine.evaluate(
        composition, deck.first_hand, trials, progress_callback=progress_callback
    )


def select_mode(pot: PotConfig, settings: CalculationSettings) -> CalculationMode:
    """Simulation whenever prosperity is in the deck or simulation was chosen."""
    if pot.requires_simulation or settings.mode == CalculationMode.SIMULATION:
        return CalculationMode.SIMULATION
    return CalculationMode.EXACT


def calculate(
    scenario: Scenario,
    *,
    rng: Optional[np.random.Generator] = None,
    progress_callback: Optional[Callable[[int, int], None]] = None,
) -> Union[CalculationResult, ValidationFailure]:
    """Run whichever engine the scenario's pot and settings call for."""
    settings = scenario.settings
    mode = select_mode(scenario.pot, settings)
    logger.debug("Selected %s mode", mode.value)

    if mode == CalculationMode.EXACT:
        return compute_exact(
            scenario.deck,
            scenario.cards,
            scenario.pattern,
            scenario.pot,
            scenario.label,
        )

    if rng is None:
        rng = np.random.default_rng(settings.seed)
    return compute_simulation(
        scenario.deck,
        scenario.cards,
        scenario.pattern,
        scenario.pot,
        scenario.label,
        settings.simulation_trials,
        rng=rng,
        simulate_required_distinct=settings.simulate_required_distinct,
        progress_callback=progress_callback,
    )
