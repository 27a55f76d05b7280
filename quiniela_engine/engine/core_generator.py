# quiniela_engine/engine/core_generator.py
"""
Core tickets: one deterministic base ticket plus controlled variants.
"""

import logging
from typing import List, Optional, Sequence

import numpy as np

from .models import ClassifiedMatch, MatchCategory, Outcome, Ticket, TicketKind
from .monte_carlo import CORE_STREAM, MonteCarloEstimator, stage_seed
from .tie_adjuster import adjust_draws
from ..config import EngineConfig, DEFAULT_CONFIG, CORE_TICKET_COUNT

logger = logging.getLogger(__name__)


def build_base_outcomes(
    matches: Sequence[ClassifiedMatch],
    config: EngineConfig = DEFAULT_CONFIG
) -> List[Outcome]:
    """
    Anchors keep their suggested outcome; draw-leaning matches are forced to
    a draw while the running draw count is below draw_max; everything else
    takes the suggested outcome.
    """
    outcomes: List[Outcome] = []
    draws = 0

    for match in matches:
        if match.category is MatchCategory.ANCHOR:
            outcome = match.suggested_outcome
        elif match.category is MatchCategory.DRAW_LEANING and draws < config.draw_max:
            outcome = Outcome.DRAW
        else:
            outcome = match.suggested_outcome

        if outcome is Outcome.DRAW:
            draws += 1
        outcomes.append(outcome)

    return outcomes


def apply_variation(
    outcomes: Sequence[Outcome],
    matches: Sequence[ClassifiedMatch],
    variant_index: int,
    rng: np.random.Generator
) -> List[Outcome]:
    """Flip ``2 + variant_index`` random non-anchor slots to their alternative outcome."""
    varied = list(outcomes)
    candidates = [pos for pos, m in enumerate(matches) if not m.is_anchor]
    num_changes = min(2 + variant_index, len(candidates))
    if num_changes == 0:
        return varied

    chosen = rng.choice(candidates, size=num_changes, replace=False)
    for idx in chosen:
        varied[int(idx)] = matches[int(idx)].alternative_outcome
    return varied


class CoreGenerator:
    """Produces the four Core tickets."""

    def __init__(
        self,
        config: EngineConfig = DEFAULT_CONFIG,
        rng: Optional[np.random.Generator] = None,
        estimator: Optional[MonteCarloEstimator] = None
    ):
        self.config = config
        # Own streams when called standalone, so core and satellite estimates
        # never replay each other's samples
        rng_seq, estimator_seq = stage_seed(config.seed, CORE_STREAM).spawn(2)
        self.rng = rng if rng is not None else np.random.default_rng(rng_seq)
        self.estimator = (
            estimator if estimator is not None
            else MonteCarloEstimator(config, seed=estimator_seq)
        )

    def generate(self, matches: Sequence[ClassifiedMatch]) -> List[Ticket]:
        tickets: List[Ticket] = []

        for i in range(CORE_TICKET_COUNT):
            outcomes = build_base_outcomes(matches, self.config)
            if i > 0:
                outcomes = apply_variation(outcomes, matches, i, self.rng)
            outcomes = adjust_draws(outcomes, matches, self.config)

            ticket = Ticket(
                ticket_id=f"Core-{i + 1}",
                kind=TicketKind.CORE,
                outcomes=tuple(outcomes),
            )
            tickets.append(ticket.with_hit_probability(self.estimator.estimate(ticket, matches)))

        logger.info(
            "[CORE] Generated %d core tickets | draws=%s",
            len(tickets),
            [t.draw_count for t in tickets]
        )
        return tickets
