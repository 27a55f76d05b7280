# quiniela_engine/engine/satellite_generator.py
"""
Satellite tickets built in anti-correlated pairs.

Each pair pivots on a Divisor match, where ticket A keeps the suggested
outcome and ticket B takes the alternative. Anchors never diverge; other
matches diverge at random. An odd request adds one singleton built by random
flips from the base ticket.
"""

import logging
from typing import List, Optional, Sequence, Tuple

import numpy as np

from .core_generator import build_base_outcomes
from .models import (
    ClassifiedMatch,
    GenerationStatus,
    MatchCategory,
    Outcome,
    SatelliteBatch,
    Ticket,
    TicketKind,
)
from .monte_carlo import SATELLITE_STREAM, MonteCarloEstimator, stage_seed
from .tie_adjuster import add_shared_draws, adjust_draws
from ..config import EngineConfig, DEFAULT_CONFIG
from ..exceptions import InvalidCountError, InputError

logger = logging.getLogger(__name__)


class SatelliteGenerator:
    """Produces satellite tickets around the Divisor matches."""

    def __init__(
        self,
        config: EngineConfig = DEFAULT_CONFIG,
        rng: Optional[np.random.Generator] = None,
        estimator: Optional[MonteCarloEstimator] = None
    ):
        self.config = config
        # Own streams when called standalone, so core and satellite estimates
        # never replay each other's samples
        rng_seq, estimator_seq = stage_seed(config.seed, SATELLITE_STREAM).spawn(2)
        self.rng = rng if rng is not None else np.random.default_rng(rng_seq)
        self.estimator = (
            estimator if estimator is not None
            else MonteCarloEstimator(config, seed=estimator_seq)
        )

    @staticmethod
    def divisor_indices(matches: Sequence[ClassifiedMatch]) -> List[int]:
        return [pos for pos, m in enumerate(matches) if m.category is MatchCategory.DIVISOR]

    def select_pivot(self, divisors: Sequence[int], pair_index: int) -> int:
        """Cycle through the Divisor matches; fall back to slot 0 without any."""
        if not divisors:
            return 0
        return divisors[pair_index % len(divisors)]

    def build_pair(
        self,
        matches: Sequence[ClassifiedMatch],
        pivot: int
    ) -> Tuple[List[Outcome], List[Outcome]]:
        ticket_a: List[Outcome] = []
        ticket_b: List[Outcome] = []

        for pos, match in enumerate(matches):
            if pos == pivot:
                ticket_a.append(match.suggested_outcome)
                ticket_b.append(match.alternative_outcome)
            elif match.is_anchor:
                ticket_a.append(match.suggested_outcome)
                ticket_b.append(match.suggested_outcome)
            elif self.rng.random() < self.config.pair_divergence:
                ticket_a.append(match.suggested_outcome)
                ticket_b.append(match.alternative_outcome)
            else:
                ticket_a.append(match.suggested_outcome)
                ticket_b.append(match.suggested_outcome)

        # Each ticket rebalances on its own free slots; anchors only change
        # together so the pair keeps identical anchors
        anchors = frozenset(pos for pos, m in enumerate(matches) if m.is_anchor and pos != pivot)
        locked = anchors | {pivot}
        ticket_a = adjust_draws(ticket_a, matches, self.config, locked=locked)
        ticket_b = adjust_draws(ticket_b, matches, self.config, locked=locked)

        ticket_a, ticket_b = add_shared_draws([ticket_a, ticket_b], matches, self.config, slots=anchors)
        return (
            adjust_draws(ticket_a, matches, self.config, locked=locked),
            adjust_draws(ticket_b, matches, self.config, locked=locked),
        )

    def build_singleton(self, matches: Sequence[ClassifiedMatch]) -> List[Outcome]:
        outcomes = build_base_outcomes(matches, self.config)
        for pos, match in enumerate(matches):
            if not match.is_anchor and self.rng.random() < self.config.singleton_flip:
                outcomes[pos] = match.alternative_outcome
        return adjust_draws(outcomes, matches, self.config)

    def _finish(self, ticket: Ticket, matches: Sequence[ClassifiedMatch]) -> Ticket:
        return ticket.with_hit_probability(self.estimator.estimate(ticket, matches))

    def generate(
        self,
        matches: Sequence[ClassifiedMatch],
        core_tickets: Sequence[Ticket],
        count: int
    ) -> SatelliteBatch:
        """
        Generate ``count`` satellites.

        Raises:
            InvalidCountError: If count is negative
            InputError: If the core tickets do not fit the card
        """
        if count < 0:
            raise InvalidCountError(count)
        for core in core_tickets:
            if len(core) != len(matches):
                raise InputError(
                    f"Core ticket {core.ticket_id} has {len(core)} outcomes for {len(matches)} matches",
                    field="core_tickets"
                )

        divisors = self.divisor_indices(matches)
        status = GenerationStatus.OK
        num_pairs = count // 2
        if num_pairs and not divisors:
            status = GenerationStatus.DEGRADED_FALLBACK
            logger.warning(
                "[SATELLITE] No Divisor matches on the card; pivoting every pair on match 1"
            )

        satellites: List[Ticket] = []
        pivots: List[int] = []

        for pair in range(num_pairs):
            pivot = self.select_pivot(divisors, pair)
            pivots.append(pivot)
            outcomes_a, outcomes_b = self.build_pair(matches, pivot)
            label = f"Sat-{pair * 2 + 1}"
            satellites.append(self._finish(Ticket(
                ticket_id=f"{label}A", kind=TicketKind.SATELLITE,
                outcomes=tuple(outcomes_a), pair_id=pair,
            ), matches))
            satellites.append(self._finish(Ticket(
                ticket_id=f"{label}B", kind=TicketKind.SATELLITE,
                outcomes=tuple(outcomes_b), pair_id=pair,
            ), matches))

        if count % 2 == 1:
            satellites.append(self._finish(Ticket(
                ticket_id=f"Sat-{len(satellites) + 1}",
                kind=TicketKind.SATELLITE,
                outcomes=tuple(self.build_singleton(matches)),
            ), matches))

        logger.info(
            f"[SATELLITE] Generated {len(satellites)} satellites "
            f"({num_pairs} pairs{', 1 singleton' if count % 2 else ''}) | "
            f"core reference={len(core_tickets)} | status={status.value}"
        )
        return SatelliteBatch(tickets=satellites, status=status, pivot_indices=pivots)
