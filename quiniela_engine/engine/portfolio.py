# quiniela_engine/engine/portfolio.py
"""
Full Core + Satellite pipeline for one configuration and one seed.

calibrate/classify -> 4 core tickets -> satellites -> trim to num_tickets
-> joint Monte Carlo pass -> validation.
"""

import logging
from typing import List, Optional, Sequence

import numpy as np

from .classifier import calibrate_and_classify
from .core_generator import CoreGenerator
from .models import GenerationStatus, Match, PortfolioResult, Ticket
from .monte_carlo import MonteCarloEstimator
from .satellite_generator import SatelliteGenerator
from .validator import PortfolioValidator
from ..config import EngineConfig, DEFAULT_CONFIG, CORE_TICKET_COUNT

logger = logging.getLogger(__name__)


class PortfolioBuilder:
    """
    Runs every stage with streams spawned from a single seed, so the same
    seed and configuration always rebuild the same portfolio.
    """

    def __init__(self, config: EngineConfig = DEFAULT_CONFIG):
        self.config = config.validate()

    def _resolve_seed(self, seed: Optional[int]) -> np.random.SeedSequence:
        if seed is None:
            seed = self.config.seed
        return np.random.SeedSequence(seed)

    def build(self, raw_matches: Sequence[Match], seed: Optional[int] = None) -> PortfolioResult:
        config = self.config
        seed_seq = self._resolve_seed(seed)
        core_seq, satellite_seq, estimator_seq = seed_seq.spawn(3)

        logger.info("=" * 80)
        logger.info(
            f"[PORTFOLIO] Starting generation | matches={len(raw_matches)} "
            f"tickets={config.num_tickets} trials={config.monte_carlo_trials} "
            f"seed={seed_seq.entropy}"
        )

        classified = calibrate_and_classify(raw_matches, config)

        estimator = MonteCarloEstimator(config, seed=estimator_seq)
        core_tickets = CoreGenerator(
            config, rng=np.random.default_rng(core_seq), estimator=estimator
        ).generate(classified)

        satellite_count = max(config.num_tickets - CORE_TICKET_COUNT, 0)
        batch = SatelliteGenerator(
            config, rng=np.random.default_rng(satellite_seq), estimator=estimator
        ).generate(classified, core_tickets, satellite_count)

        tickets: List[Ticket] = (core_tickets + batch.tickets)[:config.num_tickets]

        generation_warnings: List[str] = []
        if batch.status is GenerationStatus.DEGRADED_FALLBACK:
            generation_warnings.append(
                "No Divisor matches available; satellite pairs pivot on match 1"
            )

        joint = estimator.joint_hit_probability(tickets, classified)
        report = PortfolioValidator(config).validate(tickets)

        logger.info(
            f"[PORTFOLIO] Generated {len(tickets)} tickets "
            f"({len(core_tickets)} core, {len(batch.tickets)} satellites) | "
            f"valid={report.is_valid} | status={batch.status.value} | "
            f"independent Pr={report.metrics.get('portfolio_hit_probability', 0.0):.4f} "
            f"joint Pr={joint:.4f}"
        )
        logger.info("=" * 80)

        return PortfolioResult(
            classified_matches=classified,
            core_tickets=core_tickets,
            satellite_tickets=batch.tickets,
            tickets=tickets,
            report=report,
            status=batch.status,
            generation_warnings=generation_warnings,
            seed=seed_seq.entropy,
            joint_hit_probability=joint,
        )


def build_portfolio(
    raw_matches: Sequence[Match],
    config: Optional[EngineConfig] = None,
    seed: Optional[int] = None
) -> PortfolioResult:
    return PortfolioBuilder(config or DEFAULT_CONFIG).build(raw_matches, seed=seed)
