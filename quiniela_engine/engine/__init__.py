"""
Quiniela Portfolio Engine
Public Engine Interface

Stable, import-safe API surface exposed to the FastAPI layer.
Routers and services import from here, never from the stage modules.

Pipeline:
- Calibrator: context-adjusted probabilities
- Classifier: Anchor / Divisor / Draw-leaning / Neutral
- CoreGenerator: 4 base tickets
- SatelliteGenerator: anti-correlated pairs (+ singleton)
- TieAdjuster: draw count kept within [draw_min, draw_max]
- MonteCarloEstimator: Pr[>= 11 hits] per ticket
- PortfolioValidator: historical distribution, draws, concentration
"""

from typing import Any, Dict, List, Optional, Sequence

import numpy as np

from ..config import (
    DEFAULT_CONFIG,
    ENGINE_VERSION,
    METHODOLOGY,
    CORE_TICKET_COUNT,
    EngineConfig,
)
from .calibrator import calibrate, adjustment_factor
from .classifier import calibrate_and_classify, classify, classify_match
from .core_generator import CoreGenerator
from .models import (
    ClassifiedMatch,
    GenerationStatus,
    Match,
    MatchCategory,
    Outcome,
    PortfolioResult,
    Probabilities,
    SatelliteBatch,
    Ticket,
    TicketKind,
    ValidationReport,
)
from .monte_carlo import MonteCarloEstimator, portfolio_hit_probability
from .portfolio import PortfolioBuilder, build_portfolio
from .satellite_generator import SatelliteGenerator
from .tie_adjuster import add_shared_draws, adjust_draws
from .validator import PortfolioValidator, validate


# ---------------------------------------------------------------------
# Versioning
# ---------------------------------------------------------------------

__version__ = ENGINE_VERSION


# ---------------------------------------------------------------------
# Stage entrypoints
# ---------------------------------------------------------------------

def generate_core(
    classified: Sequence[ClassifiedMatch],
    config: Optional[EngineConfig] = None,
    rng: Optional[np.random.Generator] = None,
    estimator: Optional[MonteCarloEstimator] = None
) -> List[Ticket]:
    """Build the 4 core tickets for a classified card."""
    return CoreGenerator(config or DEFAULT_CONFIG, rng=rng, estimator=estimator).generate(classified)


def generate_satellites(
    classified: Sequence[ClassifiedMatch],
    core_tickets: Sequence[Ticket],
    count: int,
    config: Optional[EngineConfig] = None,
    rng: Optional[np.random.Generator] = None,
    estimator: Optional[MonteCarloEstimator] = None
) -> SatelliteBatch:
    """
    Build ``count`` satellite tickets.

    Raises:
        InvalidCountError: If count is negative
    """
    generator = SatelliteGenerator(config or DEFAULT_CONFIG, rng=rng, estimator=estimator)
    return generator.generate(classified, core_tickets, count)


# ---------------------------------------------------------------------
# Utility functions for engine status
# ---------------------------------------------------------------------

def get_engine_status() -> Dict[str, Any]:
    """
    Get current engine version, capabilities and default configuration.
    """
    return {
        "version": __version__,
        "engine_type": "Quiniela Portfolio Engine",
        "methodology": METHODOLOGY,
        "core_tickets": CORE_TICKET_COUNT,
        "categories": [c.value for c in MatchCategory],
        "outcomes": [o.value for o in Outcome],
        "features": [
            "Context Calibration (form, injuries, decider)",
            "Anchor / Divisor / Draw-leaning Classification",
            "Core + Satellite Portfolio Generation",
            "Anti-correlated Satellite Pairs",
            "Draw-count Rebalancing",
            "Vectorized Monte Carlo Hit Probability",
            "Historical Distribution Validation",
            "Deterministic Seeded Generation",
        ],
        "defaults": DEFAULT_CONFIG.to_dict(),
    }


__all__ = [
    "__version__",
    # Models
    "ClassifiedMatch",
    "GenerationStatus",
    "Match",
    "MatchCategory",
    "Outcome",
    "PortfolioResult",
    "Probabilities",
    "SatelliteBatch",
    "Ticket",
    "TicketKind",
    "ValidationReport",
    # Stages
    "adjustment_factor",
    "calibrate",
    "classify",
    "classify_match",
    "calibrate_and_classify",
    "CoreGenerator",
    "SatelliteGenerator",
    "add_shared_draws",
    "adjust_draws",
    "MonteCarloEstimator",
    "portfolio_hit_probability",
    "PortfolioValidator",
    "PortfolioBuilder",
    # Entrypoints
    "generate_core",
    "generate_satellites",
    "validate",
    "build_portfolio",
    "get_engine_status",
]
