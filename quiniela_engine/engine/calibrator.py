# quiniela_engine/engine/calibrator.py
"""
Bayesian-style calibration of raw match probabilities.

Contextual signals (form, injuries, decider) scale the home side up and the
visitor side down; the draw-propensity rule then lifts the draw on near-even
matches where it already leads. The triple is renormalized at the end.
"""

import logging
import math
from typing import Optional

from .models import Match, Probabilities
from ..config import EngineConfig, DEFAULT_CONFIG
from ..exceptions import InvalidProbabilitiesError

logger = logging.getLogger(__name__)


def adjustment_factor(match: Match, config: EngineConfig = DEFAULT_CONFIG) -> float:
    """f = 1 + k1*form + k2*injuries + k3*decider"""
    return (
        1.0
        + config.k_form * match.form_diff
        + config.k_injuries * match.injury_impact
        + config.k_decider * (1.0 if match.is_decider else 0.0)
    )


def _check_raw(match: Match, match_index: Optional[int]) -> None:
    raw = (match.p_local, match.p_draw, match.p_visitor)
    for value in raw:
        if value is None or not math.isfinite(value):
            raise InvalidProbabilitiesError(
                f"Match {match.local} vs {match.visitor}: non-numeric probability {value!r}",
                match_index=match_index
            )
        if value < 0:
            raise InvalidProbabilitiesError(
                f"Match {match.local} vs {match.visitor}: negative probability {value}",
                match_index=match_index
            )
    if sum(raw) <= 0:
        raise InvalidProbabilitiesError(
            f"Match {match.local} vs {match.visitor}: probabilities sum to {sum(raw)}",
            match_index=match_index
        )


def calibrate(
    match: Match,
    config: EngineConfig = DEFAULT_CONFIG,
    match_index: Optional[int] = None
) -> Probabilities:
    """
    Calibrate one match.

    Args:
        match: Raw match
        config: Engine configuration (weights and draw-propensity constants)
        match_index: Slot position, only used to enrich error details

    Returns:
        Calibrated probabilities summing to 1

    Raises:
        InvalidProbabilitiesError: If the raw probabilities are unusable
    """
    _check_raw(match, match_index)

    factor = adjustment_factor(match, config)

    p_local = match.p_local * max(factor, 0.0)
    p_draw = match.p_draw
    p_visitor = match.p_visitor / max(factor, config.visitor_factor_floor)

    # Draw-propensity rule
    if (abs(p_local - p_visitor) < config.draw_propensity_gap
            and p_draw > max(p_local, p_visitor)):
        p_draw = min(p_draw + config.draw_propensity_boost, config.draw_propensity_cap)
        logger.debug(
            f"[CALIBRATOR] Draw propensity applied to {match.local} vs {match.visitor} "
            f"(p_draw -> {p_draw:.3f})"
        )

    total = p_local + p_draw + p_visitor
    if total <= 0:
        # Only the home side had mass and the factor zeroed it; keep the raw triple
        logger.warning(
            f"[CALIBRATOR] Calibration of {match.local} vs {match.visitor} left no "
            f"probability mass (factor {factor:.2f}); using raw probabilities"
        )
        p_local, p_draw, p_visitor = match.p_local, match.p_draw, match.p_visitor
        total = p_local + p_draw + p_visitor

    return Probabilities(
        p_local=p_local / total,
        p_draw=p_draw / total,
        p_visitor=p_visitor / total,
    )
