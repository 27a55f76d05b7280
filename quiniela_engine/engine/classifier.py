# quiniela_engine/engine/classifier.py
"""
Match classification.

Rules are evaluated in a fixed order and the first one that matches wins:
Anchor, DrawLeaning, Divisor, Neutral.
"""

import logging
from typing import List, Optional, Sequence

from .calibrator import calibrate
from .models import (
    Match,
    ClassifiedMatch,
    MatchCategory,
    Outcome,
    Probabilities,
)
from ..config import EngineConfig, DEFAULT_CONFIG
from ..exceptions import InsufficientMatchesError

logger = logging.getLogger(__name__)


def classify(probs: Probabilities, config: EngineConfig = DEFAULT_CONFIG) -> MatchCategory:
    max_prob = max(probs.as_tuple())

    if max_prob > config.anchor_threshold:
        return MatchCategory.ANCHOR
    if (probs.p_draw > config.draw_threshold
            and probs.p_draw >= max(probs.p_local, probs.p_visitor)):
        return MatchCategory.DRAW_LEANING
    if config.divisor_min <= max_prob < config.divisor_max:
        return MatchCategory.DIVISOR
    return MatchCategory.NEUTRAL


def suggested_outcome(probs: Probabilities) -> Outcome:
    return probs.ranked()[0][0]


def alternative_outcome(probs: Probabilities) -> Outcome:
    """Second most probable outcome."""
    return probs.ranked()[1][0]


def confidence(probs: Probabilities) -> float:
    ranked = sorted(probs.as_tuple(), reverse=True)
    return ranked[0] - ranked[1]


def classify_match(
    match: Match,
    index: int,
    config: EngineConfig = DEFAULT_CONFIG
) -> ClassifiedMatch:
    calibrated = calibrate(match, config, match_index=index)
    return _build(match, index, calibrated, config)


def _build(match: Match, index: int, calibrated: Probabilities, config: EngineConfig) -> ClassifiedMatch:
    return ClassifiedMatch(
        index=index,
        match=match,
        calibrated=calibrated,
        category=classify(calibrated, config),
        suggested_outcome=suggested_outcome(calibrated),
        alternative_outcome=alternative_outcome(calibrated),
        confidence=confidence(calibrated),
    )


def calibrate_and_classify(
    raw_matches: Sequence[Match],
    config: Optional[EngineConfig] = None
) -> List[ClassifiedMatch]:
    """
    Calibrate and classify a full card.

    Every match is calibrated before any is classified, so a malformed match
    aborts the call without partial results.

    Raises:
        InsufficientMatchesError: If fewer than config.num_matches are given
        InvalidProbabilitiesError: If any match has unusable probabilities
    """
    config = config or DEFAULT_CONFIG
    required = config.num_matches
    if len(raw_matches) < required:
        raise InsufficientMatchesError(required=required, actual=len(raw_matches))

    if len(raw_matches) > required:
        logger.warning(
            f"[CLASSIFIER] Received {len(raw_matches)} matches, using the first {required}"
        )
    matches = list(raw_matches[:required])

    calibrated = [calibrate(match, config, match_index=i) for i, match in enumerate(matches)]
    classified = [_build(match, i, probs, config) for i, (match, probs) in enumerate(zip(matches, calibrated))]

    counts = {category: 0 for category in MatchCategory}
    for cm in classified:
        counts[cm.category] += 1
    logger.info(
        "[CLASSIFIER] Classified %d matches | %s",
        len(classified),
        ", ".join(f"{category.value}={count}" for category, count in counts.items())
    )

    return classified
