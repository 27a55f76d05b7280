# quiniela_engine/engine/tie_adjuster.py
"""
Draw-count rebalancing shared by the core and satellite generators.
"""

import logging
from typing import List, Sequence, AbstractSet

from .models import ClassifiedMatch, Outcome, count_draws
from ..config import EngineConfig, DEFAULT_CONFIG

logger = logging.getLogger(__name__)


def adjust_draws(
    outcomes: Sequence[Outcome],
    matches: Sequence[ClassifiedMatch],
    config: EngineConfig = DEFAULT_CONFIG,
    locked: AbstractSet[int] = frozenset()
) -> List[Outcome]:
    """
    Pull a ticket's draw count into [draw_min, draw_max].

    Too few draws: the unlocked non-draw slots whose calibrated draw
    probability clears ``tie_candidate_min_draw`` become draws, likeliest
    draw first. Too many: the unlocked draws with the lowest draw probability
    revert to their match's suggested outcome.

    When there are not enough candidates the ticket is left outside the
    window; validation reports it.

    Args:
        outcomes: Ticket outcomes, one per slot
        matches: Classified matches aligned with ``outcomes``
        config: Engine configuration
        locked: Slot indices that must not change

    Returns:
        A new outcome list; the input is never mutated
    """
    adjusted = list(outcomes)
    draws = count_draws(adjusted)

    if draws < config.draw_min:
        needed = config.draw_min - draws
        candidates = [
            i for i, outcome in enumerate(adjusted)
            if outcome is not Outcome.DRAW
            and i not in locked
            and matches[i].p_draw > config.tie_candidate_min_draw
        ]
        candidates.sort(key=lambda i: -matches[i].p_draw)
        for i in candidates[:needed]:
            adjusted[i] = Outcome.DRAW
        if len(candidates) < needed:
            logger.debug(
                f"[TIE ADJUST] Only {len(candidates)} draw candidates for {needed} "
                f"missing draws; ticket keeps {count_draws(adjusted)}"
            )

    elif draws > config.draw_max:
        excess = draws - config.draw_max
        candidates = [
            i for i, outcome in enumerate(adjusted)
            if outcome is Outcome.DRAW and i not in locked
        ]
        candidates.sort(key=lambda i: matches[i].p_draw)
        for i in candidates[:excess]:
            adjusted[i] = matches[i].suggested_outcome
        if count_draws(adjusted) > config.draw_max:
            logger.debug(
                f"[TIE ADJUST] Could not remove {excess} excess draws; "
                f"ticket keeps {count_draws(adjusted)}"
            )

    return adjusted


def add_shared_draws(
    tickets: Sequence[Sequence[Outcome]],
    matches: Sequence[ClassifiedMatch],
    config: EngineConfig = DEFAULT_CONFIG,
    slots: AbstractSet[int] = frozenset()
) -> List[List[Outcome]]:
    """
    Raise every ticket to draw_min by converting the same slots in all of them.

    Only slots in ``slots`` where every ticket agrees on a non-draw outcome
    and the draw clears ``tie_candidate_min_draw`` are used, likeliest draw
    first, so the tickets still agree on those slots afterwards.
    """
    adjusted = [list(outcomes) for outcomes in tickets]
    if not adjusted:
        return adjusted

    needed = max(config.draw_min - count_draws(outcomes) for outcomes in adjusted)
    if needed <= 0:
        return adjusted

    candidates = [
        i for i in slots
        if len({outcomes[i] for outcomes in adjusted}) == 1
        and adjusted[0][i] is not Outcome.DRAW
        and matches[i].p_draw > config.tie_candidate_min_draw
    ]
    candidates.sort(key=lambda i: (-matches[i].p_draw, i))
    for i in candidates[:needed]:
        for outcomes in adjusted:
            outcomes[i] = Outcome.DRAW

    if len(candidates) < needed:
        logger.debug(
            f"[TIE ADJUST] Only {len(candidates)} shared draw candidates for {needed} "
            f"missing draws"
        )
    return adjusted
