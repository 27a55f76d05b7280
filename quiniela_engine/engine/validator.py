# quiniela_engine/engine/validator.py
"""
Portfolio validation against the historical Progol constraints.

Checks, in order:
1. Global L/E/V distribution against the historical ranges
2. Per-ticket draw counts against [draw_min, draw_max]
3. Per-slot concentration (stricter on the first slots)

Constraint misses become warnings or errors, never exceptions. A report is
valid only with no errors and at most ``max_warnings`` warnings.
"""

import logging
from collections import Counter
from typing import Any, Dict, List, Optional, Sequence

import numpy as np

from .models import OUTCOME_ORDER, Ticket, ValidationReport
from .monte_carlo import portfolio_hit_probability
from ..config import EngineConfig, DEFAULT_CONFIG

logger = logging.getLogger(__name__)

# Absorbs float noise at range boundaries
_EPS = 1e-9


class PortfolioValidator:

    def __init__(self, config: EngineConfig = DEFAULT_CONFIG):
        self.config = config

    def validate(self, tickets: Sequence[Ticket]) -> ValidationReport:
        if not tickets:
            logger.warning("[VALIDATOR] Empty portfolio")
            return ValidationReport(
                is_valid=False,
                errors=("Portfolio contains no tickets",),
            )

        warnings: List[str] = []
        errors: List[str] = []
        metrics: Dict[str, Any] = {}

        self._check_global_distribution(tickets, warnings, errors, metrics)
        self._check_ticket_draws(tickets, warnings, errors, metrics)
        self._check_concentration(tickets, warnings, errors)
        self._compute_metrics(tickets, metrics)

        is_valid = True
        if errors:
            is_valid = False
        elif len(warnings) > self.config.max_warnings:
            is_valid = False
            errors.append(
                f"Too many validation warnings ({len(warnings)} > {self.config.max_warnings})"
            )

        logger.info(
            f"[VALIDATOR] {len(tickets)} tickets | valid={is_valid} | "
            f"warnings={len(warnings)} errors={len(errors)} | "
            f"portfolio Pr={metrics['portfolio_hit_probability']:.4f}"
        )

        return ValidationReport(
            is_valid=is_valid,
            warnings=tuple(warnings),
            errors=tuple(errors),
            metrics=metrics,
        )

    def _check_global_distribution(self, tickets, warnings, errors, metrics) -> None:
        counts = Counter(o for ticket in tickets for o in ticket.outcomes)
        total = sum(len(ticket) for ticket in tickets)
        distribution = {o.value: (counts[o] / total if total else 0.0) for o in OUTCOME_ORDER}
        metrics["global_distribution"] = distribution

        tolerance = self.config.distribution_tolerance
        for symbol, share in distribution.items():
            low, high = self.config.historical_ranges[symbol]
            if share < low - _EPS:
                deviation = low - share
                if deviation > tolerance + _EPS:
                    errors.append(
                        f"Distribution {symbol}: {share * 100:.1f}% well below "
                        f"minimum {low * 100:.1f}%"
                    )
                else:
                    warnings.append(
                        f"Distribution {symbol}: {share * 100:.1f}% slightly low "
                        f"(min: {low * 100:.1f}%)"
                    )
            elif share > high + _EPS:
                deviation = share - high
                if deviation > tolerance + _EPS:
                    errors.append(
                        f"Distribution {symbol}: {share * 100:.1f}% well above "
                        f"maximum {high * 100:.1f}%"
                    )
                else:
                    warnings.append(
                        f"Distribution {symbol}: {share * 100:.1f}% slightly high "
                        f"(max: {high * 100:.1f}%)"
                    )

    def _check_ticket_draws(self, tickets, warnings, errors, metrics) -> None:
        draw_min, draw_max = self.config.draw_min, self.config.draw_max
        draws = [ticket.draw_count for ticket in tickets]
        problems = []

        for i, count in enumerate(draws):
            if count < draw_min:
                problems.append(f"Q-{i + 1}: {count} draws (minimum {draw_min})")
            elif count > draw_max:
                problems.append(f"Q-{i + 1}: {count} draws (maximum {draw_max})")

        metrics["draw_mean"] = float(np.mean(draws))
        metrics["draw_range"] = [int(min(draws)), int(max(draws))]

        if not problems:
            return
        if len(problems) > len(tickets) * self.config.draw_violation_ratio:
            errors.append(
                f"Too many tickets outside the draw range: {', '.join(problems[:5])}"
            )
        else:
            warnings.extend(problems)

    def _check_concentration(self, tickets, warnings, errors) -> None:
        num_tickets = len(tickets)
        num_slots = max(len(ticket) for ticket in tickets)
        problems = []

        for slot in range(num_slots):
            counts = Counter(
                ticket.outcomes[slot] for ticket in tickets if slot < len(ticket)
            )
            # ties resolve in L, E, V order
            top_outcome, top_count = max(
                ((o, counts[o]) for o in OUTCOME_ORDER), key=lambda pair: pair[1]
            )
            share = top_count / num_tickets
            limit = (
                self.config.concentration_initial
                if slot < self.config.initial_slots
                else self.config.concentration_general
            )
            if share > limit + _EPS:
                problems.append(
                    f"Match {slot + 1}: {share * 100:.0f}% on '{top_outcome.value}' "
                    f"(limit: {limit * 100:.0f}%)"
                )

        if not problems:
            return
        if len(problems) > self.config.concentration_violation_limit:
            errors.append(
                f"Multiple concentration violations: {', '.join(problems[:3])}"
            )
        else:
            warnings.extend(problems)

    def _compute_metrics(self, tickets, metrics) -> None:
        probs = [t.hit_probability or 0.0 for t in tickets]
        portfolio = portfolio_hit_probability(probs)
        cost = len(tickets) * self.config.ticket_price

        metrics["hit_probability_mean"] = float(np.mean(probs))
        metrics["hit_probability_min"] = float(min(probs))
        metrics["hit_probability_max"] = float(max(probs))
        metrics["portfolio_hit_probability"] = portfolio
        metrics["total_cost"] = cost
        metrics["efficiency"] = portfolio / (cost / 1000) if cost > 0 else 0.0


def validate(tickets: Sequence[Ticket], config: Optional[EngineConfig] = None) -> ValidationReport:
    return PortfolioValidator(config or DEFAULT_CONFIG).validate(tickets)
