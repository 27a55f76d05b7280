"""
Validation Service

Handles request validation before any pipeline stage runs:
- Configuration overrides
- Match card size and probabilities
- Ticket shape against the card
"""

import logging
import math
from typing import Any, Dict, List, Optional, Sequence

from ..config import DEFAULT_CONFIG, EngineConfig
from ..engine import Match, Ticket
from ..exceptions import (
    InputError,
    InsufficientMatchesError,
    InvalidProbabilitiesError,
)

logger = logging.getLogger("quiniela_api.services")


class ValidationService:
    """Service for validating request payloads."""

    def resolve_config(
        self,
        overrides: Optional[Dict[str, Any]] = None,
        request_id: str = "unknown"
    ) -> EngineConfig:
        """
        Build the run configuration from request overrides.

        Raises:
            ConfigurationError: If a key is unknown or a value is out of range
        """
        config = DEFAULT_CONFIG.with_overrides(overrides)
        if overrides:
            logger.info(
                f"[{request_id}] [VALIDATION] Config overrides applied: {sorted(overrides)}"
            )
        return config

    def validate_matches(
        self,
        matches: Sequence[Match],
        config: EngineConfig,
        request_id: str = "unknown"
    ) -> List[Match]:
        """
        Check the card before calibration.

        Raises:
            InsufficientMatchesError: If the card is short
            InvalidProbabilitiesError: If a match has unusable probabilities
        """
        if len(matches) < config.num_matches:
            raise InsufficientMatchesError(
                required=config.num_matches,
                actual=len(matches),
                field="matches"
            )

        for i, match in enumerate(matches):
            raw = (match.p_local, match.p_draw, match.p_visitor)
            if not all(math.isfinite(p) for p in raw) or sum(raw) <= 0:
                raise InvalidProbabilitiesError(
                    f"Match {i + 1} ({match.local} vs {match.visitor}): "
                    f"probabilities must be finite with a positive sum",
                    match_index=i,
                    field=f"matches[{i}]"
                )

        logger.debug(
            f"[{request_id}] [VALIDATION] Card validation passed | Matches: {len(matches)}"
        )
        return list(matches)

    def validate_tickets(
        self,
        tickets: Sequence[Ticket],
        num_matches: Optional[int] = None,
        request_id: str = "unknown"
    ) -> List[Ticket]:
        """
        Check every ticket has one outcome per match.

        Raises:
            InputError: If a ticket length does not fit the card
        """
        if num_matches is not None:
            for i, ticket in enumerate(tickets):
                if len(ticket) != num_matches:
                    raise InputError(
                        f"Ticket {ticket.ticket_id} has {len(ticket)} outcomes "
                        f"for {num_matches} matches",
                        field=f"tickets[{i}].outcomes"
                    )

        logger.debug(
            f"[{request_id}] [VALIDATION] Ticket validation passed | Tickets: {len(tickets)}"
        )
        return list(tickets)
