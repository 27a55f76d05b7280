"""
Portfolio Service

Handles the business logic behind the quiniela endpoints:
- Classification of a fixture card
- Full Core + Satellite portfolio generation
- Re-validation of externally supplied tickets
- Rendering a portfolio in the export formats
"""

import logging
import time
from typing import Any, Dict, List, Optional, Sequence, Tuple

from ..engine import (
    ClassifiedMatch,
    Match,
    MonteCarloEstimator,
    PortfolioBuilder,
    PortfolioResult,
    Ticket,
    ValidationReport,
    calibrate_and_classify,
    validate,
)
from ..exceptions import InputError
from ..utils.exporters import portfolio_to_json, portfolio_to_text, tickets_to_csv
from .validation_service import ValidationService

logger = logging.getLogger("quiniela_api.services")

EXPORT_FORMATS = {
    "csv": "text/csv",
    "json": "application/json",
    "txt": "text/plain",
}


class PortfolioService:
    """Service for classifying cards and generating quiniela portfolios."""

    def __init__(self, validation_service: Optional[ValidationService] = None):
        self.validation = validation_service or ValidationService()

    # ------------------------------------------------------------------
    # classify
    # ------------------------------------------------------------------
    def classify(
        self,
        matches: Sequence[Match],
        overrides: Optional[Dict[str, Any]] = None,
        request_id: str = "unknown"
    ) -> List[ClassifiedMatch]:
        config = self.validation.resolve_config(overrides, request_id)
        matches = self.validation.validate_matches(matches, config, request_id)

        classified = calibrate_and_classify(matches, config)
        logger.info(
            f"[{request_id}] [SERVICE] Classified {len(classified)} matches"
        )
        return classified

    # ------------------------------------------------------------------
    # generate_portfolio
    # ------------------------------------------------------------------
    def generate_portfolio(
        self,
        matches: Sequence[Match],
        overrides: Optional[Dict[str, Any]] = None,
        seed: Optional[int] = None,
        request_id: str = "unknown"
    ) -> Tuple[PortfolioResult, float]:
        """
        Run the full pipeline.

        Returns:
            (result, generation time in seconds)

        Raises:
            ConfigurationError: If overrides are invalid
            InputError: If the card is malformed
        """
        config = self.validation.resolve_config(overrides, request_id)
        matches = self.validation.validate_matches(matches, config, request_id)

        logger.info(
            f"[{request_id}] [SERVICE] Generating portfolio | "
            f"Tickets: {config.num_tickets} | Seed: {seed if seed is not None else config.seed}"
        )

        start_time = time.time()
        result = PortfolioBuilder(config).build(matches, seed=seed)
        generation_time = time.time() - start_time

        logger.info(
            f"[{request_id}] [SERVICE] Generation complete | "
            f"Tickets: {len(result.tickets)} | "
            f"Valid: {result.report.is_valid} | "
            f"Status: {result.status.value} | "
            f"Time: {generation_time:.4f}s"
        )
        return result, generation_time

    # ------------------------------------------------------------------
    # validate_tickets
    # ------------------------------------------------------------------
    def validate_tickets(
        self,
        tickets: Sequence[Ticket],
        matches: Optional[Sequence[Match]] = None,
        overrides: Optional[Dict[str, Any]] = None,
        seed: Optional[int] = None,
        request_id: str = "unknown"
    ) -> Tuple[ValidationReport, List[Ticket]]:
        """
        Validate supplied tickets.

        Missing hit probabilities are re-estimated only when the card is
        supplied; otherwise they count as 0 in the metrics.
        """
        config = self.validation.resolve_config(overrides, request_id)
        tickets = list(tickets)

        if matches:
            matches = self.validation.validate_matches(matches, config, request_id)
            classified = calibrate_and_classify(matches, config)
            tickets = self.validation.validate_tickets(tickets, len(classified), request_id)

            estimator = MonteCarloEstimator(config, seed=seed)
            missing = [pos for pos, t in enumerate(tickets) if t.hit_probability is None]
            if missing:
                estimated = estimator.estimate_tickets([tickets[pos] for pos in missing], classified)
                for pos, ticket in zip(missing, estimated):
                    tickets[pos] = ticket
                logger.info(
                    f"[{request_id}] [SERVICE] Re-estimated {len(missing)} tickets"
                )
        else:
            lengths = {len(t) for t in tickets}
            if len(lengths) > 1:
                raise InputError(
                    f"Tickets have different lengths: {sorted(lengths)}",
                    field="tickets"
                )

        report = validate(tickets, config)
        return report, tickets

    # ------------------------------------------------------------------
    # export
    # ------------------------------------------------------------------
    def export(self, result: PortfolioResult, fmt: str) -> Tuple[str, str, str]:
        """
        Render a portfolio.

        Returns:
            (content, media type, file name)

        Raises:
            InputError: If the format is not supported
        """
        fmt = str(fmt).strip().lower()
        if fmt not in EXPORT_FORMATS:
            raise InputError(
                f"Unsupported export format '{fmt}' (expected one of {sorted(EXPORT_FORMATS)})",
                field="format"
            )

        if fmt == "csv":
            content = tickets_to_csv(result.tickets)
        elif fmt == "json":
            content = portfolio_to_json(result)
        else:
            content = portfolio_to_text(result)

        stamp = result.generated_at[:10]
        return content, EXPORT_FORMATS[fmt], f"quinielas_{stamp}.{fmt}"
