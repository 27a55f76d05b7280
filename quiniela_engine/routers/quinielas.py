"""
Quiniela Endpoints

Handles card classification, portfolio generation and validation:
- POST /classify - Calibrate and classify a fixture card
- POST /portfolio - Generate a Core + Satellite portfolio
- POST /portfolio/export - Generate and render as csv, json or txt
- POST /validate - Validate a supplied set of tickets

Engine errors propagate to the exception handlers registered in app.py
(InputError -> 400, ConfigurationError -> 422).
"""

import logging
import time
from collections import Counter

from fastapi import APIRouter, Query, Request
from fastapi.responses import Response

from ..schemas import (
    ClassifyRequest,
    ClassifyResponse,
    PortfolioRequest,
    PortfolioResponse,
    ValidateRequest,
    ValidateResponse,
)
from ..services import PortfolioService

logger = logging.getLogger("quiniela_api.routers")
router = APIRouter(prefix="/api/v1", tags=["quinielas"])

# Initialize services
portfolio_service = PortfolioService()


def _request_id(request: Request, prefix: str) -> str:
    return getattr(request.state, "request_id", f"{prefix}_{int(time.time() * 1000)}")


@router.post("/classify", response_model=ClassifyResponse)
def classify_matches(payload: ClassifyRequest, request: Request):
    """Calibrate and classify a fixture card."""
    request_id = _request_id(request, "cls")

    classified = portfolio_service.classify(
        [m.to_match() for m in payload.matches],
        overrides=payload.config,
        request_id=request_id
    )
    counts = Counter(cm.category.value for cm in classified)

    return {
        "status": "success",
        "matches": [cm.to_dict() for cm in classified],
        "category_counts": dict(counts),
        "request_id": request_id,
    }


@router.post("/portfolio", response_model=PortfolioResponse)
def generate_portfolio(payload: PortfolioRequest, request: Request):
    """
    Generate a full portfolio.

    Returns the tickets, the validation report, the generation status and
    any generation warnings (degraded satellite pivoting).
    """
    request_id = _request_id(request, "gen")

    logger.info(f"[{request_id}] ========== PORTFOLIO GENERATION STARTED ==========")

    result, generation_time = portfolio_service.generate_portfolio(
        [m.to_match() for m in payload.matches],
        overrides=payload.config,
        seed=payload.seed,
        request_id=request_id
    )
    data = result.to_dict()

    logger.info(f"[{request_id}] ========== PORTFOLIO GENERATION COMPLETE ==========")

    return {
        "status": "success",
        "generation_status": result.status.value,
        "generation_warnings": list(result.generation_warnings),
        "tickets": data["tickets"],
        "classified_matches": data["classified_matches"],
        "validation": data["validation"],
        "metadata": {
            **data["metadata"],
            "generation_time_seconds": round(generation_time, 4),
            "request_id": request_id,
        },
        "request_id": request_id,
        "processing_time": round(generation_time, 4),
    }


@router.post("/portfolio/export")
def export_portfolio(
    payload: PortfolioRequest,
    request: Request,
    format: str = Query("csv", description="csv, json or txt")
):
    """Generate a portfolio and return it in the chosen export format."""
    request_id = _request_id(request, "exp")

    result, _ = portfolio_service.generate_portfolio(
        [m.to_match() for m in payload.matches],
        overrides=payload.config,
        seed=payload.seed,
        request_id=request_id
    )
    content, media_type, filename = portfolio_service.export(result, format)

    logger.info(f"[{request_id}] [EXPORT] {len(result.tickets)} tickets as {format}")

    return Response(
        content=content,
        media_type=media_type,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'}
    )


@router.post("/validate", response_model=ValidateResponse)
def validate_tickets(payload: ValidateRequest, request: Request):
    """
    Validate supplied tickets. Missing hit probabilities are re-estimated
    only when the fixture card is included.
    """
    request_id = _request_id(request, "val")

    report, tickets = portfolio_service.validate_tickets(
        [t.to_ticket() for t in payload.tickets],
        matches=[m.to_match() for m in payload.matches] if payload.matches else None,
        overrides=payload.config,
        seed=payload.seed,
        request_id=request_id
    )

    logger.info(
        f"[{request_id}] [VALIDATE] {len(tickets)} tickets | valid={report.is_valid}"
    )

    return {
        "status": "success",
        "validation": report.to_dict(),
        "tickets": [t.to_dict() for t in tickets],
        "request_id": request_id,
    }
