"""
Health Check and System Information Endpoints

Provides health checks, system status, and engine information.
"""

import logging
import os
from fastapi import APIRouter

from ..config import (
    ENGINE_VERSION,
    LOG_DIR,
    HISTORICAL_DISTRIBUTION,
    DEFAULT_CONFIG,
)
from ..engine import get_engine_status
from ..engine.models import utc_timestamp

logger = logging.getLogger("quiniela_api.routers")
router = APIRouter(tags=["health"])


@router.get("/health")
async def health_check():
    """
    Health check endpoint for monitoring.

    Returns:
        - Service status
        - Engine version
        - Configuration snapshot
    """
    log_dir_status = "exists" if os.path.exists(LOG_DIR) else "missing"

    health_response = {
        "status": "operational",
        "service": "quiniela-portfolio-engine",
        "engine_version": ENGINE_VERSION,
        "log_dir": log_dir_status,
        "config": {
            "num_tickets": DEFAULT_CONFIG.num_tickets,
            "num_matches": DEFAULT_CONFIG.num_matches,
            "monte_carlo_trials": DEFAULT_CONFIG.monte_carlo_trials,
            "max_workers": DEFAULT_CONFIG.max_workers,
            "seed": DEFAULT_CONFIG.seed,
        },
        "timestamp": utc_timestamp(),
        "endpoints": {
            "/api/v1/classify": "POST - Calibrate and classify a fixture card",
            "/api/v1/portfolio": "POST - Generate a Core + Satellite portfolio",
            "/api/v1/portfolio/export": "POST - Generate and export (csv, json, txt)",
            "/api/v1/validate": "POST - Validate a set of tickets",
            "/health": "GET - Health check",
            "/engine-info": "GET - Detailed engine information",
            "/docs": "GET - Interactive API documentation"
        }
    }

    logger.info(f"[HEALTH] Health check requested - Status: {health_response['status']}")
    return health_response


@router.get("/engine-info")
async def engine_info():
    """
    Detailed engine information: capabilities and default configuration.
    """
    engine_status = get_engine_status()

    logger.info("[ENGINE INFO] Engine info requested")

    return {
        "name": "Quiniela Portfolio Engine",
        "version": ENGINE_VERSION,
        "description": (
            "Core + Satellite portfolio generation for 14-match pools with "
            "Monte Carlo hit-probability estimation"
        ),
        "engine_type": engine_status["engine_type"],
        "methodology": engine_status["methodology"],
        "features": engine_status["features"],
        "capabilities": {
            "core_tickets": engine_status["core_tickets"],
            "deterministic": True,
            "categories": engine_status["categories"],
            "outcomes": engine_status["outcomes"],
            "export_formats": ["csv", "json", "txt"],
            "metrics": [
                "hit_probability",
                "portfolio_hit_probability",
                "joint_hit_probability",
                "efficiency",
            ],
        },
        "historical_distribution": HISTORICAL_DISTRIBUTION,
        "defaults": engine_status["defaults"],
    }
