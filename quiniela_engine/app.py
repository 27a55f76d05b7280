"""
Quiniela Portfolio Engine API - Main Application

Stateless service around the portfolio engine:
- Receives a fixture card with raw probabilities
- Calibrates, classifies and generates a Core + Satellite portfolio
- Returns tickets, Monte Carlo hit probabilities and a validation report

Nothing is persisted; every request is a self-contained batch computation.
"""

import uvicorn
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

# Configure logging FIRST (before other imports)
from .logging_config import setup_logging
from .config import (
    ENGINE_VERSION,
    API_TITLE,
    API_DESCRIPTION,
    API_HOST,
    API_PORT,
    DEFAULT_CONFIG,
    validate_config
)
from .exceptions import ConfigurationError, EngineError, InputError

# Setup logging
logger = setup_logging()

logger.info("=" * 80)
logger.info(f"[START] Quiniela Portfolio Engine v{ENGINE_VERSION} Initializing...")
logger.info("=" * 80)

# Validate configuration
try:
    validate_config()
    logger.info("[OK] Configuration validated")
except ConfigurationError as e:
    logger.error(f"[ERROR] Configuration validation failed: {e}")
    raise

from .engine import get_engine_status
from .routers import health_router, quinielas_router
from .middleware import RequestLoggingMiddleware


@asynccontextmanager
async def lifespan(app: FastAPI):
    engine_status = get_engine_status()
    logger.info("=" * 80)
    logger.info("[START] Application startup complete")
    logger.info(f"[START] Engine Version: {ENGINE_VERSION}")
    logger.info(f"[CONFIG] Methodology: {engine_status['methodology']}")
    logger.info(
        f"[CONFIG] Tickets: {DEFAULT_CONFIG.num_tickets} | "
        f"Trials: {DEFAULT_CONFIG.monte_carlo_trials} | "
        f"Workers: {DEFAULT_CONFIG.max_workers} | "
        f"Seed: {DEFAULT_CONFIG.seed}"
    )
    logger.info("[START] Ready to accept requests")
    logger.info("=" * 80)
    yield
    logger.info("=" * 80)
    logger.info("[SHUTDOWN] Application shutting down")
    logger.info("=" * 80)


# Create FastAPI app
app = FastAPI(
    title=API_TITLE,
    version=ENGINE_VERSION,
    description=API_DESCRIPTION,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan
)

# Register routers
app.include_router(quinielas_router)
app.include_router(health_router)

app.add_middleware(RequestLoggingMiddleware)

logger.info("[OK] FastAPI application created")


def _error_response(request: Request, exc: EngineError, status_code: int) -> JSONResponse:
    request_id = getattr(request.state, "request_id", "unknown")
    logger.error(
        f"[{request_id}] {exc.__class__.__name__} ({exc.error_code}): {exc.message}"
    )
    return JSONResponse(
        status_code=status_code,
        content={
            **exc.to_dict(),
            "status_code": status_code,
            "request_id": request_id
        }
    )


# Exception handlers
@app.exception_handler(InputError)
async def input_error_handler(request: Request, exc: InputError):
    """Malformed cards, tickets or export files."""
    return _error_response(request, exc, 400)


@app.exception_handler(ConfigurationError)
async def configuration_error_handler(request: Request, exc: ConfigurationError):
    """Configuration overrides outside their documented domain."""
    return _error_response(request, exc, 422)


# Root endpoint
@app.get("/")
async def root():
    """Service information endpoint."""
    return {
        "service": API_TITLE,
        "version": ENGINE_VERSION,
        "status": "operational",
        "description": API_DESCRIPTION,
        "documentation": "/docs",
        "health_check": "/health",
        "engine_info": "/engine-info",
        "endpoints": [
            "/api/v1/classify",
            "/api/v1/portfolio",
            "/api/v1/portfolio/export",
            "/api/v1/validate",
        ]
    }


# Run application
if __name__ == "__main__":
    logger.info("[START] Starting uvicorn server...")

    uvicorn.run(
        app,
        host=API_HOST,
        port=API_PORT,
        log_level="info"
    )
