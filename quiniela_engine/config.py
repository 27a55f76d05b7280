"""
Configuration management for the Quiniela Portfolio Engine.

Centralizes environment settings, the historical Progol constants and the
per-run EngineConfig value that is passed into every pipeline stage.
"""

import os
import math
from dataclasses import dataclass, field, asdict, fields, replace
from typing import Dict, Any, Optional, Tuple, Mapping
from pathlib import Path

from pydantic import TypeAdapter, ValidationError

from .exceptions import ConfigurationError

# Base directory
BASE_DIR = Path(__file__).parent

# Logging Configuration
LOG_DIR = Path(os.getenv("LOG_DIR", str(BASE_DIR / "logs")))
LOG_FILE = LOG_DIR / "engine.log"
LOG_MAX_BYTES = 10 * 1024 * 1024  # 10MB
LOG_BACKUP_COUNT = 10
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

# Engine Configuration
ENGINE_VERSION = "1.0.0"
NUM_TICKETS = int(os.getenv("NUM_TICKETS", "20"))
MONTE_CARLO_TRIALS = int(os.getenv("MONTE_CARLO_TRIALS", "1000"))
MAX_WORKERS = int(os.getenv("MAX_WORKERS", "4"))
RANDOM_SEED = int(os.getenv("RANDOM_SEED", "42"))
TICKET_PRICE = float(os.getenv("TICKET_PRICE", "15.0"))  # MXN per ticket

# API Configuration
API_HOST = os.getenv("API_HOST", "0.0.0.0")
API_PORT = int(os.getenv("API_PORT", "5000"))
SLOW_REQUEST_SECONDS = float(os.getenv("SLOW_REQUEST_SECONDS", "10"))
API_TITLE = "Quiniela Portfolio Engine API"
API_DESCRIPTION = (
    "Core + Satellite quiniela portfolio generation with Monte Carlo "
    "hit-probability estimation and historical-distribution validation."
)

# Card layout
MATCHES_REGULAR = 14
MATCHES_REVANCHA = 7
CORE_TICKET_COUNT = 4
METHODOLOGY = "Core + Satellites"

# Historical Progol distribution (1,497+ contests)
HISTORICAL_DISTRIBUTION = {"L": 0.38, "E": 0.29, "V": 0.33}
HISTORICAL_RANGES = {
    "L": (0.35, 0.41),
    "E": (0.25, 0.33),
    "V": (0.30, 0.36),
}
AVERAGE_DRAWS = 4.33

# Error Messages
ERROR_MESSAGES = {
    "INSUFFICIENT_MATCHES": "Insufficient matches for a full card",
    "INVALID_PROBABILITIES": "Match probabilities are invalid",
    "INVALID_COUNT": "Ticket count must be non-negative",
    "CONFIGURATION_ERROR": "Invalid engine configuration",
    "EXPORT_FORMAT_ERROR": "Unreadable export file",
}


@dataclass(frozen=True)
class EngineConfig:
    """
    Explicit per-run configuration.

    Every stage receives one of these rather than reading module constants,
    so a run can override any threshold without touching global state.
    """

    # Portfolio shape
    num_tickets: int = NUM_TICKETS
    num_matches: int = MATCHES_REGULAR

    # Draw-count window enforced by the tie adjuster
    draw_min: int = 4
    draw_max: int = 6
    tie_candidate_min_draw: float = 0.20

    # Concentration limits (initial limit applies to the first slots)
    concentration_general: float = 0.70
    concentration_initial: float = 0.60
    initial_slots: int = 3

    # Monte Carlo
    monte_carlo_trials: int = MONTE_CARLO_TRIALS
    hit_threshold: int = 11
    max_workers: int = MAX_WORKERS
    seed: Optional[int] = RANDOM_SEED

    # Classifier thresholds
    anchor_threshold: float = 0.60
    divisor_min: float = 0.40
    divisor_max: float = 0.60
    draw_threshold: float = 0.30

    # Calibration weights
    k_form: float = 0.15
    k_injuries: float = 0.10
    k_decider: float = 0.20
    visitor_factor_floor: float = 0.10

    # Draw-propensity rule
    draw_propensity_gap: float = 0.08
    draw_propensity_boost: float = 0.06
    draw_propensity_cap: float = 0.95

    # Satellite divergence
    pair_divergence: float = 0.30
    singleton_flip: float = 0.40

    # Validation
    historical_ranges: Dict[str, Tuple[float, float]] = field(
        default_factory=lambda: dict(HISTORICAL_RANGES)
    )
    distribution_tolerance: float = 0.03
    draw_violation_ratio: float = 0.10
    concentration_violation_limit: int = 3
    max_warnings: int = 3
    ticket_price: float = TICKET_PRICE

    def validate(self) -> "EngineConfig":
        """
        Check every value against its declared type and documented domain.

        Returns:
            A copy with values coerced to the field types (``"8"`` becomes
            ``8``, range lists become tuples)

        Raises:
            ConfigurationError: Naming the first offending key
        """
        try:
            config = _CONFIG_ADAPTER.validate_python(
                {f.name: getattr(self, f.name) for f in fields(self)}
            )
        except ValidationError as exc:
            error = exc.errors()[0]
            key = str(error["loc"][0]) if error["loc"] else "config"
            raise ConfigurationError(f"{key}: {error['msg']}", config_key=key) from exc
        config._check_domain()
        return config

    def _check_domain(self) -> None:
        def fail(key: str, message: str):
            raise ConfigurationError(f"{key}: {message}", config_key=key)

        if self.num_tickets < 1:
            fail("num_tickets", f"must be >= 1 (got {self.num_tickets})")
        if self.num_matches < 1:
            fail("num_matches", f"must be >= 1 (got {self.num_matches})")
        if self.draw_min < 0:
            fail("draw_min", f"must be >= 0 (got {self.draw_min})")
        if self.draw_min > self.draw_max:
            fail("draw_min", f"must not exceed draw_max ({self.draw_min} > {self.draw_max})")
        if self.draw_max > self.num_matches:
            fail("draw_max", f"must not exceed num_matches ({self.draw_max} > {self.num_matches})")
        for key in ("concentration_general", "concentration_initial"):
            value = getattr(self, key)
            if not (0.0 < value <= 1.0):
                fail(key, f"must be in (0, 1] (got {value})")
        if self.monte_carlo_trials < 1:
            fail("monte_carlo_trials", f"must be >= 1 (got {self.monte_carlo_trials})")
        if not (0 <= self.hit_threshold <= self.num_matches):
            fail("hit_threshold", f"must be in [0, {self.num_matches}] (got {self.hit_threshold})")
        if self.max_workers < 1:
            fail("max_workers", f"must be >= 1 (got {self.max_workers})")
        if not (0.0 <= self.divisor_min <= self.divisor_max <= 1.0):
            fail("divisor_min", "divisor range must satisfy 0 <= min <= max <= 1")
        for key in ("anchor_threshold", "draw_threshold", "pair_divergence",
                    "singleton_flip", "tie_candidate_min_draw", "draw_propensity_cap"):
            value = getattr(self, key)
            if not (0.0 <= value <= 1.0):
                fail(key, f"must be in [0, 1] (got {value})")
        if self.visitor_factor_floor <= 0:
            fail("visitor_factor_floor", "must be positive")
        if self.ticket_price < 0:
            fail("ticket_price", "cannot be negative")
        for symbol in ("L", "E", "V"):
            bounds = self.historical_ranges.get(symbol)
            if bounds is None or len(bounds) != 2 or bounds[0] > bounds[1]:
                fail("historical_ranges", f"invalid range for '{symbol}': {bounds}")
        for key, value in asdict(self).items():
            if isinstance(value, float) and not math.isfinite(value):
                fail(key, "must be finite")

    def with_overrides(self, overrides: Optional[Mapping[str, Any]] = None) -> "EngineConfig":
        """Return a validated copy with the given fields replaced."""
        if not overrides:
            return self.validate()

        known = {f.name for f in fields(self)}
        unknown = sorted(set(overrides) - known)
        if unknown:
            raise ConfigurationError(
                f"Unknown configuration keys: {', '.join(unknown)}",
                config_key=unknown[0]
            )

        return replace(self, **overrides).validate()

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["historical_ranges"] = {k: list(v) for k, v in self.historical_ranges.items()}
        return data


_CONFIG_ADAPTER = TypeAdapter(EngineConfig)

DEFAULT_CONFIG = EngineConfig()


def get_config() -> Dict[str, Any]:
    """Get complete configuration dictionary."""
    return {
        "engine": {
            "version": ENGINE_VERSION,
            "methodology": METHODOLOGY,
            "core_tickets": CORE_TICKET_COUNT,
            "defaults": DEFAULT_CONFIG.to_dict(),
        },
        "api": {
            "host": API_HOST,
            "port": API_PORT,
            "title": API_TITLE,
            "slow_request_seconds": SLOW_REQUEST_SECONDS,
        },
        "logging": {
            "log_dir": str(LOG_DIR),
            "log_file": str(LOG_FILE),
            "log_level": LOG_LEVEL,
        },
        "historical": {
            "distribution": HISTORICAL_DISTRIBUTION,
            "ranges": {k: list(v) for k, v in HISTORICAL_RANGES.items()},
            "average_draws": AVERAGE_DRAWS,
        },
    }


def validate_config() -> bool:
    """Validate environment-derived configuration values."""
    errors = []

    if NUM_TICKETS < 1:
        errors.append("NUM_TICKETS must be at least 1")

    if MONTE_CARLO_TRIALS < 1:
        errors.append("MONTE_CARLO_TRIALS must be at least 1")

    if MONTE_CARLO_TRIALS > 1_000_000:
        errors.append("MONTE_CARLO_TRIALS should not exceed 1000000 for performance")

    if MAX_WORKERS < 1:
        errors.append("MAX_WORKERS must be at least 1")

    if API_PORT < 1 or API_PORT > 65535:
        errors.append("API_PORT must be between 1 and 65535")

    if TICKET_PRICE < 0:
        errors.append("TICKET_PRICE cannot be negative")

    if errors:
        raise ConfigurationError(f"Configuration validation failed: {'; '.join(errors)}")

    DEFAULT_CONFIG.validate()
    return True
