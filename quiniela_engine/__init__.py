# quiniela_engine/__init__.py

"""
Quiniela Portfolio Engine - Main Package Exports

The FastAPI application lives in ``quiniela_engine.app`` and is not imported
here, so the engine can be used without configuring logging or the API.
"""

from .engine import (
    build_portfolio,
    calibrate_and_classify,
    generate_core,
    generate_satellites,
    validate,
    get_engine_status,
    Match,
    Ticket,
    PortfolioResult,
    ValidationReport,
    __version__ as ENGINE_VERSION,
)
from .config import EngineConfig, DEFAULT_CONFIG
from .exceptions import (
    EngineError,
    InputError,
    InsufficientMatchesError,
    InvalidProbabilitiesError,
    InvalidCountError,
    ExportFormatError,
    ConfigurationError,
)

# Package metadata
__version__ = "1.0.0"
__description__ = "Core + Satellite quiniela portfolio generation"

__all__ = [
    # Engine functions
    'build_portfolio',
    'calibrate_and_classify',
    'generate_core',
    'generate_satellites',
    'validate',
    'get_engine_status',

    # Models
    'Match',
    'Ticket',
    'PortfolioResult',
    'ValidationReport',
    'EngineConfig',
    'DEFAULT_CONFIG',

    # Exceptions
    'EngineError',
    'InputError',
    'InsufficientMatchesError',
    'InvalidProbabilitiesError',
    'InvalidCountError',
    'ExportFormatError',
    'ConfigurationError',

    # Metadata
    '__version__',
    '__description__',
    'ENGINE_VERSION'
]
