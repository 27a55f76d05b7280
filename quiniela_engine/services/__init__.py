"""
Service layer for business logic separation.

Services handle core business logic, keeping API endpoints clean and focused.
"""

from .portfolio_service import PortfolioService
from .validation_service import ValidationService

__all__ = [
    "PortfolioService",
    "ValidationService",
]
