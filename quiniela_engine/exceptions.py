"""
Custom exception hierarchy for the Quiniela Portfolio Engine.

Only malformed input and invalid configuration raise. Expected constraint
misses (draw counts, concentration, degenerate pivots) are reported through
the validation report and generation status instead.
"""

from typing import Optional, Dict, Any


class EngineError(Exception):
    """Base exception for all engine-related errors."""

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for API responses."""
        return {
            "error": self.message,
            "error_code": self.error_code,
            "details": self.details
        }


class InputError(EngineError):
    """Raised when input data is rejected before any stage runs."""

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        error_code: str = "INPUT_ERROR",
        **kwargs
    ):
        super().__init__(message, error_code=error_code, **kwargs)
        if field:
            self.details["field"] = field


class InsufficientMatchesError(InputError):
    """Raised when fewer matches than the card requires are supplied."""

    def __init__(self, required: int, actual: int, **kwargs):
        message = f"At least {required} matches are required (got {actual})"
        super().__init__(message, error_code="INSUFFICIENT_MATCHES", **kwargs)
        self.details.update({
            "required": required,
            "actual": actual
        })


class InvalidProbabilitiesError(InputError):
    """Raised when a match carries unusable probabilities."""

    def __init__(self, message: str, match_index: Optional[int] = None, **kwargs):
        super().__init__(message, error_code="INVALID_PROBABILITIES", **kwargs)
        if match_index is not None:
            self.details["match_index"] = match_index


class InvalidCountError(InputError):
    """Raised when a requested ticket count is negative."""

    def __init__(self, count: int, **kwargs):
        message = f"Ticket count must be non-negative (got {count})"
        super().__init__(message, error_code="INVALID_COUNT", **kwargs)
        self.details["count"] = count


class ExportFormatError(InputError):
    """Raised when an exported tabular or structured record cannot be read back."""

    def __init__(self, message: str, row: Optional[int] = None, **kwargs):
        super().__init__(message, error_code="EXPORT_FORMAT_ERROR", **kwargs)
        if row is not None:
            self.details["row"] = row


class ConfigurationError(EngineError):
    """Raised when configuration errors occur."""

    def __init__(self, message: str, config_key: Optional[str] = None, **kwargs):
        super().__init__(message, error_code="CONFIGURATION_ERROR", **kwargs)
        if config_key:
            self.details["config_key"] = config_key
