from .exporters import (
    matches_from_csv,
    portfolio_from_json,
    portfolio_to_json,
    portfolio_to_record,
    portfolio_to_text,
    tickets_from_csv,
    tickets_to_csv,
    tickets_to_frame,
)

__all__ = [
    "matches_from_csv",
    "portfolio_from_json",
    "portfolio_to_json",
    "portfolio_to_record",
    "portfolio_to_text",
    "tickets_from_csv",
    "tickets_to_csv",
    "tickets_to_frame",
]
