"""Error kinds surfaced by the compensation engine and its data access layer."""
from __future__ import annotations


class CompensationError(Exception):
    """Base class for errors rendered as JSON by the API layer."""

    status_code = 500
    error_type = "compensation_error"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class NotFound(CompensationError):
    status_code = 404
    error_type = "not_found"


class InvalidInput(CompensationError):
    status_code = 400
    error_type = "invalid_input"


class UpstreamUnavailable(CompensationError):
    """The data source could not be reached; callers may retry later."""

    status_code = 503
    error_type = "upstream_unavailable"


class ComputationInvariantViolation(CompensationError):
    """Aggregates disagree with each other. Indicates a data integrity bug."""

    status_code = 500
    error_type = "computation_invariant_violation"


__all__ = [
    "CompensationError",
    "NotFound",
    "InvalidInput",
    "UpstreamUnavailable",
    "ComputationInvariantViolation",
]
