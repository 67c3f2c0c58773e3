"""Error taxonomy for the WIP reporting pipeline.

Request-facing errors subclass ``HTTPException`` so routes can let them
propagate unchanged. ``CacheUnavailable`` never reaches a caller.
"""

from __future__ import annotations

from fastapi import HTTPException, status


class ValidationError(HTTPException):
    """Rejected input; ``field`` names the offending query parameter."""

    def __init__(self, field: str, message: str) -> None:
        self.field = field
        self.message = message
        super().__init__(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail={"field": field, "message": message},
        )


class NotFoundError(HTTPException):
    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(status_code=status.HTTP_404_NOT_FOUND, detail=message)


class UpstreamUnavailable(HTTPException):
    """Ledger source failure. Never retried inside the engine."""

    def __init__(self, strategy: str, message: str) -> None:
        self.strategy = strategy
        self.message = message
        super().__init__(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=f"Ledger source '{strategy}' unavailable: {message}",
        )


class LedgerRowLimitExceeded(UpstreamUnavailable):
    def __init__(self, strategy: str, limit: int) -> None:
        self.limit = limit
        super().__init__(strategy, f"more than {limit} ledger rows matched the request.")


class CacheUnavailable(Exception):
    """Raised by cache backends; the reporting service treats it as a miss."""
