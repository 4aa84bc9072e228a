"""
Error taxonomy for place resolution and aggregation.

Soft failures are never raised; they travel as ``Outcome`` values
(see ``domain.models``). Only the exceptions below cross component
boundaries.
"""
from typing import Optional


class ProviderError(Exception):
    """Raised by provider clients; callers classify it as soft or fatal."""

    def __init__(self, message: str, status: Optional[int] = None, provider: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.status = status
        self.provider = provider


class PlacePulseError(Exception):
    """Base class for errors the API maps onto HTTP responses."""

    status_code: int = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(PlacePulseError):
    """Bad caller input, detected before any external call."""

    status_code = 400


class NoMatchingLocationError(PlacePulseError):
    """Geocoding returned no usable candidate."""

    status_code = 404

    def __init__(self, query: str):
        super().__init__(
            f"No matching location found for '{query}'. Try adding a country (e.g., Madison, US)."
        )
        self.query = query


class FatalUpstreamError(PlacePulseError):
    """A mandatory provider call failed; the whole request is aborted."""

    def __init__(self, message: str, status: Optional[int] = None, provider: Optional[str] = None):
        super().__init__(message)
        self.provider = provider
        # Keep provider 4xx/5xx statuses; anything else becomes a bad gateway.
        if status is not None and 400 <= status <= 599:
            self.status_code = status
        else:
            self.status_code = 502
