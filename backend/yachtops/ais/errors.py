"""Errors raised by the marine pipeline and its query surface.

Everything the query surface raises is a MarineServiceError; the API layer
renders it as an ``{error, message}`` envelope with the carried status code.
"""

from typing import Any, Optional


class UpstreamFetchError(Exception):
    """Exception raised when a call to the upstream AIS REST API fails."""

    def __init__(self, message: str, source: Optional[str] = None):
        self.source = source
        super().__init__(f"[{source}] {message}" if source else message)


class MarineServiceError(Exception):
    """Base class for errors translated into HTTP envelopes."""

    status_code = 500
    error = "Internal server error"

    def __init__(self, message: str, error: Optional[str] = None):
        self.message = message
        if error is not None:
            self.error = error
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        return {"error": self.error, "message": self.message}


class ValidationFailed(MarineServiceError):
    status_code = 400
    error = "Validation error"


class VesselNotFound(MarineServiceError):
    status_code = 404
    error = "Vessel not found"


class ServiceUnavailable(MarineServiceError):
    """AIS service cannot answer; distinct from an empty result."""

    status_code = 503
    error = "Service unavailable"

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data["results"] = []
        return data


class InternalFailure(MarineServiceError):
    status_code = 500
