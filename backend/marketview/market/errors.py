"""Error taxonomy shared by every market data service."""

from __future__ import annotations


class ServiceError(Exception):
    """Base class for failures a market data service reports to its caller.

    The string form is ``"<label>: <detail>"`` and is sent to clients verbatim,
    either as an HTTP error body or as a live ``error`` message.
    """

    status_code: int = 500
    label: str = "Service error"

    def __init__(self, detail: str) -> None:
        super().__init__(detail)
        self.detail = detail

    def __str__(self) -> str:
        return f"{self.label}: {self.detail}"


class InvalidSchemaError(ServiceError):
    status_code = 400
    label = "Invalid schema"


class InvalidTimeFormatError(ServiceError):
    status_code = 400
    label = "Invalid time format"


class UpstreamApiError(ServiceError):
    """The vendor accepted the connection but the request or decoding failed."""

    status_code = 502
    label = "API error"


class UpstreamConnectionError(ServiceError):
    status_code = 502
    label = "Connection error"


class NotConfiguredError(ServiceError):
    """Credentials are missing or were rejected by the vendor."""

    status_code = 401
    label = "Not configured"
