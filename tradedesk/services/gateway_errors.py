"""Exceptions raised inside the broker gateway layer.

Service functions catch these at their boundary and turn them into
`{success: False, message}` results (or simulated results, for
GatewayUnavailable when simulation is enabled).
"""


class GatewayError(Exception):
    """The broker answered with an error."""

    def __init__(self, message: str, code: int | None = None, status_code: int | None = None):
        super().__init__(message)
        self.message = message
        self.code = code
        self.status_code = status_code


class GatewayUnavailable(GatewayError):
    """Transport failure, timeout or a 5xx from the broker."""


class UnsupportedPlatformError(GatewayError):
    """No gateway exists for the account's platform."""
