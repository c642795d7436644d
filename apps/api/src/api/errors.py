"""Error taxonomy for the call pipeline.

Every error carries the HTTP status it maps to and knows how to render
itself as a JSON body. The route catches them at the request boundary.
"""

from typing import Any


class GatewayError(Exception):
    """Base class for errors that end a call request."""

    status_code: int = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    @property
    def headers(self) -> dict[str, str] | None:
        """Extra response headers, if any."""
        return None

    def to_response_body(self) -> dict[str, Any]:
        """JSON body returned to the caller."""
        return {"error": self.message}


class ValidationError(GatewayError):
    """Client input failed the request schema (client-correctable)."""

    status_code = 400

    def __init__(
        self,
        details: dict[str, list[str]],
        message: str = "Validation failed",
    ):
        super().__init__(message)
        self.details = details

    def to_response_body(self) -> dict[str, Any]:
        return {"error": self.message, "details": self.details}


class RateLimitError(GatewayError):
    """A cooldown gate is closed for this caller (IP) or phone number."""

    status_code = 429

    def __init__(
        self,
        message: str,
        gate: str,
        window_seconds: float,
        retry_after_seconds: int,
    ):
        super().__init__(message)
        self.gate = gate
        self.window_seconds = window_seconds
        self.retry_after_seconds = retry_after_seconds

    @property
    def headers(self) -> dict[str, str]:
        return {"Retry-After": str(self.retry_after_seconds)}

    def to_response_body(self) -> dict[str, Any]:
        return {
            "error": self.message,
            "gate": self.gate,
            "retry_after_seconds": self.retry_after_seconds,
        }


class ConfigurationError(GatewayError):
    """Operator-side configuration (agent ids, credentials) is missing or invalid."""

    status_code = 500


class UpstreamError(GatewayError):
    """The voice platform (or webhook) rejected or failed the call."""

    status_code = 500

    def __init__(
        self,
        message: str,
        upstream_status: int | None = None,
        upstream_body: str | None = None,
    ):
        super().__init__(message)
        self.upstream_status = upstream_status
        self.upstream_body = upstream_body

    def to_response_body(self) -> dict[str, Any]:
        return {"error": self.message, "upstream_status": self.upstream_status}


class UnexpectedError(GatewayError):
    """Catch-all for anything the pipeline did not anticipate."""

    status_code = 500

    def __init__(self, message: str = "Unexpected error occurred."):
        super().__init__(message)
