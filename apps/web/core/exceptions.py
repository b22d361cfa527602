"""Upstream integration exceptions shared by the POS and payment adapters."""


class UpstreamError(Exception):
    """Base exception for calls to an external vendor API."""

    def __init__(
        self,
        message: str,
        provider: str | None = None,
        status_code: int | None = None,
        response_body: str | None = None,
    ) -> None:
        self.message = message
        self.provider = provider
        self.status_code = status_code
        self.response_body = response_body
        super().__init__(message)


class UpstreamRejected(UpstreamError):
    """Vendor rejected the request as malformed or unauthorized (4xx)."""


class UpstreamUnavailable(UpstreamError):
    """Vendor unreachable or failing (network error, timeout, 5xx)."""
