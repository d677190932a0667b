"""Provider-agnostic exceptions raised by cloud provider adapters."""

from __future__ import annotations


class ProviderError(Exception):
    """Base class for cloud provider errors."""


class ProviderAPIError(ProviderError):
    """Cloud provider API call failed.

    Parameters
    ----------
    message : str
        Error description
    error_code : str | None
        Provider-specific error code (e.g. "UnauthorizedOperation")
    operation : str | None
        Name of the API operation that failed
    """

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        operation: str | None = None,
    ) -> None:
        super().__init__(message)
        self.error_code = error_code
        self.operation = operation


class ProviderCredentialsError(ProviderError):
    """Cloud provider credentials are missing or invalid."""


class ProviderConnectionError(ProviderError):
    """Cloud provider endpoint could not be reached."""


__all__ = [
    "ProviderError",
    "ProviderAPIError",
    "ProviderCredentialsError",
    "ProviderConnectionError",
]
