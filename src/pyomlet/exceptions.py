"""Custom exceptions for pyomlet library."""

from __future__ import annotations

from http import HTTPStatus
from typing import Any


class OmletError(Exception):
    """Base exception for all Omlet errors."""


class TransientError(OmletError):
    """Exception raised for failures that the next poll may not repeat."""


class OmletConnectionError(TransientError):
    """Exception raised for connection failures."""


class OmletTimeoutError(TransientError):
    """Exception raised when API requests timeout."""


class MalformedResponseError(OmletError):
    """Exception raised when a response cannot be parsed or lacks required fields."""


class RequestRejectedError(OmletError):
    """Exception raised when the API answers with an unexpected HTTP status.

    Attributes:
        status_code: HTTP status returned by the API, if known.
    """

    def __init__(self, message: str = "", status_code: int | None = None) -> None:
        """Initialize RequestRejectedError.

        Args:
            message: Error message.
            status_code: HTTP status returned by the API.
        """
        super().__init__(message)
        self.status_code = status_code

    @property
    def is_auth_failure(self) -> bool:
        """Check whether the status indicates an authorization failure."""
        return self.status_code in (HTTPStatus.UNAUTHORIZED, HTTPStatus.FORBIDDEN)


class AuthenticationError(RequestRejectedError):
    """Exception raised when the API rejects credentials or a token (401/403)."""


class AuthPermanentlyFailedError(OmletError):
    """Exception raised once re-login has been given up for this process.

    Only a restart with corrected credentials clears this condition.
    """


class DeviceNotConfiguredError(OmletError):
    """Exception raised when no device id is known for the session."""


class InvalidParameterError(OmletError):
    """Exception raised for invalid parameter values.

    Attributes:
        parameter_name: Optional name of the invalid parameter.
        value: Optional value that was invalid.
    """

    def __init__(
        self,
        message: str = "",
        parameter_name: str | None = None,
        value: Any = None,
    ) -> None:
        """Initialize InvalidParameterError.

        Args:
            message: Error message.
            parameter_name: Optional name of the invalid parameter.
            value: Optional value that was invalid.
        """
        super().__init__(message)
        self.parameter_name = parameter_name
        self.value = value
