"""Authentication client for the Omlet Smart Coop API."""

from __future__ import annotations

import logging
from http import HTTPStatus
from typing import TYPE_CHECKING

from pyomlet.const import DEVICE_LIST_PATH, LOGIN_PATH
from pyomlet.exceptions import AuthenticationError, InvalidParameterError, RequestRejectedError
from pyomlet.parsers import parse_device_list, parse_login_token


if TYPE_CHECKING:
    from pyomlet.api import OmletAPI
    from pyomlet.models import Credentials, DeviceSummary

_LOGGER = logging.getLogger(__name__)


def raise_for_status(
    status: int,
    operation: str,
    accepted: tuple[int, ...] = (HTTPStatus.OK,),
    auth_message: str | None = None,
) -> None:
    """Raise the taxonomy error for a non-success HTTP status.

    Args:
        status: HTTP status returned by the API.
        operation: Short description used in the error message.
        accepted: Statuses treated as success.
        auth_message: Message for 401/403 instead of the generic one.

    Raises:
        AuthenticationError: For 401/403.
        RequestRejectedError: For any other status not in accepted.
    """
    if status in (HTTPStatus.UNAUTHORIZED, HTTPStatus.FORBIDDEN):
        msg = auth_message or f"{operation} rejected: HTTP {status}"
        raise AuthenticationError(msg, status_code=status)

    if status not in accepted:
        msg = f"{operation} failed: HTTP {status}"
        raise RequestRejectedError(msg, status_code=status)


class AuthClient:
    """Perform the login exchange and the device listing used for discovery.

    The client is stateless beyond the HTTP calls: it never stores the token
    it returns. Token ownership belongs to SessionManager.

    Example:
        ```python
        async with OmletAPI() as api:
            auth = AuthClient(api)
            token = await auth.login(Credentials("user@example.com", "secret", "GB"))
            devices = await auth.list_devices(token)
        ```
    """

    def __init__(self, api: OmletAPI) -> None:
        """Initialize the auth client.

        Args:
            api: Transport used for HTTP calls.
        """
        self._api = api

    async def login(self, credentials: Credentials) -> str:
        """Exchange credentials for a bearer token.

        Args:
            credentials: Email, password and normalized two-letter country code.

        Returns:
            The bearer token.

        Raises:
            InvalidParameterError: If any credential field is empty.
            AuthenticationError: If the credentials are rejected (401/403).
            RequestRejectedError: For any other non-200 status.
            MalformedResponseError: If the response has no token.
            OmletTimeoutError: If the request times out.
            OmletConnectionError: If a connection error occurs.
        """
        for name in ("email_address", "password", "country_code"):
            if not getattr(credentials, name):
                msg = f"Credential field {name} must not be empty"
                raise InvalidParameterError(msg, parameter_name=name)

        payload = {
            "emailAddress": credentials.email_address,
            "password": credentials.password,
            "cc": credentials.country_code,
        }

        _LOGGER.debug("Logging in as %s", credentials.email_address)
        status, data = await self._api.request("POST", LOGIN_PATH, json_data=payload)
        raise_for_status(status, "Login", auth_message="Login failed: Invalid email or password")

        token = parse_login_token(data)
        _LOGGER.info("Login successful for %s", credentials.email_address)
        return token

    async def list_devices(self, token: str) -> list[DeviceSummary]:
        """List the devices on the account.

        Args:
            token: Bearer token.

        Returns:
            DeviceSummary entries, in the order the API returned them.

        Raises:
            InvalidParameterError: If the token is empty.
            AuthenticationError: If the token is rejected (401/403).
            RequestRejectedError: For any other non-200 status.
            MalformedResponseError: If no device array can be found.
            OmletTimeoutError: If the request times out.
            OmletConnectionError: If a connection error occurs.
        """
        if not token:
            msg = "Token must not be empty"
            raise InvalidParameterError(msg, parameter_name="token", value=token)

        status, data = await self._api.request("GET", DEVICE_LIST_PATH, token=token)
        raise_for_status(status, "Device listing")

        devices = parse_device_list(data)
        _LOGGER.debug("Found %d device(s) on account", len(devices))
        return devices
