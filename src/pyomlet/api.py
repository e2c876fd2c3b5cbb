"""Low-level HTTP transport for the Omlet Smart Coop API.

This module owns the aiohttp session and turns transport failures into the
library's error taxonomy. Methods return (status_code, response_data) tuples
so the auth and device clients can classify statuses themselves.
"""

from __future__ import annotations

import json
import logging
from http import HTTPStatus
from typing import TYPE_CHECKING, Any

from aiohttp import ClientError, ClientSession, ClientTimeout

from pyomlet.const import API_PREFIX, DEFAULT_BASE_URL, DEFAULT_TIMEOUT
from pyomlet.exceptions import MalformedResponseError, OmletConnectionError, OmletTimeoutError


if TYPE_CHECKING:
    from types import TracebackType

_LOGGER = logging.getLogger(__name__)


class OmletAPI:
    """HTTP transport shared by the auth and device clients.

    Example:
        ```python
        from aiohttp import ClientSession
        from pyomlet.api import OmletAPI

        async with ClientSession() as session:
            api = OmletAPI(session=session)
            status, data = await api.request("GET", "/device/abc123", token="token")
        ```

    Attributes:
        base_url: Base URL for the API (default: https://x107.omlet.co.uk).
        timeout: Total timeout for one request in seconds.
    """

    def __init__(
        self,
        *,
        session: ClientSession | None = None,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> None:
        """Initialize the transport.

        Args:
            session: Optional aiohttp ClientSession. If not provided, one will be
                created when entering the context manager.
            base_url: Base URL for the API. Defaults to the Omlet production API.
            timeout: Total timeout for one request in seconds.
        """
        self._session = session
        self._owns_session = session is None
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

    @property
    def session(self) -> ClientSession | None:
        """Get the underlying aiohttp session."""
        return self._session

    async def __aenter__(self) -> OmletAPI:
        """Enter the context manager, creating a session if none was injected.

        Returns:
            Self for use in async with statements.
        """
        if self._session is None:
            self._session = ClientSession()
            self._owns_session = True
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        """Exit the context manager, closing the session if this transport created it.

        Args:
            exc_type: Exception type if an exception occurred.
            exc_val: Exception value if an exception occurred.
            exc_tb: Exception traceback if an exception occurred.
        """
        await self.close()

    async def close(self) -> None:
        """Close the session if it is owned by this transport."""
        if self._owns_session and self._session is not None:
            await self._session.close()
            self._session = None

    def _validate_session(self) -> ClientSession:
        """Return the open session.

        Raises:
            RuntimeError: If session is not initialized or is closed.
        """
        if self._session is None:
            msg = "Session not initialized. Use 'async with' or provide a session."
            raise RuntimeError(msg)

        if self._session.closed:
            msg = "Session is closed. Cannot make request."
            raise RuntimeError(msg)

        return self._session

    async def request(
        self,
        method: str,
        endpoint: str,
        *,
        token: str | None = None,
        json_data: dict[str, Any] | None = None,
    ) -> tuple[int, Any]:
        """Make a request against the API.

        Args:
            method: HTTP method (GET, POST).
            endpoint: Endpoint path below /api/v1 (e.g., "/device/abc").
            token: Bearer token, omitted for the login call.
            json_data: Optional JSON data for request body.

        Returns:
            Tuple of (status_code, response_data). Response data is the decoded
            JSON body for 200/201 responses and None otherwise.

        Raises:
            RuntimeError: If session is not initialized or is closed.
            OmletTimeoutError: If the request times out.
            OmletConnectionError: If the connection fails.
            MalformedResponseError: If a successful response is not valid JSON.
        """
        session = self._validate_session()

        url = f"{self.base_url}{API_PREFIX}{endpoint}"
        headers = {"Accept": "application/json"}
        if token is not None:
            headers["Authorization"] = f"Bearer {token}"
        timeout = ClientTimeout(total=self.timeout)

        _LOGGER.debug("%s %s", method, endpoint)

        try:
            async with session.request(
                method,
                url,
                json=json_data,
                headers=headers,
                timeout=timeout,
            ) as response:
                _LOGGER.debug("%s %s -> HTTP %d", method, endpoint, response.status)

                response_data: Any = None
                if response.status in (HTTPStatus.OK, HTTPStatus.CREATED):
                    # Content-type is not always set to application/json
                    response_data = await response.json(content_type=None)
                elif response.status in (HTTPStatus.UNAUTHORIZED, HTTPStatus.FORBIDDEN):
                    _LOGGER.debug("Authorization rejected for %s: %s", endpoint, await response.text())

                return response.status, response_data

        except TimeoutError as exc:
            msg = f"Request to {endpoint} timed out after {self.timeout}s"
            raise OmletTimeoutError(msg) from exc

        except ClientError as exc:
            msg = f"Failed to connect to API: {exc}"
            raise OmletConnectionError(msg) from exc

        except (json.JSONDecodeError, UnicodeDecodeError) as exc:
            msg = f"Invalid JSON response from {endpoint}: {exc}"
            raise MalformedResponseError(msg) from exc
