"""Session manager owning the bearer token and the re-login recovery protocol."""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, TypeVar

from pyomlet.const import MAX_RELOGIN_ATTEMPTS
from pyomlet.exceptions import (
    AuthenticationError,
    AuthPermanentlyFailedError,
    DeviceNotConfiguredError,
    OmletError,
)
from pyomlet.models import StoredCredentials
from pyomlet.resilience import CircuitBreaker


if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from pyomlet.auth import AuthClient
    from pyomlet.models import Credentials, DeviceSummary
    from pyomlet.storage import CredentialStore

_LOGGER = logging.getLogger(__name__)

_T = TypeVar("_T")


def mask_token(token: str | None) -> str:
    """Shorten a token for log output."""
    if not token:
        return "<none>"
    return f"{token[:6]}..."


class SessionManager:
    """Own the session token and recover from token expiry.

    Tokens issued by the vendor expire after a multi-day window. When any
    downstream call reports 401/403, callers hand control to ``recover()``,
    which logs in again with the configured credentials. Re-login attempts are
    bounded by a latching CircuitBreaker: after ``max_relogin_attempts``
    consecutive failures the session is permanently failed for the life of the
    process, and every later call fails fast without touching the network.

    State machine:
        Active: calls proceed; failed logins increment ``relogin_attempts``,
            any successful login resets it to 0.
        PermanentlyFailed: terminal. Entered at the attempt limit, or at the
            first authorization failure when no credentials are configured
            (manual token mode has nothing to retry with).

    Startup policy (``initialize()``): a token or device id found in the
    credential store wins over statically configured values. Without any
    token, the session logs in. Without any device id, the session runs
    auto-discovery and selects the device only if the account has exactly one.

    Example:
        ```python
        session = SessionManager(auth, credentials=creds, store=store)
        await session.initialize()

        snapshot = await session.call_with_recovery(
            lambda token: device_client.read_state(token, session.require_device_id())
        )
        ```

    Attributes:
        max_relogin_attempts: Consecutive login failures before giving up.
    """

    def __init__(
        self,
        auth: AuthClient,
        *,
        credentials: Credentials | None = None,
        manual_token: str | None = None,
        device_id: str | None = None,
        store: CredentialStore | None = None,
        max_relogin_attempts: int = MAX_RELOGIN_ATTEMPTS,
    ) -> None:
        """Initialize the session manager.

        Args:
            auth: Client used for login and device listing.
            credentials: Login credentials. None selects manual token mode.
            manual_token: Token supplied by configuration.
            device_id: Device id supplied by configuration.
            store: Credential cache. No persistence when None.
            max_relogin_attempts: Consecutive login failures before the
                session is permanently failed.
        """
        self._auth = auth
        self._credentials = credentials
        self._manual_token = manual_token or None
        self._configured_device_id = device_id or None
        self._store = store
        self.max_relogin_attempts = max_relogin_attempts

        self._token: str | None = None
        self._device_id: str | None = None
        self._breaker = CircuitBreaker(failure_threshold=max_relogin_attempts)
        self._lock = asyncio.Lock()

    # -------------------------------------------------------------------------
    # State
    # -------------------------------------------------------------------------

    @property
    def token(self) -> str | None:
        """Get the current bearer token."""
        return self._token

    @property
    def device_id(self) -> str | None:
        """Get the selected device id."""
        return self._device_id

    @property
    def has_credentials(self) -> bool:
        """Check if login credentials are configured."""
        return self._credentials is not None

    @property
    def auth_permanently_failed(self) -> bool:
        """Check if the session has given up on authentication."""
        return self._breaker.is_latched

    @property
    def relogin_attempts(self) -> int:
        """Get the number of consecutive failed login attempts."""
        return self._breaker.failure_count

    def require_token(self) -> str:
        """Return the current token.

        Raises:
            AuthPermanentlyFailedError: If the session is permanently failed.
            AuthenticationError: If no token has been acquired yet.
        """
        self._check_not_failed()
        if not self._token:
            msg = "No auth token available"
            raise AuthenticationError(msg)
        return self._token

    def require_device_id(self) -> str:
        """Return the selected device id.

        Raises:
            DeviceNotConfiguredError: If no device has been selected.
        """
        if not self._device_id:
            msg = "No device id configured. Set device_id or run device discovery."
            raise DeviceNotConfiguredError(msg)
        return self._device_id

    def _check_not_failed(self) -> None:
        if self._breaker.is_latched:
            msg = "Authentication permanently failed. Check credentials and restart."
            raise AuthPermanentlyFailedError(msg) from self._breaker.last_failure

    def _persist(self) -> None:
        if self._store is None:
            return
        try:
            self._store.save(StoredCredentials(token=self._token, device_id=self._device_id))
        except OSError:
            _LOGGER.exception("Failed to write credential cache")

    # -------------------------------------------------------------------------
    # Startup
    # -------------------------------------------------------------------------

    async def initialize(self) -> None:
        """Load cached credentials, acquire a token and select a device.

        Raises:
            AuthPermanentlyFailedError: If login has been given up.
            AuthenticationError: If the credentials are rejected.
            OmletError: For other login or discovery failures.
        """
        stored = self._store.load() if self._store is not None else StoredCredentials()

        if stored.token:
            _LOGGER.info("Using stored token %s", mask_token(stored.token))
            self._token = stored.token
        elif self._manual_token:
            _LOGGER.info("Using manual bearer token mode")
            self._token = self._manual_token

        self._device_id = stored.device_id or self._configured_device_id
        if stored.device_id and self._configured_device_id and stored.device_id != self._configured_device_id:
            _LOGGER.info(
                "Stored device id %s overrides configured device id %s",
                stored.device_id,
                self._configured_device_id,
            )

        if self._token is None:
            _LOGGER.info("Logging in to Omlet API...")
            await self.login()

        if self._device_id is None:
            _LOGGER.warning("No device ID configured, attempting auto-discovery...")
            await self.discover_device()

        if self._device_id is None:
            _LOGGER.error("No device ID found. Check that the device is online, or configure device_id.")

        if (self._token, self._device_id) != (stored.token, stored.device_id):
            self._persist()

    async def discover_device(self) -> list[DeviceSummary]:
        """List account devices and select one if the choice is unambiguous.

        Exactly one device is selected and persisted. With zero or several
        devices nothing is selected; the listing is returned so the caller can
        ask the user to choose.

        Returns:
            All devices found on the account.
        """
        devices = await self.call_with_recovery(self._auth.list_devices)

        if not devices:
            _LOGGER.warning("No devices found on your account")
        elif len(devices) == 1:
            device = devices[0]
            self._device_id = device.device_id
            _LOGGER.info("Auto-discovered device: %s (%s)", device.name, device.device_id)
            self._persist()
        else:
            _LOGGER.warning("Multiple devices found on your account:")
            for index, device in enumerate(devices, start=1):
                _LOGGER.warning("  %d. %s (%s)", index, device.name, device.device_id)
            _LOGGER.warning("Configure device_id to choose one")

        return devices

    def select_device(self, device_id: str) -> None:
        """Select a device explicitly and persist the choice.

        Raises:
            DeviceNotConfiguredError: If the device id is empty.
        """
        if not device_id:
            msg = "Device id must not be empty"
            raise DeviceNotConfiguredError(msg)
        self._device_id = device_id
        self._persist()

    # -------------------------------------------------------------------------
    # Login and recovery
    # -------------------------------------------------------------------------

    async def login(self) -> str:
        """Log in with the configured credentials.

        Returns:
            The new token.

        Raises:
            AuthPermanentlyFailedError: If the session is (or just became)
                permanently failed.
            OmletError: If this login attempt failed below the attempt limit.
        """
        async with self._lock:
            return await self._login()

    async def _login(self) -> str:
        self._check_not_failed()

        if self._credentials is None:
            self._breaker.trip("no credentials configured")
            msg = "Token rejected and no credentials are configured to log in again"
            raise AuthPermanentlyFailedError(msg)

        try:
            token = await self._auth.login(self._credentials)
        except OmletError as exc:
            self._breaker.record_failure(exc)
            if self._breaker.is_latched:
                _LOGGER.error(
                    "Login failed %d times, giving up. Verify email and password, then restart.",
                    self._breaker.failure_count,
                )
                msg = f"Authentication permanently failed after {self._breaker.failure_count} login attempts"
                raise AuthPermanentlyFailedError(msg) from exc
            _LOGGER.error(
                "Login failed (%d/%d): %s",
                self._breaker.failure_count,
                self.max_relogin_attempts,
                exc,
            )
            raise

        self._breaker.record_success()
        self._token = token
        self._persist()
        _LOGGER.info("Login successful, token acquired")
        return token

    async def recover(self, failed_token: str | None = None) -> bool:
        """Recover from an authorization failure reported by a downstream call.

        Args:
            failed_token: Token the failing call used. If the session token has
                changed since, another caller already recovered and no login
                is made.

        Returns:
            True if a usable token is now available and the caller may retry
            its operation once. False if this login attempt failed; the caller
            should not retry this cycle.

        Raises:
            AuthPermanentlyFailedError: If the session is, or just became,
                permanently failed.
        """
        self._check_not_failed()

        async with self._lock:
            self._check_not_failed()

            if failed_token is not None and self._token is not None and self._token != failed_token:
                _LOGGER.debug("Token already refreshed by a concurrent recovery")
                return True

            if self._credentials is None and self._manual_token and self._token != self._manual_token:
                _LOGGER.warning("Stored token rejected, falling back to configured bearer token")
                self._token = self._manual_token
                self._persist()
                return True

            _LOGGER.warning(
                "Authentication error detected, attempting to re-login (attempt %d/%d)",
                self._breaker.failure_count + 1,
                self.max_relogin_attempts,
            )
            try:
                await self._login()
            except AuthPermanentlyFailedError:
                raise
            except OmletError as exc:
                _LOGGER.warning("Re-login failed: %s", exc)
                return False

        _LOGGER.info("Re-login successful")
        return True

    async def call_with_recovery(self, operation: Callable[[str], Awaitable[_T]]) -> _T:
        """Run a token-consuming operation, recovering once from 401/403.

        Args:
            operation: Coroutine function taking the bearer token.

        Returns:
            The operation's result.

        Raises:
            AuthPermanentlyFailedError: If the session is permanently failed.
            AuthenticationError: If the token was rejected and recovery failed,
                or the retry was rejected too.
            OmletError: Any other failure of the operation.
        """
        self._check_not_failed()
        token = self._token
        if token is not None:
            try:
                return await operation(token)
            except AuthenticationError:
                if not await self.recover(token):
                    raise
        elif not await self.recover():
            msg = "No auth token available"
            raise AuthenticationError(msg)

        return await operation(self.require_token())
