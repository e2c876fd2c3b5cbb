"""High-level client for a single Omlet Smart Autodoor.

This module wires the transport, auth and device clients, the session manager
and the poll coordinator together behind one async context manager.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from pyomlet.api import OmletAPI
from pyomlet.auth import AuthClient
from pyomlet.config import OmletConfig
from pyomlet.coordinator import PollCoordinator, SnapshotListener
from pyomlet.devices import DeviceClient
from pyomlet.models import DeviceAction
from pyomlet.session import SessionManager
from pyomlet.storage import CredentialStore


if TYPE_CHECKING:
    from types import TracebackType

    from aiohttp import ClientSession

    from pyomlet.models import DeviceSnapshot, DeviceSummary

_LOGGER = logging.getLogger(__name__)


class OmletClient:
    """Session and polling manager for one Omlet device.

    Entering the context manager opens the HTTP session, restores or acquires
    a token, selects the device (auto-discovering it if needed) and starts
    background polling. Reads are answered from the poll cache; commands are
    sent at once and reflected optimistically.

    Example:
        Basic usage:

        ```python
        from pyomlet import OmletClient

        async with OmletClient(email="user@example.com", password="password", country_code="GB") as client:
            print(await client.read("door_state"))
            await client.open_door()  # reads as OPENING until confirmed
        ```

        From a plugin-style config mapping, with a credential cache:

        ```python
        config = OmletConfig.from_dict(
            {"email": "user@example.com", "password": "pw", "pollInterval": 60, "storagePath": "omlet.json"}
        )

        async with OmletClient(config=config) as client:
            client.add_listener(lambda snap: print(snap.door_state))
            await asyncio.sleep(3600)
        ```
    """

    def __init__(
        self,
        email: str | None = None,
        password: str | None = None,
        *,
        config: OmletConfig | None = None,
        session: ClientSession | None = None,
        store: CredentialStore | None = None,
        auto_start: bool = True,
        **options: Any,
    ) -> None:
        """Initialize the client.

        Args:
            email: Account email address (ignored when config is given).
            password: Account password (ignored when config is given).
            config: Complete configuration. Built from email, password and
                options when omitted.
            session: Optional aiohttp ClientSession. If not provided, one will be
                created when entering the context manager.
            store: Credential cache. Defaults to a CredentialStore at
                config.storage_path, or no persistence.
            auto_start: Start background polling when entering the context.
            **options: Further OmletConfig fields (country_code, device_id,
                bearer_token, poll_interval, ...).
        """
        if config is None:
            config = OmletConfig(email=email, password=password, **options)
        self._config = config
        self._auto_start = auto_start

        if config.debug:
            logging.getLogger("pyomlet").setLevel(logging.DEBUG)
            _LOGGER.info("Debug mode enabled")

        if store is None and config.storage_path is not None:
            store = CredentialStore(config.storage_path)

        self._api = OmletAPI(session=session, base_url=config.base_url, timeout=config.request_timeout)
        self._auth = AuthClient(self._api)
        self._device_client = DeviceClient(self._api)
        self._session_manager = SessionManager(
            self._auth,
            credentials=config.credentials,
            manual_token=config.bearer_token,
            device_id=config.device_id,
            store=store,
        )
        self._coordinator = PollCoordinator(
            self._session_manager,
            self._device_client,
            poll_interval=config.poll_interval,
            confirmation_delay=config.confirmation_delay,
            enable_light=config.enable_light,
            enable_battery=config.enable_battery,
        )

    # -------------------------------------------------------------------------
    # Components
    # -------------------------------------------------------------------------

    @property
    def config(self) -> OmletConfig:
        """Get the client configuration."""
        return self._config

    @property
    def api(self) -> OmletAPI:
        """Get the underlying HTTP transport."""
        return self._api

    @property
    def session_manager(self) -> SessionManager:
        """Get the session manager owning the token."""
        return self._session_manager

    @property
    def coordinator(self) -> PollCoordinator:
        """Get the poll coordinator owning the state cache."""
        return self._coordinator

    @property
    def device_id(self) -> str | None:
        """Get the selected device id."""
        return self._session_manager.device_id

    @property
    def snapshot(self) -> DeviceSnapshot | None:
        """Get the cached snapshot without triggering a refresh."""
        return self._coordinator.snapshot

    @property
    def available(self) -> bool:
        """Check if the device is reachable (authentication not permanently failed)."""
        return self._coordinator.available

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    async def __aenter__(self) -> OmletClient:
        """Enter the context manager.

        Returns:
            Self for use in async with statements.

        Raises:
            Exception: Re-raises any startup failure after cleaning up resources.
        """
        await self._api.__aenter__()
        try:
            await self._session_manager.initialize()
        except Exception:
            await self._api.close()
            raise

        if self._auto_start:
            self.start()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        """Exit the context manager, stopping polling and closing an owned session.

        Args:
            exc_type: Exception type if an exception occurred.
            exc_val: Exception value if an exception occurred.
            exc_tb: Exception traceback if an exception occurred.
        """
        await self._coordinator.stop()
        await self._api.__aexit__(exc_type, exc_val, exc_tb)

    def start(self) -> None:
        """Start background polling if a device is selected."""
        if self._session_manager.device_id is None:
            _LOGGER.warning("Polling not started: no device selected")
            return
        self._coordinator.start()

    async def stop(self) -> None:
        """Stop background polling and pending confirmations."""
        await self._coordinator.stop()

    # -------------------------------------------------------------------------
    # Devices
    # -------------------------------------------------------------------------

    async def discover_devices(self) -> list[DeviceSummary]:
        """List account devices, selecting the only one if there is exactly one.

        Returns:
            All devices on the account.
        """
        devices = await self._session_manager.discover_device()
        if self._auto_start and self._session_manager.device_id is not None:
            self._coordinator.start()
        return devices

    def select_device(self, device_id: str) -> None:
        """Select the device to manage when discovery found several.

        Args:
            device_id: Device id from discover_devices().
        """
        self._session_manager.select_device(device_id)
        if self._auto_start:
            self._coordinator.start()

    # -------------------------------------------------------------------------
    # Reads and commands
    # -------------------------------------------------------------------------

    async def read(self, selector: str | None = None) -> Any:
        """Read cached device state (refreshing once on a cold start).

        Args:
            selector: Snapshot field name, or None for the whole snapshot.

        Returns:
            The selected value or the DeviceSnapshot.
        """
        return await self._coordinator.read(selector)

    async def refresh(self) -> DeviceSnapshot:
        """Force a device read now."""
        return await self._coordinator.refresh()

    async def issue(self, action: DeviceAction | str) -> None:
        """Issue an action (``open``, ``close``, ``on``, ``off``)."""
        await self._coordinator.issue(action)

    async def open_door(self) -> None:
        """Open the coop door."""
        await self.issue(DeviceAction.OPEN)

    async def close_door(self) -> None:
        """Close the coop door."""
        await self.issue(DeviceAction.CLOSE)

    async def turn_light_on(self) -> None:
        """Turn the coop light on."""
        await self.issue(DeviceAction.LIGHT_ON)

    async def turn_light_off(self) -> None:
        """Turn the coop light off."""
        await self.issue(DeviceAction.LIGHT_OFF)

    def add_listener(self, callback: SnapshotListener) -> None:
        """Register a callback invoked with every new snapshot."""
        self._coordinator.add_listener(callback)

    def remove_listener(self, callback: SnapshotListener) -> None:
        """Unregister a snapshot callback."""
        self._coordinator.remove_listener(callback)

    def __repr__(self) -> str:
        """Return detailed string representation of the client."""
        return f"OmletClient(device_id={self.device_id!r}, available={self.available})"
