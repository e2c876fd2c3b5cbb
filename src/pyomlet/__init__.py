"""Python client library for Omlet Smart Coop devices.

This package manages the authenticated session and the observable state of a
single Omlet Smart Autodoor through the Omlet cloud API.

The library is organized into three layers:
1. **API Layer** (pyomlet.api, pyomlet.auth, pyomlet.devices): HTTP calls for
   login, device listing, device state and device actions
2. **Session Layer** (pyomlet.session): Token ownership, auto-discovery and
   bounded re-login recovery
3. **Cache Layer** (pyomlet.coordinator): Poll loop, cached reads and commands
   with optimistic updates

Example:
    Basic usage:

    ```python
    from pyomlet import OmletClient

    async with OmletClient(email="user@example.com", password="password") as client:
        # Cached read (refreshes once on a cold start)
        door = await client.read("door_state")

        # Command with optimistic update
        await client.open_door()
        print(client.snapshot.door_state)  # DoorState.OPENING
    ```
"""

from __future__ import annotations

from pyomlet.api import OmletAPI
from pyomlet.auth import AuthClient
from pyomlet.client import OmletClient
from pyomlet.config import OmletConfig, clamp_poll_interval
from pyomlet.coordinator import PollCoordinator
from pyomlet.devices import DeviceClient
from pyomlet.exceptions import (
    AuthenticationError,
    AuthPermanentlyFailedError,
    DeviceNotConfiguredError,
    InvalidParameterError,
    MalformedResponseError,
    OmletConnectionError,
    OmletError,
    OmletTimeoutError,
    RequestRejectedError,
    TransientError,
)
from pyomlet.models import (
    Credentials,
    DeviceAction,
    DeviceSnapshot,
    DeviceSummary,
    DoorState,
    LightState,
    PendingCommand,
    StoredCredentials,
)
from pyomlet.resilience import CircuitBreaker
from pyomlet.session import SessionManager
from pyomlet.storage import CredentialStore


__version__ = "0.1.0"

__all__ = [
    "AuthClient",
    "AuthPermanentlyFailedError",
    "AuthenticationError",
    "CircuitBreaker",
    "CredentialStore",
    "Credentials",
    "DeviceAction",
    "DeviceClient",
    "DeviceNotConfiguredError",
    "DeviceSnapshot",
    "DeviceSummary",
    "DoorState",
    "InvalidParameterError",
    "LightState",
    "MalformedResponseError",
    "OmletAPI",
    "OmletClient",
    "OmletConfig",
    "OmletConnectionError",
    "OmletError",
    "OmletTimeoutError",
    "PendingCommand",
    "PollCoordinator",
    "RequestRejectedError",
    "SessionManager",
    "StoredCredentials",
    "TransientError",
    "__version__",
    "clamp_poll_interval",
]
