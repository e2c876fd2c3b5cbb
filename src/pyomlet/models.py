"""Data models for Omlet API requests and responses."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum


__all__ = [
    "Credentials",
    "DeviceAction",
    "DeviceSnapshot",
    "DeviceSummary",
    "DoorState",
    "LightState",
    "PendingCommand",
    "StoredCredentials",
]


class DoorState(Enum):
    """Normalized door states."""

    OPEN = "open"
    CLOSED = "closed"
    OPENING = "opening"
    CLOSING = "closing"
    STOPPING = "stopping"  # Stopped mid-travel or reported an unknown state
    UNKNOWN = "unknown"


class LightState(Enum):
    """Normalized light states."""

    ON = "on"
    OFF = "off"
    ON_PENDING = "onpending"
    UNKNOWN = "unknown"


class DeviceAction(Enum):
    """Actions accepted by the device action endpoint."""

    OPEN = "open"
    CLOSE = "close"
    LIGHT_ON = "on"
    LIGHT_OFF = "off"

    @property
    def is_light_action(self) -> bool:
        """Check if this action targets the light rather than the door."""
        return self in (DeviceAction.LIGHT_ON, DeviceAction.LIGHT_OFF)


@dataclass(frozen=True)
class Credentials:
    """Account credentials used for the login exchange.

    Attributes:
        email_address: Account email address.
        password: Account password.
        country_code: Two-letter country code (e.g., "US", "GB").
    """

    email_address: str
    password: str
    country_code: str

    def __repr__(self) -> str:
        """Return a representation that does not leak the password."""
        return f"Credentials(email_address={self.email_address!r}, country_code={self.country_code!r})"


@dataclass(frozen=True)
class DeviceSummary:
    """One entry of the account's device listing.

    Attributes:
        device_id: Unique device identifier.
        name: Human-readable device name.
        device_type: Vendor device type (e.g., "Autodoor").
    """

    device_id: str
    name: str
    device_type: str


@dataclass(frozen=True)
class DeviceSnapshot:
    """Immutable point-in-time read of device state.

    Snapshots are replaced wholesale, never mutated. Optimistic transitions
    derive a new snapshot with ``dataclasses.replace``.

    Attributes:
        device_id: Device the snapshot was read from.
        name: Device name as reported by the API.
        door_state: Normalized door state.
        light_state: Normalized light state.
        battery_level: Battery percentage (0-100), None if not reported.
        serial: Device serial number.
        firmware_version: Current firmware version.
        fetched_at: When the snapshot was read (UTC).
    """

    device_id: str
    name: str
    door_state: DoorState
    light_state: LightState = LightState.UNKNOWN
    battery_level: int | None = None
    serial: str = "unknown"
    firmware_version: str = "unknown"
    fetched_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    @property
    def is_door_open(self) -> bool:
        """Check if the door is open or opening."""
        return self.door_state in (DoorState.OPEN, DoorState.OPENING)

    @property
    def is_light_on(self) -> bool:
        """Check if the light is on or switching on."""
        return self.light_state in (LightState.ON, LightState.ON_PENDING)


@dataclass(frozen=True)
class StoredCredentials:
    """Credential cache record persisted between runs.

    Attributes:
        token: Last known bearer token.
        device_id: Last selected device id.
    """

    token: str | None = None
    device_id: str | None = None


@dataclass(frozen=True)
class PendingCommand:
    """Command awaiting its confirmation poll.

    Attributes:
        target_action: Action that was issued.
        issued_at: When the action was accepted by the API.
    """

    target_action: DeviceAction
    issued_at: datetime = field(default_factory=lambda: datetime.now(UTC))
