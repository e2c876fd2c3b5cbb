"""Parsing utilities for Omlet API responses.

This module provides stateless functions used by the auth and device clients
to convert raw API responses into data models. The vendor API has shipped
several response shapes over time, so the parsers accept every shape seen in
the wild and only fail when the field that matters is missing.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any

from pyomlet.const import (
    BATTERY_LEVEL_MAX,
    BATTERY_LEVEL_MIN,
    DEFAULT_DEVICE_NAME,
    DEFAULT_DEVICE_TYPE,
    UNKNOWN_INFO_VALUE,
)
from pyomlet.exceptions import MalformedResponseError
from pyomlet.models import DeviceSnapshot, DeviceSummary, DoorState, LightState


__all__ = [
    "parse_device_list",
    "parse_device_snapshot",
    "parse_door_state",
    "parse_light_state",
    "parse_login_token",
]

TOKEN_KEYS = ("apiKey", "api_key", "token")

_DOOR_STATES = {state.value: state for state in DoorState}
_LIGHT_STATES = {state.value: state for state in LightState}


def parse_login_token(data: Any) -> str:
    """Extract the bearer token from a login response.

    Tokens have been returned as ``apiKey``, ``api_key`` or ``token``, either
    at the top level or nested under ``data``.

    Args:
        data: Decoded JSON body of the login response.

    Returns:
        The bearer token.

    Raises:
        MalformedResponseError: If no token can be found.
    """
    if not isinstance(data, dict):
        msg = f"Login response is not an object: {type(data).__name__}"
        raise MalformedResponseError(msg)

    candidates: list[dict[str, Any]] = []
    nested = data.get("data")
    if isinstance(nested, dict):
        candidates.append(nested)
    candidates.append(data)

    for candidate in candidates:
        for key in TOKEN_KEYS:
            token = candidate.get(key)
            if isinstance(token, str) and token:
                return token

    msg = f"No token found in login response. Response keys: {', '.join(sorted(data))}"
    raise MalformedResponseError(msg)


def _parse_device_summary(entry: Any) -> DeviceSummary | None:
    if not isinstance(entry, dict):
        return None

    device_id = entry.get("deviceId")
    if not device_id:
        return None

    return DeviceSummary(
        device_id=str(device_id),
        name=entry.get("name") or DEFAULT_DEVICE_NAME,
        device_type=entry.get("deviceType") or DEFAULT_DEVICE_TYPE,
    )


def parse_device_list(data: Any) -> list[DeviceSummary]:
    """Parse the account's device listing.

    Three response shapes are accepted:
    - a bare array of devices: ``[{"deviceId": ...}, ...]``
    - a wrapped array: ``{"data": [{"deviceId": ...}, ...]}``
    - grouped devices: ``{"groups": [{"devices": [{"deviceId": ...}]}]}``

    Entries without a ``deviceId`` are skipped.

    Args:
        data: Decoded JSON body of the listing response.

    Returns:
        List of DeviceSummary instances in response order.

    Raises:
        MalformedResponseError: If no device array can be found.
    """
    entries: list[Any]
    if isinstance(data, list):
        entries = data
    elif isinstance(data, dict) and isinstance(data.get("data"), list):
        entries = data["data"]
    elif isinstance(data, dict) and isinstance(data.get("groups"), list):
        entries = []
        for group in data["groups"]:
            if isinstance(group, dict) and isinstance(group.get("devices"), list):
                entries.extend(group["devices"])
    else:
        shape = sorted(data) if isinstance(data, dict) else type(data).__name__
        msg = f"No devices array found in response: {shape}"
        raise MalformedResponseError(msg)

    devices: list[DeviceSummary] = []
    for entry in entries:
        summary = _parse_device_summary(entry)
        if summary is not None:
            devices.append(summary)
    return devices


def parse_door_state(value: Any) -> DoorState:
    """Map a vendor door state to DoorState.

    Unrecognized values map to STOPPING, which never reports the door as closed.

    Args:
        value: Raw door state string.

    Returns:
        Normalized DoorState.
    """
    if isinstance(value, str):
        state = _DOOR_STATES.get(value.strip().lower())
        if state is not None and state is not DoorState.UNKNOWN:
            return state
    return DoorState.STOPPING


def parse_light_state(value: Any) -> LightState:
    """Map a vendor light state to LightState.

    Args:
        value: Raw light state string (``on``, ``off``, ``onpending``).

    Returns:
        Normalized LightState, UNKNOWN for anything unrecognized.
    """
    if isinstance(value, str):
        return _LIGHT_STATES.get(value.strip().lower(), LightState.UNKNOWN)
    return LightState.UNKNOWN


def _parse_battery_level(value: Any) -> int | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        level = int(float(value))
    except (TypeError, ValueError):
        return None
    return max(BATTERY_LEVEL_MIN, min(BATTERY_LEVEL_MAX, level))


def parse_device_snapshot(device_id: str, data: Any) -> DeviceSnapshot:
    """Parse a device state response into a DeviceSnapshot.

    Expected format::

        {
            "deviceId": "...",
            "name": "Coop",
            "deviceSerial": "...",
            "state": {
                "general": {"batteryLevel": 87, "firmwareVersionCurrent": "1.0.23"},
                "door": {"state": "closed"},
                "light": {"state": "off"}
            }
        }

    Args:
        device_id: Device the response belongs to.
        data: Decoded JSON body of the device response.

    Returns:
        DeviceSnapshot stamped with the current time.

    Raises:
        MalformedResponseError: If ``state.door.state`` is missing. The door
            state is never defaulted.
    """
    if isinstance(data, dict) and "state" not in data and isinstance(data.get("data"), dict):
        data = data["data"]

    if not isinstance(data, dict):
        msg = f"Device response is not an object: {type(data).__name__}"
        raise MalformedResponseError(msg)

    state = data.get("state")
    if not isinstance(state, dict):
        state = {}
    door = state.get("door")
    if not isinstance(door, dict) or door.get("state") is None:
        msg = f"Device {device_id} response is missing state.door.state"
        raise MalformedResponseError(msg)

    light = state.get("light")
    general = state.get("general")
    if not isinstance(general, dict):
        general = {}

    return DeviceSnapshot(
        device_id=device_id,
        name=data.get("name") or DEFAULT_DEVICE_NAME,
        door_state=parse_door_state(door.get("state")),
        light_state=parse_light_state(light.get("state") if isinstance(light, dict) else None),
        battery_level=_parse_battery_level(general.get("batteryLevel")),
        serial=str(data.get("deviceSerial") or UNKNOWN_INFO_VALUE),
        firmware_version=str(general.get("firmwareVersionCurrent") or UNKNOWN_INFO_VALUE),
        fetched_at=datetime.now(UTC),
    )
