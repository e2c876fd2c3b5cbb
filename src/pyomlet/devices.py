"""Device client for reading state from and sending actions to one device."""

from __future__ import annotations

import logging
from http import HTTPStatus
from typing import TYPE_CHECKING

from pyomlet.auth import raise_for_status
from pyomlet.const import DEVICE_ACTION_PATH, DEVICE_PATH
from pyomlet.exceptions import InvalidParameterError
from pyomlet.models import DeviceAction
from pyomlet.parsers import parse_device_snapshot


if TYPE_CHECKING:
    from pyomlet.api import OmletAPI
    from pyomlet.models import DeviceSnapshot

_LOGGER = logging.getLogger(__name__)


def _require(value: str, name: str) -> None:
    if not value:
        msg = f"{name} must not be empty"
        raise InvalidParameterError(msg, parameter_name=name, value=value)


class DeviceClient:
    """Read state and issue actions against a device id with a supplied token."""

    def __init__(self, api: OmletAPI) -> None:
        """Initialize the device client.

        Args:
            api: Transport used for HTTP calls.
        """
        self._api = api

    async def read_state(self, token: str, device_id: str) -> DeviceSnapshot:
        """Read the device state.

        Args:
            token: Bearer token.
            device_id: Device to read.

        Returns:
            A fresh DeviceSnapshot.

        Raises:
            InvalidParameterError: If the token or device id is empty.
            AuthenticationError: If the token is rejected (401/403).
            RequestRejectedError: For any other non-200 status.
            MalformedResponseError: If the response lacks the door state.
            OmletTimeoutError: If the request times out.
            OmletConnectionError: If a connection error occurs.
        """
        _require(token, "token")
        _require(device_id, "device_id")

        status, data = await self._api.request("GET", DEVICE_PATH.format(device_id=device_id), token=token)
        raise_for_status(status, f"Reading device {device_id}")

        snapshot = parse_device_snapshot(device_id, data)
        _LOGGER.debug(
            "Device %s: door=%s light=%s battery=%s",
            device_id,
            snapshot.door_state.value,
            snapshot.light_state.value,
            snapshot.battery_level,
        )
        return snapshot

    async def issue_action(self, token: str, device_id: str, action: DeviceAction | str) -> None:
        """Issue an action to the device.

        Args:
            token: Bearer token.
            device_id: Target device.
            action: One of ``open``, ``close``, ``on``, ``off``.

        Raises:
            InvalidParameterError: If the token, device id or action is invalid.
            AuthenticationError: If the token is rejected (401/403).
            RequestRejectedError: For any status other than 200/204.
            OmletTimeoutError: If the request times out.
            OmletConnectionError: If a connection error occurs.
        """
        _require(token, "token")
        _require(device_id, "device_id")

        try:
            action = DeviceAction(action)
        except ValueError:
            valid = ", ".join(a.value for a in DeviceAction)
            msg = f"Action must be one of {valid}, got {action!r}"
            raise InvalidParameterError(msg, parameter_name="action", value=action) from None

        endpoint = DEVICE_ACTION_PATH.format(device_id=device_id, action=action.value)
        status, _ = await self._api.request("POST", endpoint, token=token, json_data={})
        raise_for_status(
            status,
            f"Action {action.value} on device {device_id}",
            accepted=(HTTPStatus.OK, HTTPStatus.NO_CONTENT),
        )

        _LOGGER.debug("Device %s accepted action %s", device_id, action.value)
