"""Tests for response parsing utilities."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

import pytest

from pyomlet.exceptions import MalformedResponseError
from pyomlet.models import DoorState, LightState
from pyomlet.parsers import (
    parse_device_list,
    parse_device_snapshot,
    parse_door_state,
    parse_light_state,
    parse_login_token,
)


class TestParseLoginToken:
    """Test token extraction from login responses."""

    @pytest.mark.parametrize(
        "response",
        [
            {"apiKey": "token-abc"},
            {"api_key": "token-abc"},
            {"token": "token-abc"},
            {"data": {"apiKey": "token-abc"}},
            {"data": {"token": "token-abc"}, "status": "ok"},
        ],
    )
    def test_extracts_token_from_known_shapes(self, response: dict[str, Any]) -> None:
        """Test every historical response shape yields the token."""
        assert parse_login_token(response) == "token-abc"

    def test_nested_token_preferred(self) -> None:
        """Test a token under data wins over a top-level one."""
        assert parse_login_token({"data": {"apiKey": "nested"}, "token": "top"}) == "nested"

    def test_missing_token_is_malformed(self) -> None:
        """Test a response without a token raises MalformedResponseError."""
        with pytest.raises(MalformedResponseError, match="No token found"):
            parse_login_token({"user": "someone"})

    def test_empty_token_is_malformed(self) -> None:
        """Test an empty token string is not accepted."""
        with pytest.raises(MalformedResponseError):
            parse_login_token({"apiKey": ""})

    def test_non_object_is_malformed(self) -> None:
        """Test a non-object body raises MalformedResponseError."""
        with pytest.raises(MalformedResponseError):
            parse_login_token(["token"])


class TestParseDeviceList:
    """Test parsing of the three device listing shapes."""

    def test_bare_array(self) -> None:
        """Test a bare array of devices."""
        devices = parse_device_list(
            [
                {"deviceId": "a", "name": "Coop A", "deviceType": "Autodoor"},
                {"deviceId": "b", "name": "Coop B", "deviceType": "Autodoor"},
            ]
        )

        assert [d.device_id for d in devices] == ["a", "b"]
        assert devices[0].name == "Coop A"
        assert devices[1].device_type == "Autodoor"

    def test_data_wrapper(self) -> None:
        """Test an array wrapped in a data object."""
        devices = parse_device_list({"data": [{"deviceId": "a", "name": "Coop"}]})

        assert len(devices) == 1
        assert devices[0].device_id == "a"

    def test_groups_shape(self) -> None:
        """Test devices nested inside groups are flattened."""
        devices = parse_device_list(
            {
                "groups": [
                    {"name": "Home", "devices": [{"deviceId": "a"}, {"deviceId": "b"}]},
                    {"name": "Empty"},
                    {"name": "Farm", "devices": [{"deviceId": "c"}]},
                ]
            }
        )

        assert [d.device_id for d in devices] == ["a", "b", "c"]

    def test_defaults_for_missing_name_and_type(self) -> None:
        """Test missing name and type fall back to defaults."""
        (device,) = parse_device_list([{"deviceId": "a"}])

        assert device.name == "Omlet Device"
        assert device.device_type == "unknown"

    def test_entries_without_id_are_skipped(self) -> None:
        """Test entries lacking a deviceId are ignored."""
        devices = parse_device_list([{"name": "ghost"}, "junk", {"deviceId": "a"}])

        assert [d.device_id for d in devices] == ["a"]

    def test_empty_array(self) -> None:
        """Test an empty listing returns no devices."""
        assert parse_device_list([]) == []

    def test_unknown_shape_is_malformed(self) -> None:
        """Test an object without any device array raises."""
        with pytest.raises(MalformedResponseError, match="No devices array"):
            parse_device_list({"devices": "nope"})


class TestParseStates:
    """Test vendor state string mapping."""

    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            ("open", DoorState.OPEN),
            ("closed", DoorState.CLOSED),
            ("opening", DoorState.OPENING),
            ("closing", DoorState.CLOSING),
            ("stopping", DoorState.STOPPING),
            ("OPEN", DoorState.OPEN),
        ],
    )
    def test_known_door_states(self, raw: str, expected: DoorState) -> None:
        """Test known door strings map to their enum."""
        assert parse_door_state(raw) is expected

    @pytest.mark.parametrize("raw", ["jammed", "", "unknown", None, 3])
    def test_unknown_door_state_maps_to_stopping(self, raw: Any) -> None:
        """Test anything unrecognized is reported as stopping, never closed."""
        assert parse_door_state(raw) is DoorState.STOPPING

    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            ("on", LightState.ON),
            ("off", LightState.OFF),
            ("onpending", LightState.ON_PENDING),
            ("flashing", LightState.UNKNOWN),
            (None, LightState.UNKNOWN),
        ],
    )
    def test_light_states(self, raw: Any, expected: LightState) -> None:
        """Test light strings map to their enum."""
        assert parse_light_state(raw) is expected


class TestParseDeviceSnapshot:
    """Test device state response parsing."""

    def test_full_response(self, device_payload: dict[str, Any]) -> None:
        """Test all fields are extracted."""
        snapshot = parse_device_snapshot("device-1", device_payload)

        assert snapshot.device_id == "device-1"
        assert snapshot.name == "Coop"
        assert snapshot.door_state is DoorState.CLOSED
        assert snapshot.light_state is LightState.OFF
        assert snapshot.battery_level == 87
        assert snapshot.serial == "OMLET-123"
        assert snapshot.firmware_version == "1.0.23"
        assert snapshot.fetched_at is not None

    def test_missing_door_state_is_malformed(self, device_payload: dict[str, Any]) -> None:
        """Test the door state is never defaulted."""
        del device_payload["state"]["door"]

        with pytest.raises(MalformedResponseError, match=r"state\.door\.state"):
            parse_device_snapshot("device-1", device_payload)

    def test_missing_state_is_malformed(self) -> None:
        """Test a response without state raises."""
        with pytest.raises(MalformedResponseError):
            parse_device_snapshot("device-1", {"deviceId": "device-1"})

    def test_data_wrapper_is_unwrapped(self, device_payload: dict[str, Any]) -> None:
        """Test a response wrapped in data is accepted."""
        snapshot = parse_device_snapshot("device-1", {"data": device_payload})

        assert snapshot.door_state is DoorState.CLOSED

    def test_optional_fields_default(self, payload_factory: Callable[..., dict[str, Any]]) -> None:
        """Test missing light, battery and info fields default safely."""
        payload = payload_factory(battery=None, serial=None, firmware=None)
        del payload["state"]["light"]

        snapshot = parse_device_snapshot("device-1", payload)

        assert snapshot.light_state is LightState.UNKNOWN
        assert snapshot.battery_level is None
        assert snapshot.serial == "unknown"
        assert snapshot.firmware_version == "unknown"

    @pytest.mark.parametrize(("raw", "expected"), [(150, 100), (-5, 0), ("42", 42), ("n/a", None)])
    def test_battery_level_is_clamped(
        self,
        payload_factory: Callable[..., dict[str, Any]],
        raw: Any,
        expected: int | None,
    ) -> None:
        """Test battery values are coerced into 0-100."""
        payload = payload_factory()
        payload["state"]["general"]["batteryLevel"] = raw

        assert parse_device_snapshot("device-1", payload).battery_level == expected

    def test_snapshot_is_immutable(self, device_payload: dict[str, Any]) -> None:
        """Test snapshots cannot be mutated in place."""
        snapshot = parse_device_snapshot("device-1", device_payload)

        with pytest.raises(AttributeError):
            snapshot.door_state = DoorState.OPEN  # type: ignore[misc]
