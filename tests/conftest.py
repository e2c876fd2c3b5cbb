"""Pytest configuration and shared fixtures."""

from __future__ import annotations

from http import HTTPStatus
from typing import TYPE_CHECKING, Any
from unittest.mock import AsyncMock, MagicMock

import pytest
from aiohttp import ClientSession, web

from pyomlet.api import OmletAPI
from pyomlet.models import Credentials, DeviceSnapshot, DoorState, LightState


if TYPE_CHECKING:
    from collections.abc import AsyncGenerator, Callable

    from aiohttp.test_utils import TestClient


def make_device_payload(
    door: str = "closed",
    light: str = "off",
    battery: int | None = 87,
    serial: str | None = "OMLET-123",
    firmware: str | None = "1.0.23",
) -> dict[str, Any]:
    """Build a device state response body."""
    general: dict[str, Any] = {}
    if battery is not None:
        general["batteryLevel"] = battery
    if firmware is not None:
        general["firmwareVersionCurrent"] = firmware

    payload: dict[str, Any] = {
        "deviceId": "device-1",
        "name": "Coop",
        "deviceType": "Autodoor",
        "state": {
            "general": general,
            "door": {"state": door},
            "light": {"state": light},
        },
    }
    if serial is not None:
        payload["deviceSerial"] = serial
    return payload


def make_snapshot(
    door_state: DoorState = DoorState.CLOSED,
    light_state: LightState = LightState.OFF,
    **kwargs: Any,
) -> DeviceSnapshot:
    """Build a DeviceSnapshot with sensible defaults."""
    values: dict[str, Any] = {
        "device_id": "device-1",
        "name": "Coop",
        "battery_level": 87,
        "serial": "OMLET-123",
        "firmware_version": "1.0.23",
    }
    values.update(kwargs)
    return DeviceSnapshot(door_state=door_state, light_state=light_state, **values)


@pytest.fixture
def credentials() -> Credentials:
    """Create sample credentials."""
    return Credentials(email_address="test@example.com", password="password123", country_code="GB")


@pytest.fixture
def device_payload() -> dict[str, Any]:
    """Create a sample device state response."""
    return make_device_payload()


@pytest.fixture
def payload_factory() -> Callable[..., dict[str, Any]]:
    """Provide the device response builder."""
    return make_device_payload


@pytest.fixture
def snapshot_factory() -> Callable[..., DeviceSnapshot]:
    """Provide the DeviceSnapshot builder."""
    return make_snapshot


@pytest.fixture
async def mock_session() -> AsyncGenerator[ClientSession]:
    """Create a mock aiohttp ClientSession.

    Yields:
        Mock ClientSession for testing.
    """
    session = AsyncMock(spec=ClientSession)
    session.closed = False

    async def mock_close() -> None:
        session.closed = True

    session.close = mock_close

    yield session

    if not session.closed:
        await session.close()


@pytest.fixture
def mock_response() -> MagicMock:
    """Create a mock aiohttp ClientResponse usable as an async context manager.

    Returns:
        Mock ClientResponse for testing.
    """
    response = MagicMock()
    response.status = 200
    response.headers = {}
    response.json = AsyncMock(return_value={})
    response.text = AsyncMock(return_value="")
    response.__aenter__ = AsyncMock(return_value=response)
    response.__aexit__ = AsyncMock(return_value=None)
    return response


class FakeOmletServer:
    """In-process stand-in for the Omlet cloud API.

    Issues sequential tokens on login, rejects any token not issued (or
    expired), and serves one device whose state can be changed by tests.
    """

    def __init__(self) -> None:
        self.valid_tokens: set[str] = set()
        self.login_status = HTTPStatus.OK
        self.read_status = HTTPStatus.OK
        self.action_status = HTTPStatus.NO_CONTENT
        self.devices: list[dict[str, Any]] = [{"deviceId": "device-1", "name": "Coop", "deviceType": "Autodoor"}]
        self.payload = make_device_payload()
        self.login_calls = 0
        self.read_calls = 0
        self.login_bodies: list[dict[str, Any]] = []
        self.actions: list[tuple[str, str]] = []

    def expire_tokens(self) -> None:
        """Invalidate every token issued so far."""
        self.valid_tokens.clear()

    def set_door(self, door: str) -> None:
        """Change the door state the device reports."""
        self.payload["state"]["door"]["state"] = door

    def _authorized(self, request: web.Request) -> bool:
        header = request.headers.get("Authorization", "")
        return header.removeprefix("Bearer ") in self.valid_tokens

    async def login(self, request: web.Request) -> web.Response:
        self.login_calls += 1
        self.login_bodies.append(await request.json())
        if self.login_status != HTTPStatus.OK:
            return web.Response(status=self.login_status)
        token = f"token-{self.login_calls}"
        self.valid_tokens.add(token)
        return web.json_response({"apiKey": token})

    async def list_devices(self, request: web.Request) -> web.Response:
        if not self._authorized(request):
            return web.Response(status=HTTPStatus.UNAUTHORIZED)
        return web.json_response(self.devices)

    async def read_device(self, request: web.Request) -> web.Response:
        self.read_calls += 1
        if not self._authorized(request):
            return web.Response(status=HTTPStatus.UNAUTHORIZED)
        if self.read_status != HTTPStatus.OK:
            return web.Response(status=self.read_status)
        return web.json_response(self.payload)

    async def device_action(self, request: web.Request) -> web.Response:
        if not self._authorized(request):
            return web.Response(status=HTTPStatus.UNAUTHORIZED)
        self.actions.append((request.match_info["device_id"], request.match_info["action"]))
        return web.Response(status=self.action_status)

    def make_app(self) -> web.Application:
        """Build the aiohttp application serving the fake API."""
        app = web.Application()
        app.router.add_post("/api/v1/login", self.login)
        app.router.add_get("/api/v1/group", self.list_devices)
        app.router.add_get("/api/v1/device/{device_id}", self.read_device)
        app.router.add_post("/api/v1/device/{device_id}/action/{action}", self.device_action)
        return app


@pytest.fixture
def fake_server() -> FakeOmletServer:
    """Create the fake Omlet API state."""
    return FakeOmletServer()


@pytest.fixture
async def omlet_test_client(aiohttp_client: Any, fake_server: FakeOmletServer) -> TestClient:
    """Serve the fake Omlet API over a real local socket."""
    return await aiohttp_client(fake_server.make_app())


@pytest.fixture
async def api(omlet_test_client: TestClient) -> AsyncGenerator[OmletAPI]:
    """Create an OmletAPI bound to the fake server."""
    async with OmletAPI(
        session=omlet_test_client.session,
        base_url=str(omlet_test_client.make_url("")),
    ) as api:
        yield api
