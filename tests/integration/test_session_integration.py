"""Integration tests for login, discovery and reads against the real Omlet API."""

from __future__ import annotations

from dataclasses import replace
from typing import TYPE_CHECKING

import pytest
from aiohttp import ClientSession

from pyomlet import OmletAPI, OmletClient
from pyomlet.auth import AuthClient
from pyomlet.exceptions import AuthenticationError
from pyomlet.models import Credentials, DoorState


if TYPE_CHECKING:
    from collections.abc import AsyncGenerator
    from pathlib import Path

    from pyomlet import OmletConfig


pytestmark = pytest.mark.integration


@pytest.fixture
async def session() -> AsyncGenerator[ClientSession]:
    """Create aiohttp session for tests."""
    async with ClientSession() as sess:
        yield sess


class TestAuthIntegration:
    """Integration tests for the login exchange."""

    async def test_login_and_list_devices(self, integration_config: OmletConfig, session: ClientSession) -> None:
        """Test real credentials yield a token and at least one device."""
        assert integration_config.credentials is not None
        auth = AuthClient(OmletAPI(session=session, base_url=integration_config.base_url))

        token = await auth.login(integration_config.credentials)
        devices = await auth.list_devices(token)

        assert token
        assert devices
        assert all(device.device_id for device in devices)

    async def test_wrong_password_rejected(self, integration_config: OmletConfig, session: ClientSession) -> None:
        """Test a wrong password is reported as an authentication failure."""
        auth = AuthClient(OmletAPI(session=session, base_url=integration_config.base_url))
        credentials = Credentials(
            email_address=integration_config.email or "",
            password="definitely-not-the-password",
            country_code=integration_config.country_code,
        )

        with pytest.raises(AuthenticationError):
            await auth.login(credentials)


class TestClientIntegration:
    """Integration tests for the full client."""

    async def test_read_state(self, integration_config: OmletConfig, session: ClientSession) -> None:
        """Test the client reads a plausible snapshot."""
        async with OmletClient(config=integration_config, session=session, auto_start=False) as client:
            if client.device_id is None:
                pytest.skip("Account has several devices; set OMLET_DEVICE_ID")

            snapshot = await client.refresh()

            assert snapshot.device_id == client.device_id
            assert snapshot.door_state is not DoorState.UNKNOWN
            assert snapshot.battery_level is None or 0 <= snapshot.battery_level <= 100

    async def test_cached_token_reused(
        self,
        integration_config: OmletConfig,
        session: ClientSession,
        tmp_path: Path,
    ) -> None:
        """Test a second client starts from the cached token."""
        config = replace(integration_config, storage_path=tmp_path / "omlet.json")

        async with OmletClient(config=config, session=session, auto_start=False) as first:
            token = first.session_manager.token

        async with OmletClient(config=config, session=session, auto_start=False) as second:
            assert second.session_manager.token == token
            if second.device_id is not None:
                await second.refresh()
