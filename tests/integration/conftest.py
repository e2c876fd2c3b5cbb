"""Pytest configuration and fixtures for integration tests."""

from __future__ import annotations

import asyncio
import os
from pathlib import Path
from typing import TYPE_CHECKING

import pytest
from dotenv import load_dotenv

from pyomlet import OmletConfig


if TYPE_CHECKING:
    from collections.abc import AsyncGenerator


# Load .env file from project root
env_path = Path(__file__).parents[2] / ".env"
load_dotenv(env_path)


@pytest.fixture(scope="session")
def integration_config() -> OmletConfig:
    """Load integration test configuration from OMLET_* environment variables.

    Returns:
        OmletConfig with the account credentials.

    Raises:
        ValueError: If required environment variables are missing.
    """
    if not os.getenv("OMLET_EMAIL") or not os.getenv("OMLET_PASSWORD"):
        msg = "Missing required environment variables. Please create .env file with OMLET_EMAIL and OMLET_PASSWORD"
        raise ValueError(msg)

    return OmletConfig.from_env()


@pytest.fixture(scope="session")
def allow_door_control() -> bool:
    """Check whether tests may move the real door (OMLET_ALLOW_DOOR_CONTROL=1)."""
    return os.getenv("OMLET_ALLOW_DOOR_CONTROL", "").lower() in ("1", "true", "yes")


@pytest.fixture(autouse=True)
async def rate_limit_delay(request: pytest.FixtureRequest) -> AsyncGenerator[None]:
    """Pause after each integration test so the vendor API is not hammered."""
    yield
    if "integration" in request.keywords:
        await asyncio.sleep(2.0)
