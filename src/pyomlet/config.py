"""Configuration for pyomlet clients.

Values are normally handed over by a setup layer that has already validated
their format. This module still normalizes them and rejects combinations
that cannot work (no credentials and no manual token, empty strings).
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Any

from pyomlet.const import (
    ABSOLUTE_MIN_POLL_INTERVAL,
    COUNTRY_CODE_LENGTH,
    DEFAULT_API_SERVER,
    DEFAULT_CONFIRMATION_DELAY,
    DEFAULT_COUNTRY_CODE,
    DEFAULT_MIN_POLL_INTERVAL,
    DEFAULT_POLL_INTERVAL,
    DEFAULT_TIMEOUT,
    MAX_POLL_INTERVAL,
)
from pyomlet.exceptions import InvalidParameterError
from pyomlet.models import Credentials


if TYPE_CHECKING:
    from collections.abc import Mapping

_LOGGER = logging.getLogger(__name__)

ENV_PREFIX = "OMLET_"

# camelCase keys used by plugin config files -> OmletConfig field names
_CONFIG_KEYS = {
    "email": "email",
    "password": "password",
    "countryCode": "country_code",
    "bearerToken": "bearer_token",
    "deviceId": "device_id",
    "apiServer": "api_server",
    "pollInterval": "poll_interval",
    "minPollInterval": "min_poll_interval",
    "confirmationDelay": "confirmation_delay",
    "requestTimeout": "request_timeout",
    "enableLight": "enable_light",
    "enableBattery": "enable_battery",
    "debug": "debug",
    "storagePath": "storage_path",
}

_BOOL_FIELDS = {"enable_light", "enable_battery", "debug"}
_INT_FIELDS = {"poll_interval", "min_poll_interval"}
_FLOAT_FIELDS = {"confirmation_delay", "request_timeout"}


def clamp_poll_interval(
    interval: float,
    minimum: float = DEFAULT_MIN_POLL_INTERVAL,
    maximum: float = MAX_POLL_INTERVAL,
) -> float:
    """Clamp a poll interval into [minimum, maximum].

    Args:
        interval: Requested interval in seconds.
        minimum: Smallest allowed interval.
        maximum: Largest allowed interval.

    Returns:
        The clamped interval.

    Example:
        >>> clamp_poll_interval(5)
        30
        >>> clamp_poll_interval(10000)
        300
    """
    clamped = max(minimum, min(maximum, interval))
    if clamped != interval:
        _LOGGER.warning("Poll interval %ss out of range, using %ss", interval, clamped)
    return clamped


def normalize_country_code(country_code: str | None) -> str:
    """Normalize a country code to its two-letter upper-case form.

    Raises:
        InvalidParameterError: If the code is not two letters.
    """
    code = (country_code or DEFAULT_COUNTRY_CODE).strip().upper()
    if len(code) != COUNTRY_CODE_LENGTH or not code.isalpha():
        msg = f"Country code must be a {COUNTRY_CODE_LENGTH}-letter code, got {country_code!r}"
        raise InvalidParameterError(msg, parameter_name="country_code", value=country_code)
    return code


def _parse_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ("1", "true", "yes", "on")
    return bool(value)


@dataclass
class OmletConfig:
    """Validated configuration for a single Omlet device session.

    Either ``email`` + ``password`` (auto-login) or ``bearer_token`` +
    ``device_id`` (manual token mode) must be provided.

    Attributes:
        email: Account email address.
        password: Account password.
        country_code: Two-letter account country code.
        bearer_token: Manually supplied token (manual token mode).
        device_id: Pre-known device id. Auto-discovered when omitted.
        api_server: API host name or base URL.
        poll_interval: Seconds between background polls, clamped on init.
        min_poll_interval: Lower clamp bound for poll_interval.
        confirmation_delay: Seconds between a command and its confirmation poll.
        request_timeout: Total timeout for a single HTTP request.
        enable_light: Whether the light feature is exposed.
        enable_battery: Whether the battery feature is exposed.
        debug: Enable debug logging for the pyomlet logger.
        storage_path: Credential cache file; no persistence when None.
    """

    email: str | None = None
    password: str | None = None
    country_code: str = DEFAULT_COUNTRY_CODE
    bearer_token: str | None = None
    device_id: str | None = None
    api_server: str = DEFAULT_API_SERVER
    poll_interval: float = DEFAULT_POLL_INTERVAL
    min_poll_interval: float = DEFAULT_MIN_POLL_INTERVAL
    confirmation_delay: float = DEFAULT_CONFIRMATION_DELAY
    request_timeout: float = DEFAULT_TIMEOUT
    enable_light: bool = True
    enable_battery: bool = True
    debug: bool = False
    storage_path: Path | None = None

    def __post_init__(self) -> None:
        """Normalize and validate the configuration."""
        self.email = self.email.strip() if self.email else None
        self.password = self.password or None
        self.bearer_token = self.bearer_token.strip() if self.bearer_token else None
        self.device_id = self.device_id.strip() if self.device_id else None
        self.country_code = normalize_country_code(self.country_code)

        has_credentials = self.email is not None and self.password is not None
        has_manual_token = self.bearer_token is not None and self.device_id is not None
        if not has_credentials and not has_manual_token:
            msg = "Configuration requires email + password (auto-login) or bearer_token + device_id (manual)"
            raise InvalidParameterError(msg)

        if self.min_poll_interval < ABSOLUTE_MIN_POLL_INTERVAL:
            msg = f"Minimum poll interval must be at least {ABSOLUTE_MIN_POLL_INTERVAL}s, got {self.min_poll_interval}"
            raise InvalidParameterError(msg, parameter_name="min_poll_interval", value=self.min_poll_interval)

        self.poll_interval = clamp_poll_interval(self.poll_interval, self.min_poll_interval)

        if self.request_timeout <= 0:
            msg = f"Request timeout must be positive, got {self.request_timeout}"
            raise InvalidParameterError(msg, parameter_name="request_timeout", value=self.request_timeout)

        if self.confirmation_delay < 0:
            msg = f"Confirmation delay cannot be negative, got {self.confirmation_delay}"
            raise InvalidParameterError(msg, parameter_name="confirmation_delay", value=self.confirmation_delay)

        if self.storage_path is not None:
            self.storage_path = Path(self.storage_path)

    @property
    def credentials(self) -> Credentials | None:
        """Get login credentials, or None in manual token mode."""
        if self.email is None or self.password is None:
            return None
        return Credentials(
            email_address=self.email,
            password=self.password,
            country_code=self.country_code,
        )

    @property
    def base_url(self) -> str:
        """Get the API base URL, adding https:// to a bare host name."""
        server = self.api_server.strip().rstrip("/")
        if "://" not in server:
            server = f"https://{server}"
        return server

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> OmletConfig:
        """Build a config from a plugin-style mapping.

        Accepts both camelCase plugin keys (``countryCode``, ``pollInterval``)
        and snake_case field names. Unknown keys are ignored.

        Args:
            data: Configuration mapping, e.g. a parsed config.json section.

        Returns:
            Validated OmletConfig.
        """
        field_names = set(_CONFIG_KEYS.values())
        kwargs: dict[str, Any] = {}
        for key, value in data.items():
            name = _CONFIG_KEYS.get(key, key)
            if name not in field_names or value is None or value == "":
                continue
            if name in _BOOL_FIELDS:
                value = _parse_bool(value)
            elif name in _INT_FIELDS:
                value = int(value)
            elif name in _FLOAT_FIELDS:
                value = float(value)
            elif name == "storage_path":
                value = Path(value)
            kwargs[name] = value
        return cls(**kwargs)

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> OmletConfig:
        """Build a config from ``OMLET_*`` environment variables.

        ``OMLET_EMAIL``, ``OMLET_PASSWORD``, ``OMLET_POLL_INTERVAL`` and so on
        map onto the field of the same name.

        Args:
            environ: Environment mapping. Defaults to ``os.environ``.

        Returns:
            Validated OmletConfig.
        """
        source = os.environ if environ is None else environ
        data = {
            key[len(ENV_PREFIX) :].lower(): value
            for key, value in source.items()
            if key.startswith(ENV_PREFIX)
        }
        return cls.from_dict(data)
