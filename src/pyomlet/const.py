"""Constants for pyomlet library."""

from __future__ import annotations


# API Configuration
DEFAULT_API_SERVER = "x107.omlet.co.uk"
DEFAULT_BASE_URL = f"https://{DEFAULT_API_SERVER}"
API_PREFIX = "/api/v1"
DEFAULT_TIMEOUT = 10  # seconds
DEFAULT_COUNTRY_CODE = "US"
COUNTRY_CODE_LENGTH = 2

# API Endpoints
LOGIN_PATH = "/login"
DEVICE_LIST_PATH = "/group"
DEVICE_PATH = "/device/{device_id}"
DEVICE_ACTION_PATH = "/device/{device_id}/action/{action}"

# Device Defaults
DEFAULT_DEVICE_NAME = "Omlet Device"
DEFAULT_DEVICE_TYPE = "unknown"
UNKNOWN_INFO_VALUE = "unknown"

# Battery
BATTERY_LEVEL_MIN = 0
BATTERY_LEVEL_MAX = 100

# Session / Re-login Circuit Breaker
MAX_RELOGIN_ATTEMPTS = 3

# Polling
DEFAULT_POLL_INTERVAL = 30  # seconds
DEFAULT_MIN_POLL_INTERVAL = 30  # seconds
ABSOLUTE_MIN_POLL_INTERVAL = 10  # seconds
MAX_POLL_INTERVAL = 300  # seconds
DEFAULT_CONFIRMATION_DELAY = 15.0  # seconds, door actuation time
