"""Integration tests for pyomlet library.

These tests use real account credentials from the .env file and call the
Omlet cloud API. They are marked with @pytest.mark.integration and deselected
by default.

To run integration tests:
    pytest tests/integration -v -m integration

Environment variables in .env:
    OMLET_EMAIL: Account email (required)
    OMLET_PASSWORD: Account password (required)
    OMLET_COUNTRY_CODE: Two-letter account country (optional, defaults to US)
    OMLET_DEVICE_ID: Device to use when the account has several (optional)
    OMLET_ALLOW_DOOR_CONTROL: Set to 1 to run tests that move the door
"""
