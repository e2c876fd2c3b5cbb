"""Credential cache persisted between runs."""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path

from pyomlet.models import StoredCredentials


_LOGGER = logging.getLogger(__name__)


class CredentialStore:
    """Durable key/value store for the current token and device id.

    The store is read once at startup and written whenever the token or the
    device id changes. A missing or unreadable file is treated as empty so a
    corrupt cache never prevents startup; the next login rewrites it.

    Example:
        ```python
        store = CredentialStore(Path("~/.omlet/credentials.json").expanduser())
        cached = store.load()
        store.save(StoredCredentials(token="abc", device_id=cached.device_id))
        ```

    Attributes:
        path: Location of the JSON cache file.
    """

    def __init__(self, path: Path | str) -> None:
        """Initialize the store.

        Args:
            path: Location of the JSON cache file.
        """
        self.path = Path(path)

    def load(self) -> StoredCredentials:
        """Load cached credentials.

        Returns:
            StoredCredentials; both fields are None if nothing is cached.
        """
        try:
            raw = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            _LOGGER.debug("No credential cache at %s", self.path)
            return StoredCredentials()
        except OSError as exc:
            _LOGGER.warning("Could not read credential cache %s: %s", self.path, exc)
            return StoredCredentials()

        try:
            data = json.loads(raw)
        except json.JSONDecodeError as exc:
            _LOGGER.warning("Ignoring corrupt credential cache %s: %s", self.path, exc)
            return StoredCredentials()

        if not isinstance(data, dict):
            _LOGGER.warning("Ignoring credential cache %s: expected an object", self.path)
            return StoredCredentials()

        token = data.get("token")
        device_id = data.get("deviceId")
        return StoredCredentials(
            token=token if isinstance(token, str) and token else None,
            device_id=device_id if isinstance(device_id, str) and device_id else None,
        )

    def save(self, credentials: StoredCredentials) -> None:
        """Persist credentials, replacing the previous cache atomically.

        Args:
            credentials: Token and device id to store.
        """
        self.path.parent.mkdir(parents=True, exist_ok=True)
        payload = {"token": credentials.token, "deviceId": credentials.device_id}

        tmp_path = self.path.with_name(f"{self.path.name}.tmp")
        tmp_path.write_text(json.dumps(payload, indent=2), encoding="utf-8")
        os.replace(tmp_path, self.path)
        _LOGGER.debug("Saved credential cache to %s", self.path)
