"""Device discovery example.

This example demonstrates:
- Logging in with a credential cache
- Listing every device on the account
- Selecting one device when the account has several
"""

import asyncio
import logging
import sys
from pathlib import Path

from pyomlet import OmletClient, OmletConfig


async def main() -> None:
    """List account devices and pick one."""
    logging.basicConfig(level=logging.INFO)

    config = OmletConfig(
        email="your@email.com",
        password="your_password",
        country_code="GB",
        storage_path=Path("~/.omlet/credentials.json").expanduser(),
    )

    async with OmletClient(config=config, auto_start=False) as client:
        devices = await client.discover_devices()
        print(f"Found {len(devices)} device(s)")
        for index, device in enumerate(devices, start=1):
            print(f"  {index}. {device.name} ({device.device_type}) id={device.device_id}")

        if client.device_id is None:
            if not devices:
                sys.exit("No devices on this account")
            # Remembered in the credential cache for the next run
            client.select_device(devices[0].device_id)

        print(f"\nSelected {client.device_id}")
        snapshot = await client.refresh()
        print(f"Door is {snapshot.door_state.value}, battery {snapshot.battery_level}%")


if __name__ == "__main__":
    asyncio.run(main())
