"""Basic usage example for pyomlet library."""

import asyncio

from pyomlet import OmletClient


async def main() -> None:
    """Demonstrate basic usage of pyomlet."""
    # Initialize client with credentials; the device is auto-discovered
    async with OmletClient(
        email="your@email.com",
        password="your_password",
        country_code="GB",
        confirmation_delay=15,
    ) as client:
        print(f"Connected, managing device {client.device_id}")

        snapshot = await client.read()
        print(f"\nDevice: {snapshot.name}")
        print(f"  Door:     {snapshot.door_state.value}")
        print(f"  Light:    {snapshot.light_state.value}")
        print(f"  Battery:  {snapshot.battery_level}%")
        print(f"  Serial:   {snapshot.serial}")
        print(f"  Firmware: {snapshot.firmware_version}")

        # Commands update the cache at once; a refresh confirms them later
        if snapshot.is_door_open:
            print("\nClosing door...")
            await client.close_door()
        else:
            print("\nOpening door...")
            await client.open_door()
        print(f"Door now reads: {(await client.read('door_state')).value}")

        print("Waiting for confirmation...")
        await asyncio.sleep(client.config.confirmation_delay + 2)
        print(f"Confirmed door state: {(await client.read('door_state')).value}")


if __name__ == "__main__":
    asyncio.run(main())
