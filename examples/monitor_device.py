"""Monitor an Omlet coop door example.

This example demonstrates:
- Loading configuration from OMLET_* environment variables
- Background polling with a change listener
- Alert on low battery
- Stopping cleanly when authentication is given up
"""

import asyncio
from datetime import datetime

from pyomlet import DeviceSnapshot, OmletClient, OmletConfig

LOW_BATTERY = 20


def print_snapshot(snapshot: DeviceSnapshot) -> None:
    """Print one line per snapshot update.

    Args:
        snapshot: Latest device snapshot.
    """
    alerts = []
    if snapshot.battery_level is not None and snapshot.battery_level < LOW_BATTERY:
        alerts.append(f"LOW BATTERY ({snapshot.battery_level}%)")

    timestamp = datetime.now().strftime("%H:%M:%S")
    line = (
        f"[{timestamp}] {snapshot.name}: door={snapshot.door_state.value:<8} "
        f"light={snapshot.light_state.value:<9} battery={snapshot.battery_level}%"
    )
    if alerts:
        line += "  " + ", ".join(alerts)
    print(line)


async def main() -> None:
    """Poll the device until interrupted."""
    # Reads OMLET_EMAIL, OMLET_PASSWORD, OMLET_POLL_INTERVAL, ...
    config = OmletConfig.from_env()

    async with OmletClient(config=config) as client:
        client.add_listener(print_snapshot)
        print(f"Polling every {config.poll_interval}s, press Ctrl+C to stop")

        while client.available:
            await asyncio.sleep(config.poll_interval)

        print("Authentication permanently failed. Fix the credentials and restart.")


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        print("\nMonitoring stopped")
