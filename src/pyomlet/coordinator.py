"""Poll cache and action coordinator for a single Omlet device.

This module keeps the last known device snapshot, refreshes it on a timer,
serves cached reads, and issues commands with optimistic state transitions
followed by a delayed confirmation poll.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Callable  # noqa: TC003 - Used at runtime for type hints
from dataclasses import fields, replace
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from pyomlet.const import DEFAULT_CONFIRMATION_DELAY, DEFAULT_POLL_INTERVAL, UNKNOWN_INFO_VALUE
from pyomlet.exceptions import AuthPermanentlyFailedError, InvalidParameterError, OmletError
from pyomlet.models import DeviceAction, DeviceSnapshot, DoorState, LightState, PendingCommand


if TYPE_CHECKING:
    from pyomlet.devices import DeviceClient
    from pyomlet.session import SessionManager

_LOGGER = logging.getLogger(__name__)

SnapshotListener = Callable[[DeviceSnapshot], None]

READABLE_FIELDS = frozenset({f.name for f in fields(DeviceSnapshot)} | {"is_door_open", "is_light_on"})


def apply_optimistic_transition(snapshot: DeviceSnapshot, action: DeviceAction) -> DeviceSnapshot:
    """Return the snapshot the device is expected to reach after an action.

    Door actions move to their intermediate state (``open`` -> OPENING,
    ``close`` -> CLOSING). ``on`` moves the light to ON_PENDING and ``off``
    switches it off directly.

    Args:
        snapshot: Current cached snapshot.
        action: Action accepted by the API.

    Returns:
        A new snapshot; the input is left untouched.
    """
    if action is DeviceAction.OPEN:
        return replace(snapshot, door_state=DoorState.OPENING)
    if action is DeviceAction.CLOSE:
        return replace(snapshot, door_state=DoorState.CLOSING)
    if action is DeviceAction.LIGHT_ON:
        return replace(snapshot, light_state=LightState.ON_PENDING)
    return replace(snapshot, light_state=LightState.OFF)


class PollCoordinator:
    """Single shared cache of device state with serialized refreshes and commands.

    **Key Features:**
    - **Cached Reads**: ``read()`` answers from the last snapshot; only a cold
      start waits for the network
    - **Coalesced Refreshes**: at most one device read is in flight; callers
      arriving meanwhile share its result
    - **Auth Recovery**: 401/403 triggers one re-login and one retry
    - **Optimistic Commands**: ``issue()`` moves the cache to the pending
      state at once, then confirms with a delayed refresh
    - **Change Listeners**: every new snapshot is pushed to registered callbacks

    Snapshots are immutable and replaced wholesale, so readers never observe a
    partially updated state. A refresh whose network read began before an
    optimistic update is discarded rather than overwriting that update.

    Example:
        ```python
        coordinator = PollCoordinator(session, device_client, poll_interval=60)
        coordinator.add_listener(lambda snap: print(snap.door_state))
        coordinator.start()

        door = await coordinator.read("door_state")
        await coordinator.issue(DeviceAction.OPEN)  # cache reads OPENING now

        await coordinator.stop()
        ```
    """

    def __init__(
        self,
        session: SessionManager,
        device_client: DeviceClient,
        *,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
        confirmation_delay: float = DEFAULT_CONFIRMATION_DELAY,
        enable_light: bool = True,
        enable_battery: bool = True,
    ) -> None:
        """Initialize the coordinator.

        Args:
            session: Session manager supplying tokens and auth recovery.
            device_client: Client for device reads and actions.
            poll_interval: Seconds between background refreshes.
            confirmation_delay: Seconds between a command and its confirmation refresh.
            enable_light: Whether light state and light actions are exposed.
            enable_battery: Whether the battery level is exposed.

        Raises:
            InvalidParameterError: If an interval is not positive.
        """
        if poll_interval <= 0:
            msg = f"Poll interval must be positive, got {poll_interval}"
            raise InvalidParameterError(msg, parameter_name="poll_interval", value=poll_interval)
        if confirmation_delay < 0:
            msg = f"Confirmation delay cannot be negative, got {confirmation_delay}"
            raise InvalidParameterError(msg, parameter_name="confirmation_delay", value=confirmation_delay)

        self._session = session
        self._device_client = device_client
        self.poll_interval = poll_interval
        self.confirmation_delay = confirmation_delay
        self.enable_light = enable_light
        self.enable_battery = enable_battery

        self._snapshot: DeviceSnapshot | None = None
        self._info_latched = False
        self._latched_serial = UNKNOWN_INFO_VALUE
        self._latched_firmware = UNKNOWN_INFO_VALUE
        self._last_refresh: datetime | None = None
        self._last_error: OmletError | None = None

        # Bumped by every optimistic update; refreshes started earlier are discarded
        self._generation = 0
        self._pending: PendingCommand | None = None

        self._cache_lock = asyncio.Lock()
        self._command_lock = asyncio.Lock()
        self._refresh_task: asyncio.Task[DeviceSnapshot] | None = None
        self._refresh_generation = 0
        self._refresh_tasks: set[asyncio.Task[DeviceSnapshot]] = set()
        self._poll_task: asyncio.Task[None] | None = None
        self._confirm_task: asyncio.Task[None] | None = None
        self._permanent_failure_logged = False

        self._listeners: list[SnapshotListener] = []

    # -------------------------------------------------------------------------
    # State
    # -------------------------------------------------------------------------

    @property
    def snapshot(self) -> DeviceSnapshot | None:
        """Get the cached snapshot without triggering a refresh."""
        return self._snapshot

    @property
    def available(self) -> bool:
        """Check if the device can still be reached (auth not permanently failed)."""
        return not self._session.auth_permanently_failed

    @property
    def info_fields_latched(self) -> bool:
        """Check if serial and firmware have been captured from a real response."""
        return self._info_latched

    @property
    def pending_command(self) -> PendingCommand | None:
        """Get the command awaiting its confirmation refresh."""
        return self._pending

    @property
    def last_refresh(self) -> datetime | None:
        """Get timestamp of the last successful refresh."""
        return self._last_refresh

    @property
    def last_error(self) -> OmletError | None:
        """Get the error of the last failed refresh, None after a success."""
        return self._last_error

    @property
    def is_running(self) -> bool:
        """Check if the poll loop is running."""
        return self._poll_task is not None and not self._poll_task.done()

    # -------------------------------------------------------------------------
    # Refresh
    # -------------------------------------------------------------------------

    async def refresh(self) -> DeviceSnapshot:
        """Read device state and replace the cached snapshot.

        If a refresh is already in flight, this call joins it instead of
        issuing a second network read. A refresh that began before the last
        command is not joined: its result will be discarded, so a new read
        is started instead.

        Returns:
            The snapshot now held by the cache.

        Raises:
            AuthPermanentlyFailedError: If the session is permanently failed.
            DeviceNotConfiguredError: If no device is selected.
            OmletError: If the read (or its post-recovery retry) failed. The
                previous snapshot stays cached.
        """
        task = self._refresh_task
        if task is not None and not task.done() and self._refresh_generation == self._generation:
            _LOGGER.debug("Joining in-flight refresh")
        else:
            if task is not None and not task.done():
                _LOGGER.debug("In-flight refresh predates the last command, starting a new read")
            generation = self._generation
            task = asyncio.create_task(self._refresh(generation))
            task.add_done_callback(self._refresh_done)
            self._refresh_tasks.add(task)
            self._refresh_task = task
            self._refresh_generation = generation

        # Shielded so one cancelled caller does not cancel the shared read
        return await asyncio.shield(task)

    def _refresh_done(self, task: asyncio.Task[DeviceSnapshot]) -> None:
        """Forget a finished refresh and mark its error retrieved; callers may all be gone."""
        self._refresh_tasks.discard(task)
        if not task.cancelled():
            task.exception()

    async def _refresh(self, generation: int) -> DeviceSnapshot:
        try:
            device_id = self._session.require_device_id()
            snapshot = await self._session.call_with_recovery(
                lambda token: self._device_client.read_state(token, device_id)
            )
        except OmletError as exc:
            self._last_error = exc
            raise

        async with self._cache_lock:
            if generation != self._generation and self._snapshot is not None:
                _LOGGER.debug("Discarding device read that started before a command was issued")
                return self._snapshot

            snapshot = self._apply_features(self._latch_info(snapshot))
            self._snapshot = snapshot
            self._last_refresh = snapshot.fetched_at
            self._last_error = None

        self._notify_listeners(snapshot)
        return snapshot

    def _latch_info(self, snapshot: DeviceSnapshot) -> DeviceSnapshot:
        """Keep serial and firmware once real values have been seen."""
        if snapshot.serial != UNKNOWN_INFO_VALUE:
            self._latched_serial = snapshot.serial
        if snapshot.firmware_version != UNKNOWN_INFO_VALUE:
            self._latched_firmware = snapshot.firmware_version

        if not self._info_latched:
            self._info_latched = UNKNOWN_INFO_VALUE not in (self._latched_serial, self._latched_firmware)
            if self._info_latched:
                _LOGGER.debug(
                    "Latched device info: serial=%s firmware=%s",
                    self._latched_serial,
                    self._latched_firmware,
                )

        return replace(snapshot, serial=self._latched_serial, firmware_version=self._latched_firmware)

    def _apply_features(self, snapshot: DeviceSnapshot) -> DeviceSnapshot:
        changes: dict[str, Any] = {}
        if not self.enable_light:
            changes["light_state"] = LightState.UNKNOWN
        if not self.enable_battery:
            changes["battery_level"] = None
        return replace(snapshot, **changes) if changes else snapshot

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    async def read(self, selector: str | None = None) -> Any:
        """Read from the cache, refreshing once on a cold start.

        Args:
            selector: Snapshot field name (e.g., "door_state", "light_state",
                "battery_level", "is_door_open") or None for the whole snapshot.

        Returns:
            The selected value, or the DeviceSnapshot if no selector is given.

        Raises:
            InvalidParameterError: If the selector is not a snapshot field.
            AuthPermanentlyFailedError: If the session is permanently failed.
            OmletError: If the cold-start refresh failed.
        """
        if selector is not None and selector not in READABLE_FIELDS:
            msg = f"Unknown snapshot field {selector!r}"
            raise InvalidParameterError(msg, parameter_name="selector", value=selector)

        if self._session.auth_permanently_failed:
            msg = "Device unavailable: authentication permanently failed"
            raise AuthPermanentlyFailedError(msg)

        snapshot = self._snapshot
        if snapshot is None:
            _LOGGER.debug("Cold start read, refreshing before answering")
            snapshot = await self.refresh()

        if selector is None:
            return snapshot
        return getattr(snapshot, selector)

    # -------------------------------------------------------------------------
    # Commands
    # -------------------------------------------------------------------------

    async def issue(self, action: DeviceAction | str) -> None:
        """Issue an action and optimistically update the cache.

        Commands are serialized. On success the cached snapshot moves to the
        action's pending state and listeners are notified; a confirmation
        refresh is scheduled ``confirmation_delay`` seconds later, replacing
        any confirmation still waiting from an earlier command.

        Args:
            action: One of ``open``, ``close``, ``on``, ``off``.

        Raises:
            InvalidParameterError: If the action is unknown, or targets the
                light while the light feature is disabled.
            AuthPermanentlyFailedError: If the session is permanently failed.
            OmletError: If the API did not accept the action.
        """
        try:
            action = DeviceAction(action)
        except ValueError:
            valid = ", ".join(a.value for a in DeviceAction)
            msg = f"Action must be one of {valid}, got {action!r}"
            raise InvalidParameterError(msg, parameter_name="action", value=action) from None

        if action.is_light_action and not self.enable_light:
            msg = "Light control is disabled"
            raise InvalidParameterError(msg, parameter_name="action", value=action.value)

        async with self._command_lock:
            device_id = self._session.require_device_id()
            await self._session.call_with_recovery(
                lambda token: self._device_client.issue_action(token, device_id, action)
            )
            _LOGGER.info("Successfully sent command: %s", action.value)

            optimistic: DeviceSnapshot | None = None
            async with self._cache_lock:
                self._generation += 1
                pending = PendingCommand(target_action=action)
                self._pending = pending
                if self._snapshot is not None:
                    optimistic = apply_optimistic_transition(self._snapshot, action)
                    self._snapshot = optimistic
                self._schedule_confirmation(pending)

        if optimistic is not None:
            self._notify_listeners(optimistic)

    def _schedule_confirmation(self, pending: PendingCommand) -> None:
        if self._confirm_task is not None and not self._confirm_task.done():
            self._confirm_task.cancel()
        self._confirm_task = asyncio.create_task(self._confirm(pending))

    async def _confirm(self, pending: PendingCommand) -> None:
        try:
            await asyncio.sleep(self.confirmation_delay)
            _LOGGER.debug("Confirming %s command", pending.target_action.value)
            await self.refresh()
        except OmletError as exc:
            _LOGGER.warning("Confirmation refresh after %s failed: %s", pending.target_action.value, exc)
        finally:
            if self._pending is pending:
                self._pending = None

    # -------------------------------------------------------------------------
    # Poll loop
    # -------------------------------------------------------------------------

    def start(self) -> None:
        """Start background polling: one refresh now, then every poll_interval seconds."""
        if self.is_running:
            return
        self._poll_task = asyncio.create_task(self._poll_loop())
        _LOGGER.info("Polling started: every %s seconds", self.poll_interval)

    async def stop(self) -> None:
        """Stop polling and cancel any pending confirmation or in-flight refresh."""
        tasks = [self._poll_task, self._confirm_task, *self._refresh_tasks]
        self._poll_task = None
        self._confirm_task = None
        self._refresh_task = None
        self._pending = None

        for task in tasks:
            if task is not None and not task.done():
                task.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await task
        _LOGGER.debug("Coordinator stopped")

    async def _poll_loop(self) -> None:
        """Refresh until cancelled; failures keep the previous snapshot."""
        try:
            while True:
                await self._poll_once()
                await asyncio.sleep(self.poll_interval)
        except asyncio.CancelledError:
            _LOGGER.debug("Poll loop cancelled")
            raise

    async def _poll_once(self) -> None:
        try:
            await self.refresh()
        except AuthPermanentlyFailedError as exc:
            if not self._permanent_failure_logged:
                _LOGGER.error("Device unavailable until restart: %s", exc)
                self._permanent_failure_logged = True
        except OmletError as exc:
            _LOGGER.warning("Refresh failed, keeping last known state: %s", exc)
        except Exception:
            _LOGGER.exception("Unexpected error during refresh")

    # -------------------------------------------------------------------------
    # Listeners
    # -------------------------------------------------------------------------

    def _notify_listeners(self, snapshot: DeviceSnapshot) -> None:
        """Push a snapshot to all listeners; a failing listener does not stop the others."""
        for listener in list(self._listeners):
            try:
                listener(snapshot)
            except Exception:
                _LOGGER.exception("Error in snapshot listener")

    def add_listener(self, callback: SnapshotListener) -> None:
        """Register a callback invoked with every new snapshot.

        The callback is called after each successful refresh (scheduled,
        cold-start or confirmation) and after each optimistic update.

        Args:
            callback: Callable that takes a DeviceSnapshot.
        """
        if callback not in self._listeners:
            self._listeners.append(callback)
            _LOGGER.debug("Added snapshot listener")

    def remove_listener(self, callback: SnapshotListener) -> None:
        """Unregister a snapshot callback.

        Args:
            callback: Previously registered callback to remove.
        """
        if callback in self._listeners:
            self._listeners.remove(callback)
            _LOGGER.debug("Removed snapshot listener")
