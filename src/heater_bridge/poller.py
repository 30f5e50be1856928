"""Background telemetry polling.

One asyncio task for the life of the process. Each cycle asks the radio for a
state frame, swaps it into the shared state and publishes it; a cycle that gets
nothing back changes nothing.
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

from heater_bridge.const import HEATER_POLL_INTERVAL, HEATER_POLL_TIMEOUT_MS
from heater_bridge.correlation import WORK_POLL, correlation_context
from heater_bridge.exceptions import DriverError
from heater_bridge.logging_abstraction import get_logger

if TYPE_CHECKING:
    from heater_bridge.driver import DriverGateway
    from heater_bridge.mqtt.state_updates import StateUpdateHelper
    from heater_bridge.structs import SharedDeviceState

logger = get_logger(__name__)


class StatePoller:
    lp: str = "poller:"

    def __init__(
        self,
        driver: DriverGateway,
        state: SharedDeviceState,
        state_updates: StateUpdateHelper,
        interval: float = HEATER_POLL_INTERVAL,
        timeout_ms: int = HEATER_POLL_TIMEOUT_MS,
    ) -> None:
        self.driver: DriverGateway = driver
        self.state: SharedDeviceState = state
        self.state_updates: StateUpdateHelper = state_updates
        self.interval: float = interval
        self.timeout_ms: int = timeout_ms
        self._stop_event: asyncio.Event = asyncio.Event()
        self._task: asyncio.Task[None] | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            return
        self._stop_event.clear()
        self._task = asyncio.create_task(self._run(), name="heater_state_poller")
        logger.info("%s Polling every %.1fs", self.lp, self.interval)

    def stop(self) -> None:
        """Ask the poller to exit after the current cycle."""
        self._stop_event.set()

    async def join(self) -> None:
        if self._task is not None:
            await self._task

    async def poll_once(self) -> bool:
        """Run one cycle. Returns True when a snapshot was stored and published."""
        lp = f"{self.lp}poll:"
        if not self.state.is_paired:
            logger.debug("%s No heater address, nothing to poll", lp)
            return False
        snapshot = await self.driver.poll_state(self.timeout_ms)
        if snapshot is None:
            logger.debug("%s No state frame this cycle", lp)
            return False
        self.state.replace_snapshot(snapshot)
        _ = await self.state_updates.publish_snapshot(snapshot)
        logger.debug(
            "%s state=%s ambient=%s setpoint=%s",
            lp,
            snapshot.state.name,
            snapshot.ambient_temp,
            snapshot.setpoint,
        )
        return True

    async def _run(self) -> None:
        lp = f"{self.lp}run:"
        while not self._stop_event.is_set():
            with correlation_context(WORK_POLL):
                try:
                    _ = await self.poll_once()
                except DriverError as e:
                    logger.warning("%s Poll failed: %s", lp, e.reason)
                except Exception:
                    logger.exception("%s Unexpected error in poll cycle", lp)
            try:
                _ = await asyncio.wait_for(self._stop_event.wait(), timeout=self.interval)
            except TimeoutError:
                pass
        logger.info("%s Poller stopped", lp)
