"""Bounded-time learning of the heater's radio address."""

from __future__ import annotations

import asyncio
import time
from collections.abc import Callable
from typing import TYPE_CHECKING

from heater_bridge.const import HEATER_LEARN_PAUSE_MS, HEATER_LEARN_TIMEOUT_MS
from heater_bridge.logging_abstraction import get_logger
from heater_bridge.structs import PairingState

if TYPE_CHECKING:
    from heater_bridge.driver import DriverGateway

logger = get_logger(__name__)


class PairingWorkflow:
    """Repeat short learn attempts until an address is heard or the budget is spent.

    The workflow only observes: applying and persisting the learned address is
    the caller's job.
    """

    lp: str = "pairing:"

    def __init__(
        self,
        learn_timeout_ms: int = HEATER_LEARN_TIMEOUT_MS,
        pause_ms: int = HEATER_LEARN_PAUSE_MS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.learn_timeout_ms: int = learn_timeout_ms
        self.pause_ms: int = pause_ms
        self.clock: Callable[[], float] = clock
        self.state: PairingState = PairingState.IDLE
        self.attempts: int = 0

    async def pair(self, driver: DriverGateway, timeout_budget_ms: int) -> int | None:
        lp = f"{self.lp}pair:"
        self.state = PairingState.LISTENING
        self.attempts = 0
        started = self.clock()
        logger.info("%s Listening for a remote for up to %d ms...", lp, timeout_budget_ms)

        while True:
            elapsed_ms = (self.clock() - started) * 1000
            remaining_ms = timeout_budget_ms - elapsed_ms
            if remaining_ms <= 0:
                break
            self.attempts += 1
            address = await driver.learn_address(max(1, min(self.learn_timeout_ms, int(remaining_ms))))
            if address:
                self.state = PairingState.SUCCEEDED
                logger.info(
                    "%s Learned heater address 0x%08X",
                    lp,
                    address,
                    extra={"attempts": self.attempts},
                )
                return address
            if self.pause_ms > 0:
                await asyncio.sleep(self.pause_ms / 1000)

        self.state = PairingState.TIMED_OUT
        logger.info("%s No remote heard within %d ms", lp, timeout_budget_ms, extra={"attempts": self.attempts})
        return None
