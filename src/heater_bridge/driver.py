"""Async gateway in front of the blocking radio driver.

The RF driver bit-bangs SPI and blocks for up to the timeout it is handed, and
it has never been shown to tolerate two callers at once. Everything in the
bridge therefore talks to it through ``DriverGateway``: one asyncio lock held
across each call, and the call itself pushed to a worker thread so the event
loop keeps serving MQTT while the radio is busy.
"""

from __future__ import annotations

import asyncio
import contextlib
from collections.abc import Callable, Mapping
from typing import Any, TypeVar

from pydantic import ValidationError

from heater_bridge.exceptions import DriverError, DriverInitError
from heater_bridge.instrumentation import timed
from heater_bridge.logging_abstraction import get_logger
from heater_bridge.structs import CommandKind, DeviceStateSnapshot, HeaterDriverProtocol

logger = get_logger(__name__)

T = TypeVar("T")


class DriverGateway:
    """Serialize and offload every call into a ``HeaterDriverProtocol``."""

    lp: str = "driver:"

    def __init__(self, driver: HeaterDriverProtocol) -> None:
        self.driver: HeaterDriverProtocol = driver
        self._lock: asyncio.Lock = asyncio.Lock()
        self._initialized: bool = False

    @property
    def initialized(self) -> bool:
        return self._initialized

    async def _call(self, func: Callable[..., T], *args: Any) -> T:
        name = getattr(func, "__name__", repr(func))
        async with self._lock:
            worker = asyncio.ensure_future(asyncio.to_thread(func, *args))
            try:
                return await asyncio.shield(worker)
            except asyncio.CancelledError:
                # The thread cannot be interrupted; the radio stays ours until it returns.
                logger.debug("%s Cancelled mid-call, waiting for %s to return", self.lp, name)
                while not worker.done():
                    with contextlib.suppress(asyncio.CancelledError):
                        await asyncio.wait({worker})
                if not worker.cancelled() and worker.exception() is not None:
                    logger.debug("%s Abandoned %s failed: %s", self.lp, name, worker.exception())
                raise

    async def initialize(self) -> None:
        """Bring up the radio. Any failure is fatal for the bridge."""
        lp = f"{self.lp}initialize:"
        try:
            await self._call(self.driver.initialize)
        except Exception as e:
            logger.exception("%s Radio initialization failed", lp)
            raise DriverInitError(str(e) or type(e).__name__) from e
        self._initialized = True
        logger.info("%s Radio initialized", lp, extra={"driver": type(self.driver).__name__})

    async def learn_address(self, timeout_ms: int) -> int | None:
        """One bounded listen for a pairing frame; None (or 0 from the driver) means nothing heard."""
        try:
            address = await self._call(self.driver.learn_address, timeout_ms)
        except Exception as e:
            raise DriverError("learn_address", str(e) or type(e).__name__) from e
        return address or None

    @timed("driver_set_address")
    async def set_address(self, address: int) -> None:
        try:
            await self._call(self.driver.set_address, address)
        except Exception as e:
            raise DriverError("set_address", str(e) or type(e).__name__) from e
        logger.debug("%s Active address set to 0x%08X", self.lp, address)

    @timed("driver_send_command")
    async def send_command(self, cmd: CommandKind) -> None:
        lp = f"{self.lp}send_command:"
        if not self._initialized:
            raise DriverError("send_command", "driver not initialized")
        try:
            await self._call(self.driver.send_command, cmd)
        except DriverError:
            raise
        except Exception as e:
            raise DriverError("send_command", str(e) or type(e).__name__) from e
        logger.info("%s Sent %s (0x%02X)", lp, cmd.name, int(cmd))

    async def poll_state(self, timeout_ms: int) -> DeviceStateSnapshot | None:
        """Request one state frame. Returns None for "no frame" and for frames that fail validation."""
        lp = f"{self.lp}poll_state:"
        try:
            frame = await self._call(self.driver.poll_state, timeout_ms)
        except Exception as e:
            raise DriverError("poll_state", str(e) or type(e).__name__) from e
        if frame is None:
            return None
        if isinstance(frame, DeviceStateSnapshot):
            return frame
        if not isinstance(frame, Mapping):
            logger.warning("%s Discarding state frame of unexpected type %s", lp, type(frame).__name__)
            return None
        try:
            return DeviceStateSnapshot.model_validate(dict(frame))
        except ValidationError as e:
            logger.warning(
                "%s Discarding invalid state frame",
                lp,
                extra={"errors": e.error_count(), "frame": dict(frame)},
            )
            return None
