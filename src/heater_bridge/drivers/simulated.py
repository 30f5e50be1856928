"""In-process heater model that honours the radio driver contract.

Useful for running the bridge without RF hardware (dry runs against a real
broker) and as the device behind the controller tests. The model walks through
the same state sequence the real heater reports: OFF -> STARTUP -> WARMING ->
WARMING_WAIT -> PRE_RUN -> RUNNING after a POWER press, and SHUTDOWN ->
SHUTTING_DOWN -> COOLING -> OFF after the next one. One state step per poll.
"""

from __future__ import annotations

import threading
import time
from typing import Any

from heater_bridge.logging_abstraction import get_logger
from heater_bridge.structs import CommandKind, StateCode

logger = get_logger(__name__)

_START_SEQUENCE = (
    StateCode.STARTUP,
    StateCode.WARMING,
    StateCode.WARMING_WAIT,
    StateCode.PRE_RUN,
    StateCode.RUNNING,
)
_STOP_SEQUENCE = (
    StateCode.SHUTDOWN,
    StateCode.SHUTTING_DOWN,
    StateCode.COOLING,
    StateCode.OFF,
)
SETPOINT_MIN = 8
SETPOINT_MAX = 36


class SimulatedHeaterDriver:
    lp: str = "sim_driver:"

    def __init__(
        self,
        remote_address: int = 0x00ABCDEF,
        learn_after: int = 3,
        simulate_timing: bool = True,
        fail_initialize: bool = False,
    ) -> None:
        """
        Args:
            remote_address: Address the simulated heater answers to and "broadcasts" while pairing
            learn_after: Number of learn attempts that hear nothing before the address is reported
            simulate_timing: Block for the requested timeout when nothing is heard, like the radio does
            fail_initialize: Make ``initialize()`` raise, for exercising startup failure paths

        """
        self.remote_address: int = remote_address
        self.learn_after: int = learn_after
        self.simulate_timing: bool = simulate_timing
        self.fail_initialize: bool = fail_initialize

        self._lock = threading.Lock()
        self.initialized: bool = False
        self.address: int = 0
        self.learn_attempts: int = 0
        self.commands: list[CommandKind] = []

        self.state: StateCode = StateCode.OFF
        self._sequence: tuple[StateCode, ...] = ()
        self.auto_mode: bool = False
        self.setpoint: float = 20.0
        self.ambient_temp: float = 12.0
        self.voltage: float = 12.6

    def _wait(self, timeout_ms: int) -> None:
        if self.simulate_timing:
            time.sleep(timeout_ms / 1000)

    def initialize(self) -> None:
        if self.fail_initialize:
            msg = "simulated radio did not respond"
            raise OSError(msg)
        self.initialized = True
        logger.warning(
            "%s Simulated heater in use, telemetry is not from real hardware; set HEATER_DRIVER to a radio driver",
            self.lp,
            extra={"remote_address": f"0x{self.remote_address:08X}"},
        )

    def learn_address(self, timeout_ms: int) -> int | None:
        with self._lock:
            self.learn_attempts += 1
            heard = self.learn_attempts > self.learn_after
        if heard:
            return self.remote_address
        self._wait(timeout_ms)
        return None

    def set_address(self, address: int) -> None:
        with self._lock:
            self.address = address

    def send_command(self, cmd: CommandKind) -> None:
        with self._lock:
            self.commands.append(cmd)
            if self.address != self.remote_address:
                # Wrong address: the heater ignores the frame, as the real one would.
                return
            if cmd == CommandKind.POWER:
                running = self.state in _START_SEQUENCE
                self._sequence = _STOP_SEQUENCE if running else _START_SEQUENCE
                self._advance()
            elif cmd == CommandKind.MODE:
                self.auto_mode = not self.auto_mode
            elif cmd == CommandKind.UP:
                self.setpoint = min(SETPOINT_MAX, self.setpoint + 1)
            elif cmd == CommandKind.DOWN:
                self.setpoint = max(SETPOINT_MIN, self.setpoint - 1)

    def _advance(self) -> None:
        if self._sequence:
            self.state = self._sequence[0]
            self._sequence = self._sequence[1:]

    def poll_state(self, timeout_ms: int) -> dict[str, Any] | None:
        with self._lock:
            answering = self.address != 0 and self.address == self.remote_address
            if answering:
                frame = self._frame()
                self._advance()
        if not answering:
            self._wait(timeout_ms)
            return None
        return frame

    def _frame(self) -> dict[str, Any]:
        burning = self.state in (StateCode.PRE_RUN, StateCode.RUNNING)
        if burning:
            self.ambient_temp = min(self.setpoint, self.ambient_temp + 0.5)
        return {
            "state_code": int(self.state),
            "power_flag": 1 if self.state in _START_SEQUENCE else 0,
            "voltage": self.voltage,
            "ambient_temp": self.ambient_temp,
            "case_temp": 110.0 if burning else self.ambient_temp,
            "setpoint": self.setpoint,
            "auto_mode": self.auto_mode,
            "pump_freq": 3.5 if burning else 0.0,
            "rssi": -62.0,
        }
