from __future__ import annotations

import asyncio
import os
import threading
from argparse import Namespace
from collections.abc import Mapping
from enum import IntEnum, StrEnum
from typing import TYPE_CHECKING, Any, Protocol

from pydantic import BaseModel, ConfigDict, Field

from heater_bridge.const import (
    ADDRESS_FILE_NAME,
    DEFAULT_DRIVER,
    DEFAULT_HASS_TOPIC,
    DEFAULT_LEARN_TIMEOUT_MS,
    DEFAULT_MQTT_CONN_DELAY,
    DEFAULT_MQTT_HOST,
    DEFAULT_MQTT_PORT,
    DEFAULT_PAIR_TIMEOUT_MS,
    DEFAULT_PERSISTENT_BASE_DIR,
    DEFAULT_POLL_INTERVAL,
    DEFAULT_POLL_TIMEOUT_MS,
    DEFAULT_TOPIC,
    HEATER_ADDRESS_FILE,
    HEATER_DRIVER,
    HEATER_HASS_TOPIC,
    HEATER_LEARN_TIMEOUT_MS,
    HEATER_MQTT_CONN_DELAY,
    HEATER_MQTT_HOST,
    HEATER_MQTT_PASS,
    HEATER_MQTT_PORT,
    HEATER_MQTT_USER,
    HEATER_PAIR_TIMEOUT_MS,
    HEATER_POLL_INTERVAL,
    HEATER_POLL_TIMEOUT_MS,
    HEATER_TOPIC,
    MAX_DEVICE_ADDRESS,
)

if TYPE_CHECKING:
    from heater_bridge.main import BridgeController

__all__ = [
    "BridgeEnv",
    "CommandKind",
    "DeviceStateSnapshot",
    "GlobalObject",
    "HeaterDriverProtocol",
    "PairingState",
    "SharedDeviceState",
    "StateCode",
]


class StateCode(IntEnum):
    """Operating state reported by the heater in every state frame."""

    UNKNOWN = -1
    OFF = 0x00
    STARTUP = 0x01
    WARMING = 0x02
    WARMING_WAIT = 0x03
    PRE_RUN = 0x04
    RUNNING = 0x05
    SHUTDOWN = 0x06
    SHUTTING_DOWN = 0x07
    COOLING = 0x08

    @classmethod
    def parse(cls, raw: int | None) -> StateCode:
        """Map a raw device value to a member; anything unrecognized is UNKNOWN."""
        if raw is None or raw == cls.UNKNOWN.value:
            return cls.UNKNOWN
        try:
            return cls(raw)
        except ValueError:
            return cls.UNKNOWN


class CommandKind(IntEnum):
    """Command bytes understood by the heater's radio protocol."""

    WAKEUP = 0x23
    MODE = 0x24
    POWER = 0x2B
    UP = 0x3C
    DOWN = 0x3E


class PairingState(StrEnum):
    IDLE = "idle"
    LISTENING = "listening"
    SUCCEEDED = "succeeded"
    TIMED_OUT = "timed_out"


class DeviceStateSnapshot(BaseModel):
    """One complete, validated state frame from the heater.

    Snapshots are immutable; the poller replaces the shared one wholesale.
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    state_code: int = Field(ge=0, le=0xFF)
    power_flag: int = Field(ge=0, le=0xFF)
    voltage: float
    ambient_temp: float
    case_temp: float
    setpoint: float
    auto_mode: bool
    pump_freq: float
    rssi: float

    @property
    def state(self) -> StateCode:
        return StateCode.parse(self.state_code)


class BridgeEnv(BaseModel):
    """Runtime settings for the bridge.

    Defaults come from the environment-derived constants in ``const``; call
    ``from_environ()`` to re-read the environment (e.g. after loading a dotenv
    file).
    """

    mqtt_host: str = HEATER_MQTT_HOST
    mqtt_port: int = HEATER_MQTT_PORT
    mqtt_user: str | None = HEATER_MQTT_USER
    mqtt_pass: str | None = HEATER_MQTT_PASS
    mqtt_topic: str = HEATER_TOPIC
    mqtt_hass_topic: str = HEATER_HASS_TOPIC
    mqtt_conn_delay: int = HEATER_MQTT_CONN_DELAY
    poll_interval: float = Field(default=HEATER_POLL_INTERVAL, gt=0)
    poll_timeout_ms: int = Field(default=HEATER_POLL_TIMEOUT_MS, gt=0)
    pair_timeout_ms: int = Field(default=HEATER_PAIR_TIMEOUT_MS, gt=0)
    learn_timeout_ms: int = Field(default=HEATER_LEARN_TIMEOUT_MS, gt=0)
    address_file: str = HEATER_ADDRESS_FILE
    driver: str = HEATER_DRIVER

    @classmethod
    def from_environ(cls, environ: Mapping[str, str] | None = None) -> BridgeEnv:
        """Build settings from environment variables, falling back to the ``const`` defaults.

        Raises:
            pydantic.ValidationError: a variable is set to a value of the wrong type or range

        """
        env = os.environ if environ is None else environ
        base_dir = env.get("HEATER_PERSISTENT_BASE_DIR") or DEFAULT_PERSISTENT_BASE_DIR
        values: dict[str, Any] = {
            "mqtt_host": env.get("HEATER_MQTT_HOST") or DEFAULT_MQTT_HOST,
            "mqtt_port": env.get("HEATER_MQTT_PORT") or DEFAULT_MQTT_PORT,
            "mqtt_user": env.get("HEATER_MQTT_USER") or None,
            "mqtt_pass": env.get("HEATER_MQTT_PASS") or None,
            "mqtt_topic": env.get("HEATER_TOPIC") or DEFAULT_TOPIC,
            "mqtt_hass_topic": env.get("HEATER_HASS_TOPIC") or DEFAULT_HASS_TOPIC,
            "mqtt_conn_delay": env.get("HEATER_MQTT_CONN_DELAY") or DEFAULT_MQTT_CONN_DELAY,
            "poll_interval": env.get("HEATER_POLL_INTERVAL") or DEFAULT_POLL_INTERVAL,
            "poll_timeout_ms": env.get("HEATER_POLL_TIMEOUT_MS") or DEFAULT_POLL_TIMEOUT_MS,
            "pair_timeout_ms": env.get("HEATER_PAIR_TIMEOUT_MS") or DEFAULT_PAIR_TIMEOUT_MS,
            "learn_timeout_ms": env.get("HEATER_LEARN_TIMEOUT_MS") or DEFAULT_LEARN_TIMEOUT_MS,
            "address_file": env.get("HEATER_ADDRESS_FILE") or f"{base_dir}/{ADDRESS_FILE_NAME}",
            "driver": env.get("HEATER_DRIVER") or DEFAULT_DRIVER,
        }
        return cls.model_validate(values)


class HeaterDriverProtocol(Protocol):
    """Blocking radio driver contract.

    Implementations talk to the RF transceiver; every call may block for up to
    the timeout it is given. None of them is assumed to be thread-safe.
    """

    def initialize(self) -> None:
        """Bring up the radio; raise on failure."""
        ...

    def learn_address(self, timeout_ms: int) -> int | None:
        """Listen for a remote's pairing frame and return its address."""
        ...

    def set_address(self, address: int) -> None: ...

    def send_command(self, cmd: CommandKind) -> None: ...

    def poll_state(self, timeout_ms: int) -> DeviceStateSnapshot | Mapping[str, Any] | None:
        """Request a state frame; None when nothing arrived in time."""
        ...


class SharedDeviceState:
    """Lock-guarded home of the only two values shared between units.

    The router reads the snapshot, the poller replaces it; the address changes
    only on a successful pairing.
    """

    def __init__(self, address: int = 0, snapshot: DeviceStateSnapshot | None = None) -> None:
        self._lock = threading.Lock()
        self._address = 0
        self._snapshot = snapshot
        self.set_address(address)

    @property
    def address(self) -> int:
        with self._lock:
            return self._address

    def set_address(self, address: int) -> None:
        if not 0 <= address <= MAX_DEVICE_ADDRESS:
            msg = f"device address out of range: {address:#x}"
            raise ValueError(msg)
        with self._lock:
            self._address = address

    @property
    def is_paired(self) -> bool:
        return self.address != 0

    @property
    def snapshot(self) -> DeviceStateSnapshot | None:
        with self._lock:
            return self._snapshot

    def replace_snapshot(self, snapshot: DeviceStateSnapshot) -> None:
        with self._lock:
            self._snapshot = snapshot


class GlobalObject:
    """Singleton container for process-level handles (loop, controller, CLI args)."""

    controller: BridgeController | None = None
    loop: asyncio.AbstractEventLoop | None = None
    cli_args: Namespace | None = None
    env: BridgeEnv = BridgeEnv()

    _instance: GlobalObject | None = None

    def __new__(cls, *_args: Any, **_kwargs: Any) -> GlobalObject:
        """Ensure only one GlobalObject instance exists."""
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def reload_env(self) -> None:
        """Re-evaluate environment variables into ``env``."""
        self.env = BridgeEnv.from_environ()
