"""
Shared fixtures for unit tests.

This module provides reusable fakes for the radio driver and the MQTT session.
"""

from __future__ import annotations

from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio

from heater_bridge.driver import DriverGateway
from heater_bridge.mqtt.topics import TopicTable
from heater_bridge.structs import CommandKind, DeviceStateSnapshot, GlobalObject

SNAPSHOT_DEFAULTS: dict[str, Any] = {
    "state_code": 0x05,
    "power_flag": 1,
    "voltage": 12.4,
    "ambient_temp": 18.5,
    "case_temp": 104.0,
    "setpoint": 21.0,
    "auto_mode": False,
    "pump_freq": 3.2,
    "rssi": -71.0,
}


class FakeDriver:
    """Scriptable stand-in for a blocking radio driver; records every call."""

    def __init__(self) -> None:
        self.calls: list[tuple[Any, ...]] = []
        self.learn_results: list[int | None] = []
        self.frames: list[Any] = []
        self.address: int = 0
        self.fail_on: set[str] = set()

    def _maybe_fail(self, name: str) -> None:
        if name in self.fail_on:
            msg = f"{name} exploded"
            raise RuntimeError(msg)

    def initialize(self) -> None:
        self.calls.append(("initialize",))
        self._maybe_fail("initialize")

    def learn_address(self, timeout_ms: int) -> int | None:
        self.calls.append(("learn_address", timeout_ms))
        self._maybe_fail("learn_address")
        return self.learn_results.pop(0) if self.learn_results else None

    def set_address(self, address: int) -> None:
        self.calls.append(("set_address", address))
        self._maybe_fail("set_address")
        self.address = address

    def send_command(self, cmd: CommandKind) -> None:
        self.calls.append(("send_command", cmd))
        self._maybe_fail("send_command")

    def poll_state(self, timeout_ms: int) -> Any:
        self.calls.append(("poll_state", timeout_ms))
        self._maybe_fail("poll_state")
        return self.frames.pop(0) if self.frames else None

    @property
    def commands(self) -> list[CommandKind]:
        return [call[1] for call in self.calls if call[0] == "send_command"]

    def called(self, name: str) -> list[tuple[Any, ...]]:
        return [call for call in self.calls if call[0] == name]


@pytest.fixture(autouse=True)
def reset_global_object():
    """Keep process-level handles from leaking between tests"""
    g = GlobalObject()
    g.controller = None
    g.loop = None
    g.cli_args = None
    yield
    g.controller = None
    g.loop = None
    g.cli_args = None


@pytest.fixture
def fake_driver() -> FakeDriver:
    return FakeDriver()


@pytest_asyncio.fixture
async def gateway(fake_driver: FakeDriver) -> DriverGateway:
    """Initialized gateway in front of ``fake_driver``"""
    gw = DriverGateway(fake_driver)
    await gw.initialize()
    fake_driver.calls.clear()
    return gw


@pytest.fixture
def topics() -> TopicTable:
    return TopicTable("diesel_heater", "homeassistant")


@pytest.fixture
def make_snapshot():
    """Factory for snapshots; keyword arguments override the defaults (a running heater)."""

    def _make(**overrides: Any) -> DeviceStateSnapshot:
        return DeviceStateSnapshot(**{**SNAPSHOT_DEFAULTS, **overrides})

    return _make


@pytest.fixture
def mock_mqtt_client():
    """
    Mock MQTTClient for testing.

    publish / publish_json succeed and record their arguments.
    """
    client = MagicMock()
    client.lp = "mqtt:"
    client.is_connected = True
    client.publish = AsyncMock(return_value=True)
    client.publish_json = AsyncMock(return_value=True)
    client.subscribe = AsyncMock()
    return client


@pytest.fixture
def mock_state_updates():
    helper = MagicMock()
    helper.publish_power = AsyncMock(return_value=True)
    helper.publish_mode = AsyncMock(return_value=True)
    helper.publish_pair_state = AsyncMock(return_value=True)
    helper.publish_availability = AsyncMock(return_value=True)
    helper.publish_snapshot = AsyncMock(return_value=True)
    return helper
