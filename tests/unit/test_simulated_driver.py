"""
Unit tests for the in-process simulated heater.
"""

import logging

import pytest

from heater_bridge.drivers.simulated import SETPOINT_MAX, SETPOINT_MIN, SimulatedHeaterDriver
from heater_bridge.structs import CommandKind, DeviceStateSnapshot, StateCode

REMOTE = 0x00ABCDEF


@pytest.fixture
def sim():
    driver = SimulatedHeaterDriver(remote_address=REMOTE, learn_after=2, simulate_timing=False)
    driver.initialize()
    return driver


@pytest.fixture
def paired_sim(sim):
    sim.set_address(REMOTE)
    return sim


def poll_states(driver, count):
    return [driver.poll_state(100)["state_code"] for _ in range(count)]


class TestPairing:
    def test_learns_after_configured_attempts(self, sim):
        assert sim.learn_address(500) is None
        assert sim.learn_address(500) is None
        assert sim.learn_address(500) == REMOTE

    def test_unpaired_poll_returns_nothing(self, sim):
        assert sim.poll_state(100) is None

    def test_wrong_address_ignored(self, sim):
        sim.set_address(0x11111111)
        sim.send_command(CommandKind.POWER)
        assert sim.state is StateCode.OFF
        assert sim.poll_state(100) is None


class TestStateModel:
    def test_frame_is_a_valid_snapshot(self, paired_sim):
        frame = paired_sim.poll_state(100)
        snapshot = DeviceStateSnapshot.model_validate(frame)
        assert snapshot.state is StateCode.OFF

    def test_power_on_walks_start_sequence(self, paired_sim):
        paired_sim.send_command(CommandKind.POWER)
        assert poll_states(paired_sim, 6) == [0x01, 0x02, 0x03, 0x04, 0x05, 0x05]

    def test_power_off_walks_stop_sequence(self, paired_sim):
        paired_sim.send_command(CommandKind.POWER)
        poll_states(paired_sim, 6)
        paired_sim.send_command(CommandKind.POWER)
        assert poll_states(paired_sim, 5) == [0x06, 0x07, 0x08, 0x00, 0x00]

    def test_mode_toggles_auto(self, paired_sim):
        paired_sim.send_command(CommandKind.MODE)
        assert paired_sim.poll_state(100)["auto_mode"] is True
        paired_sim.send_command(CommandKind.MODE)
        assert paired_sim.poll_state(100)["auto_mode"] is False

    def test_setpoint_clamped(self, paired_sim):
        for _ in range(40):
            paired_sim.send_command(CommandKind.UP)
        assert paired_sim.setpoint == SETPOINT_MAX
        for _ in range(40):
            paired_sim.send_command(CommandKind.DOWN)
        assert paired_sim.setpoint == SETPOINT_MIN

    def test_commands_recorded(self, paired_sim):
        paired_sim.send_command(CommandKind.WAKEUP)
        assert paired_sim.commands == [CommandKind.WAKEUP]


def test_initialize_failure():
    driver = SimulatedHeaterDriver(fail_initialize=True, simulate_timing=False)
    with pytest.raises(OSError, match="did not respond"):
        driver.initialize()


def test_initialize_warns_that_telemetry_is_simulated(caplog):
    driver = SimulatedHeaterDriver(simulate_timing=False)
    with caplog.at_level(logging.WARNING, logger="heater_bridge.drivers.simulated"):
        driver.initialize()
    assert any("HEATER_DRIVER" in r.getMessage() for r in caplog.records if r.levelno == logging.WARNING)
