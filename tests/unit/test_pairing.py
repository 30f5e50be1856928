"""
Unit tests for the pairing workflow.
"""

import itertools

import pytest

from heater_bridge.driver import DriverGateway
from heater_bridge.exceptions import DriverError
from heater_bridge.pairing import PairingWorkflow
from heater_bridge.structs import PairingState


def stepping_clock(step=0.25):
    """Monotonic clock that advances ``step`` seconds per reading."""
    ticks = itertools.count()
    return lambda: next(ticks) * step


@pytest.fixture
def learn_gateway(fake_driver):
    return DriverGateway(fake_driver)


class TestPair:
    @pytest.mark.asyncio
    async def test_returns_first_heard_address(self, learn_gateway, fake_driver):
        fake_driver.learn_results = [None, 0, 0x00ABCDEF]
        workflow = PairingWorkflow(learn_timeout_ms=500, pause_ms=0)

        assert await workflow.pair(learn_gateway, 60_000) == 0x00ABCDEF
        assert workflow.state is PairingState.SUCCEEDED
        assert workflow.attempts == 3

    @pytest.mark.asyncio
    async def test_timeout_returns_none(self, learn_gateway, fake_driver):
        workflow = PairingWorkflow(learn_timeout_ms=500, pause_ms=0, clock=stepping_clock())

        assert await workflow.pair(learn_gateway, 1000) is None
        assert workflow.state is PairingState.TIMED_OUT
        # attempts at 250, 500, 750 ms; the last one only gets the remaining 250 ms
        assert fake_driver.called("learn_address") == [
            ("learn_address", 500),
            ("learn_address", 500),
            ("learn_address", 250),
        ]

    @pytest.mark.asyncio
    async def test_timeout_mutates_nothing(self, learn_gateway, fake_driver):
        workflow = PairingWorkflow(pause_ms=0, clock=stepping_clock())
        await workflow.pair(learn_gateway, 1000)
        assert fake_driver.called("set_address") == []
        assert fake_driver.address == 0

    @pytest.mark.asyncio
    async def test_zero_budget(self, learn_gateway, fake_driver):
        workflow = PairingWorkflow(pause_ms=0)
        assert await workflow.pair(learn_gateway, 0) is None
        assert fake_driver.called("learn_address") == []

    @pytest.mark.asyncio
    async def test_driver_error_propagates(self, learn_gateway, fake_driver):
        fake_driver.fail_on.add("learn_address")
        workflow = PairingWorkflow(pause_ms=0)
        with pytest.raises(DriverError):
            await workflow.pair(learn_gateway, 1000)

    def test_starts_idle(self):
        assert PairingWorkflow().state is PairingState.IDLE
