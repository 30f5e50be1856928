"""
Unit tests for state_classifier module.
"""

import pytest

from heater_bridge.state_classifier import ON_STATES, is_on, state_text
from heater_bridge.structs import StateCode


class TestIsOn:
    @pytest.mark.parametrize(
        ("code", "expected"),
        [
            (0x00, False),
            (0x01, True),
            (0x02, True),
            (0x03, True),
            (0x04, True),
            (0x05, True),
            (0x06, False),
            (0x07, False),
            (0x08, False),
        ],
    )
    def test_every_known_code(self, code, expected):
        assert is_on(code) is expected

    @pytest.mark.parametrize("code", [0x09, 0x42, 0xFF, -1, 1000])
    def test_unknown_codes_are_off(self, code):
        assert is_on(code) is False

    def test_none_is_off(self):
        assert is_on(None) is False

    def test_accepts_enum_members(self):
        assert is_on(StateCode.RUNNING) is True
        assert is_on(StateCode.COOLING) is False

    def test_on_states_membership(self):
        assert StateCode.SHUTDOWN not in ON_STATES
        assert len(ON_STATES) == 5


class TestStateText:
    def test_known_state(self):
        assert state_text(0x03) == "warming_wait"
        assert state_text(StateCode.RUNNING) == "running"

    def test_unknown_state(self):
        assert state_text(0x77) == "unknown"
        assert state_text(None) == "unknown"
