"""Semantic view of the heater's raw state codes."""

from __future__ import annotations

from heater_bridge.structs import StateCode

__all__ = ["ON_STATES", "is_on", "state_text"]

# Burner running or on its way there. SHUTDOWN/SHUTTING_DOWN/COOLING count as off:
# the user already asked it to stop.
ON_STATES: frozenset[StateCode] = frozenset(
    {
        StateCode.STARTUP,
        StateCode.WARMING,
        StateCode.WARMING_WAIT,
        StateCode.PRE_RUN,
        StateCode.RUNNING,
    },
)


def is_on(state_code: int | StateCode | None) -> bool:
    """Return True when the heater is on for the given state code.

    Total over its input: unknown values and None are treated as off.
    """
    return StateCode.parse(state_code) in ON_STATES


def state_text(state_code: int | StateCode | None) -> str:
    """Lower-case name of the state, e.g. ``"warming_wait"`` or ``"unknown"``."""
    return StateCode.parse(state_code).name.lower()
