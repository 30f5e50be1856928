"""Exception hierarchy for the heater bridge.

Only startup failures are meant to escape to the process entry point; runtime
driver errors are caught and logged where they happen.
"""

from __future__ import annotations


class HeaterBridgeError(Exception):
    """Base class for bridge errors."""


class DriverLoadError(HeaterBridgeError):
    """The configured driver could not be imported or constructed.

    Attributes:
        target: The ``module:attribute`` string that failed to resolve
        reason: Specific failure reason

    """

    def __init__(self, target: str, reason: str) -> None:
        self.target: str = target
        self.reason: str = reason
        super().__init__(f"Cannot load driver '{target}': {reason}")


class DriverError(HeaterBridgeError):
    """A driver operation failed at runtime.

    Raised when:
    - The driver raised while sending a command or polling
    - A command was attempted before the driver was initialized

    Attributes:
        operation: Driver operation name (e.g. "send_command")
        reason: Specific failure reason

    """

    def __init__(self, operation: str, reason: str) -> None:
        self.operation: str = operation
        self.reason: str = reason
        super().__init__(f"Driver {operation} failed: {reason}")


class DriverInitError(DriverError):
    """Radio/hardware initialization failed; the bridge cannot start."""

    def __init__(self, reason: str) -> None:
        super().__init__("initialize", reason)
