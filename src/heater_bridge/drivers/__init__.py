"""Radio driver implementations and the loader that picks one from configuration."""

from __future__ import annotations

import importlib

from heater_bridge.exceptions import DriverLoadError
from heater_bridge.logging_abstraction import get_logger
from heater_bridge.structs import HeaterDriverProtocol

__all__ = ["load_driver"]

logger = get_logger(__name__)

_REQUIRED = ("initialize", "learn_address", "set_address", "send_command", "poll_state")


def load_driver(target: str) -> HeaterDriverProtocol:
    """Import ``module:attribute`` and call it to build a driver instance.

    The attribute may be a class or any zero-argument factory.
    """
    module_name, sep, attr = target.partition(":")
    if not sep or not module_name or not attr:
        raise DriverLoadError(target, "expected 'module:attribute'")
    try:
        module = importlib.import_module(module_name)
    except ImportError as e:
        raise DriverLoadError(target, str(e)) from e
    factory = getattr(module, attr, None)
    if factory is None or not callable(factory):
        raise DriverLoadError(target, f"{module_name} has no callable '{attr}'")
    try:
        driver = factory()
    except Exception as e:
        raise DriverLoadError(target, f"factory raised {type(e).__name__}: {e}") from e

    missing = [name for name in _REQUIRED if not callable(getattr(driver, name, None))]
    if missing:
        raise DriverLoadError(target, f"driver is missing {', '.join(missing)}")
    logger.info("Loaded heater driver %s", target)
    return driver
