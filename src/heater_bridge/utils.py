from __future__ import annotations

import signal

from heater_bridge.logging_abstraction import get_logger
from heater_bridge.structs import GlobalObject

logger = get_logger(__name__)
g = GlobalObject()


def signal_handler(signum: int) -> None:
    """Loop signal callback: turn SIGINT/SIGTERM into a graceful controller stop."""
    logger.info("Heater bridge: Intercepted signal: %s (%s)", signal.Signals(signum).name, signum)
    if g.controller is not None:
        g.controller.request_stop()
    else:
        logger.warning("Heater bridge: No controller running, nothing to stop")
