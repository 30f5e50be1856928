from __future__ import annotations

import argparse
import asyncio
import contextlib
import logging
import os
import signal
import sys
from functools import partial
from pathlib import Path

import dotenv
import uvloop
from pydantic import ValidationError

from heater_bridge.address_store import AddressStore
from heater_bridge.const import HEATER_LOG_NAME, HEATER_VERSION, YES_ANSWER
from heater_bridge.correlation import WORK_PROCESS, correlation_context
from heater_bridge.driver import DriverGateway
from heater_bridge.drivers import load_driver
from heater_bridge.exceptions import HeaterBridgeError
from heater_bridge.logging_abstraction import get_logger
from heater_bridge.mqtt import (
    Channel,
    CommandContext,
    CommandRouter,
    DiscoveryHelper,
    MQTTClient,
    StateUpdateHelper,
    TopicTable,
)
from heater_bridge.pairing import PairingWorkflow
from heater_bridge.poller import StatePoller
from heater_bridge.structs import BridgeEnv, GlobalObject, HeaterDriverProtocol, SharedDeviceState
from heater_bridge.utils import signal_handler

logger = get_logger(__name__)

# Suppress verbose MQTT library warnings
for _name in ("mqtt", "aiomqtt"):
    _lib_logger = logging.getLogger(_name)
    _lib_logger.setLevel(logging.ERROR)
    _lib_logger.propagate = False

g = GlobalObject()


class BridgeController:
    """Wires the driver, shared state, poller and broker session together and owns their lifecycle."""

    lp: str = "bridge:"

    def __init__(self, env: BridgeEnv, driver: HeaterDriverProtocol) -> None:
        self.env: BridgeEnv = env
        self.topics: TopicTable = TopicTable(env.mqtt_topic, env.mqtt_hass_topic)
        self.gateway: DriverGateway = DriverGateway(driver)
        self.state: SharedDeviceState = SharedDeviceState()
        self.address_store: AddressStore = AddressStore(env.address_file)

        self.mqtt: MQTTClient = MQTTClient(
            env,
            self.topics,
            on_message=self._on_message,
            on_connected=self._on_connected,
        )
        self.state_updates: StateUpdateHelper = StateUpdateHelper(self.mqtt, self.topics)
        self.discovery: DiscoveryHelper = DiscoveryHelper(self.mqtt, self.topics)
        self.router: CommandRouter = CommandRouter(
            self.topics,
            self.state_updates,
            self.discovery,
            PairingWorkflow(learn_timeout_ms=env.learn_timeout_ms),
            pair_timeout_ms=env.pair_timeout_ms,
        )
        self.poller: StatePoller = StatePoller(
            self.gateway,
            self.state,
            self.state_updates,
            interval=env.poll_interval,
            timeout_ms=env.poll_timeout_ms,
        )
        self.context: CommandContext = CommandContext(
            driver=self.gateway,
            state=self.state,
            address_store=self.address_store,
        )
        self.session_task: asyncio.Task[None] | None = None
        self._stop_event: asyncio.Event = asyncio.Event()

    async def start(self) -> None:
        """Bring the bridge up and run until a stop is requested, then shut down."""
        lp = f"{self.lp}start:"

        await self.gateway.initialize()

        address = self.address_store.load()
        if address:
            await self.gateway.set_address(address)
            self.state.set_address(address)
        else:
            logger.info("%s No heater paired yet, send ON to %s to pair", lp, self.topics.topic(Channel.PAIR_SET))

        self.session_task = asyncio.create_task(self.mqtt.start(), name="heater_mqtt_session")
        self.session_task.add_done_callback(self._on_session_done)
        logger.info("%s Bridge running", lp, extra={"version": HEATER_VERSION, "base_topic": self.topics.base})

        _ = await self._stop_event.wait()
        await self.shutdown()

    def request_stop(self) -> None:
        self._stop_event.set()

    def _on_session_done(self, task: asyncio.Task[None]) -> None:
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error("%s MQTT session ended unexpectedly: %r", self.lp, exc)
            self.request_stop()

    async def _on_connected(self) -> None:
        """Per-connection setup: subscriptions, discovery, poller (once), availability."""
        await self.mqtt.subscribe([*self.topics.command_topics, self.topics.hass_status])
        _ = await self.discovery.publish()
        self.poller.start()
        _ = await self.state_updates.publish_availability(True)

    async def _on_message(self, topic: str, payload: str) -> None:
        await self.router.handle(topic, payload, self.context)

    async def shutdown(self) -> None:
        lp = f"{self.lp}shutdown:"
        logger.info("%s Shutting down heater bridge...", lp)
        if self.session_task is not None and not self.session_task.done():
            _ = self.session_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self.session_task

        self.poller.stop()
        await self.poller.join()

        _ = await self.state_updates.publish_availability(False)
        await self.mqtt.stop()
        logger.info("%s Heater bridge stopped", lp)


def _set_package_log_level(level: int) -> None:
    """Module loggers have no level of their own and inherit this one."""
    logging.getLogger(HEATER_LOG_NAME).setLevel(level)


def parse_cli(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Diesel heater RF to MQTT bridge")
    _ = parser.add_argument(
        "-D",
        "--debug",
        action="store_true",
        help="Enable debug mode",
    )
    _ = parser.add_argument("--env", help="Path to the environment file", default=None, type=Path)
    g.cli_args = args = parser.parse_args(argv)

    if args.env:
        env_path = args.env.expanduser().resolve()
        if not env_path.exists():
            logger.error(
                "Environment file not found",
                extra={"path": str(env_path)},
            )
        elif dotenv.load_dotenv(env_path, override=True):
            logger.info(
                " Environment variables loaded",
                extra={"source": str(env_path)},
            )
        else:
            logger.warning(
                "No environment variables loaded from file",
                extra={"path": str(env_path)},
            )

    g.reload_env()

    if args.debug or os.environ.get("HEATER_DEBUG", "0").casefold() in YES_ANSWER:
        _set_package_log_level(logging.DEBUG)
        logger.info("Debug logging enabled")
    return args


def main() -> None:
    """Main entry point for the heater bridge."""
    exit_code = 0
    with correlation_context(WORK_PROCESS):
        logger.info("Starting heater bridge", extra={"version": HEATER_VERSION})
        try:
            _ = parse_cli()
        except ValidationError as e:
            logger.error(" Invalid configuration, heater bridge cannot start: %s", e, extra={"errors": e.error_count()})
            sys.exit(1)

        g.loop = uvloop.new_event_loop()
        asyncio.set_event_loop(g.loop)
        try:
            driver = load_driver(g.env.driver)
            g.controller = BridgeController(g.env, driver)
            g.loop.add_signal_handler(signal.SIGINT, partial(signal_handler, signal.SIGINT))
            g.loop.add_signal_handler(signal.SIGTERM, partial(signal_handler, signal.SIGTERM))
            g.loop.run_until_complete(g.controller.start())
        except HeaterBridgeError:
            logger.exception(" Fatal error, heater bridge cannot start")
            exit_code = 1
        except KeyboardInterrupt:
            logger.info("Keyboard interrupt received, shutting down...")
        else:
            logger.info(" Heater bridge stopped gracefully")
        finally:
            if not g.loop.is_closed():
                g.loop.close()
    if exit_code:
        sys.exit(exit_code)
