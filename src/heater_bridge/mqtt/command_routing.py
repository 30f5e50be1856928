"""MQTT command routing for the heater.

Maps inbound topic/payload pairs onto driver actions. Power requests are
checked against the last polled state so a repeated ``ON`` never toggles a
running heater off.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from heater_bridge.const import (
    HEATER_HASS_BIRTH_MSG,
    HEATER_HASS_WILL_MSG,
    HEATER_PAIR_TIMEOUT_MS,
    MAX_DEVICE_ADDRESS,
    MODE_AUTO,
    MODE_MANUAL,
)
from heater_bridge.exceptions import DriverError
from heater_bridge.logging_abstraction import get_logger
from heater_bridge.mqtt.topics import COMMAND_CHANNELS, Channel, TopicTable
from heater_bridge.state_classifier import is_on
from heater_bridge.structs import CommandKind

if TYPE_CHECKING:
    from heater_bridge.address_store import AddressStore
    from heater_bridge.driver import DriverGateway
    from heater_bridge.mqtt.discovery import DiscoveryHelper
    from heater_bridge.mqtt.state_updates import StateUpdateHelper
    from heater_bridge.pairing import PairingWorkflow
    from heater_bridge.structs import SharedDeviceState

logger = get_logger(__name__)

RAW_COMMANDS: dict[Channel, CommandKind] = {
    Channel.CMD_WAKEUP: CommandKind.WAKEUP,
    Channel.CMD_MODE: CommandKind.MODE,
    Channel.CMD_POWER: CommandKind.POWER,
    Channel.CMD_UP: CommandKind.UP,
    Channel.CMD_DOWN: CommandKind.DOWN,
}


@dataclass
class CommandContext:
    """Collaborators a command may touch."""

    driver: DriverGateway
    state: SharedDeviceState
    address_store: AddressStore


class CommandRouter:
    """Helper class for routing MQTT messages to heater actions."""

    lp: str = "router:"

    def __init__(
        self,
        topics: TopicTable,
        state_updates: StateUpdateHelper,
        discovery: DiscoveryHelper,
        pairing: PairingWorkflow,
        pair_timeout_ms: int = HEATER_PAIR_TIMEOUT_MS,
    ) -> None:
        self.topics: TopicTable = topics
        self.state_updates: StateUpdateHelper = state_updates
        self.discovery: DiscoveryHelper = discovery
        self.pairing: PairingWorkflow = pairing
        self.pair_timeout_ms: int = pair_timeout_ms

    async def handle(self, topic: str, payload: str, ctx: CommandContext) -> None:
        lp = f"{self.lp}handle:"
        if topic == self.topics.hass_status:
            await self._handle_hass_status(payload)
            return

        channel = self.topics.channel_for(topic)
        if channel not in COMMAND_CHANNELS:
            logger.debug("%s Ignoring message on unhandled topic %s", lp, topic)
            return
        if channel not in RAW_COMMANDS and not payload.strip():
            logger.debug("%s Empty payload on %s, skipping...", lp, topic)
            return

        if channel == Channel.PAIR_SET:
            await self._handle_pair(payload, ctx)
            return

        if not ctx.state.is_paired:
            logger.debug("%s No heater address yet, dropping %s", lp, channel.value)
            return

        if channel in RAW_COMMANDS:
            _ = await self._send(ctx, RAW_COMMANDS[channel])
        elif channel == Channel.POWER_SET:
            await self._handle_power(payload, ctx)
        elif channel == Channel.MODE_SET:
            await self._handle_mode(payload, ctx)

    async def _send(self, ctx: CommandContext, cmd: CommandKind) -> bool:
        try:
            await ctx.driver.send_command(cmd)
        except DriverError as e:
            logger.error("%s Sending %s failed: %s", self.lp, cmd.name, e.reason)
            return False
        return True

    async def _handle_power(self, payload: str, ctx: CommandContext) -> None:
        lp = f"{self.lp}power:"
        intent = payload.strip().upper()
        if intent not in ("ON", "OFF"):
            logger.debug("%s Ignoring power payload %r", lp, payload)
            return
        want_on = intent == "ON"
        snapshot = ctx.state.snapshot
        observed_on = snapshot is not None and is_on(snapshot.state_code)
        if want_on != observed_on:
            if not await self._send(ctx, CommandKind.POWER):
                return
        else:
            logger.info("%s Heater already %s, not toggling", lp, intent)
        _ = await self.state_updates.publish_power(want_on)

    async def _handle_mode(self, payload: str, ctx: CommandContext) -> None:
        if not await self._send(ctx, CommandKind.MODE):
            return
        mode = payload.strip()
        if mode in (MODE_AUTO, MODE_MANUAL):
            _ = await self.state_updates.publish_mode(mode)

    async def _handle_pair(self, payload: str, ctx: CommandContext) -> None:
        lp = f"{self.lp}pair:"
        if payload.strip().upper() != "ON":
            logger.debug("%s Ignoring pair payload %r", lp, payload)
            return
        _ = await self.state_updates.publish_pair_state(True)
        try:
            address = await self.pairing.pair(ctx.driver, self.pair_timeout_ms)
            if address is not None and not 0 < address <= MAX_DEVICE_ADDRESS:
                logger.warning("%s Discarding learned address %r, not a 32-bit heater address", lp, address)
                address = None
            if address is not None:
                await ctx.driver.set_address(address)
                ctx.state.set_address(address)
                _ = ctx.address_store.save(address)
        except DriverError as e:
            logger.error("%s Pairing aborted by driver error: %s", lp, e.reason)
        finally:
            _ = await self.state_updates.publish_pair_state(False)

    async def _handle_hass_status(self, payload: str) -> None:
        lp = f"{self.lp}hass_status:"
        status = payload.strip()
        if status == HEATER_HASS_BIRTH_MSG:
            logger.info("%s Home Assistant is online, re-announcing discovery", lp)
            _ = await self.discovery.publish()
            _ = await self.state_updates.publish_availability(True)
        elif status == HEATER_HASS_WILL_MSG:
            logger.info("%s Home Assistant went offline", lp)
        else:
            logger.debug("%s Ignoring Home Assistant status %r", lp, payload)
