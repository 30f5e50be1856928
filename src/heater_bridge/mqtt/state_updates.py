"""Publishing of heater state, pairing pulses and bridge availability."""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

from heater_bridge.const import HEATER_AVAILABILITY_OFFLINE, HEATER_AVAILABILITY_ONLINE, MODE_AUTO, MODE_MANUAL
from heater_bridge.logging_abstraction import get_logger
from heater_bridge.mqtt.topics import Channel, TopicTable
from heater_bridge.state_classifier import is_on, state_text

if TYPE_CHECKING:
    from heater_bridge.mqtt.client import MQTTClient
    from heater_bridge.structs import DeviceStateSnapshot

logger = get_logger(__name__)


def _on_off(flag: bool) -> str:
    return "ON" if flag else "OFF"


class StateUpdateHelper:
    """Helper class for publishing heater state updates to MQTT."""

    def __init__(self, mqtt_client: MQTTClient, topics: TopicTable) -> None:
        """Initialize the state update helper.

        Args:
            mqtt_client: MQTTClient instance used for every publish
            topics: Topic table for the bridge's base prefix

        """
        self.client: MQTTClient = mqtt_client
        self.topics: TopicTable = topics

    async def publish_power(self, on: bool) -> bool:
        return await self.client.publish(self.topics.topic(Channel.POWER_STATE), _on_off(on))

    async def publish_mode(self, mode: str) -> bool:
        return await self.client.publish(self.topics.topic(Channel.MODE_STATE), mode)

    async def publish_pair_state(self, active: bool) -> bool:
        return await self.client.publish(self.topics.topic(Channel.PAIR_STATE), _on_off(active))

    async def publish_availability(self, online: bool) -> bool:
        """Retained bridge liveness; the broker publishes ``offline`` for us via LWT on an unclean drop."""
        payload = HEATER_AVAILABILITY_ONLINE if online else HEATER_AVAILABILITY_OFFLINE
        logger.debug("%s Publishing availability: %s", self.client.lp, payload)
        return await self.client.publish(self.topics.availability, payload, retain=True)

    async def publish_snapshot(self, snapshot: DeviceStateSnapshot) -> bool:
        """Publish every telemetry field, derived power/mode and the JSON aggregate.

        Returns True only when every publish went out.
        """
        lp = f"{self.client.lp}publish_snapshot:"
        topic = self.topics.topic
        text = state_text(snapshot.state_code)
        mode = MODE_AUTO if snapshot.auto_mode else MODE_MANUAL
        scalars: dict[Channel, str] = {
            Channel.AMBIENT_TEMP: str(snapshot.ambient_temp),
            Channel.CASE_TEMP: str(snapshot.case_temp),
            Channel.VOLTAGE: str(snapshot.voltage),
            Channel.PUMP_FREQ: str(snapshot.pump_freq),
            Channel.SETPOINT: str(snapshot.setpoint),
            Channel.STATE_CODE: str(snapshot.state_code),
            Channel.STATE_TEXT: text,
            Channel.RSSI: str(snapshot.rssi),
            Channel.POWER_STATE: _on_off(is_on(snapshot.state_code)),
            Channel.MODE_STATE: mode,
        }
        raw = snapshot.model_dump()
        raw["state"] = text

        results = await asyncio.gather(
            *(self.client.publish(topic(channel), value) for channel, value in scalars.items()),
            self.client.publish_json(topic(Channel.STATE_RAW), raw),
        )
        ok = all(results)
        if not ok:
            logger.debug("%s %d of %d publishes failed", lp, results.count(False), len(results))
        return ok
