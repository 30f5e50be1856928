"""Home Assistant MQTT discovery for the heater.

Every entity belongs to one HA device whose identifier is the bridge's fixed
client id, so re-announcing after a reconnect or an HA restart updates the
existing entities instead of creating new ones.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from heater_bridge.const import (
    HEATER_MANUFACTURER,
    HEATER_MODEL,
    HEATER_MQTT_CLIENT_ID,
    HEATER_VERSION,
    MODE_AUTO,
    MODE_MANUAL,
    ORIGIN_STRUCT,
)
from heater_bridge.logging_abstraction import get_logger
from heater_bridge.mqtt.topics import Channel, TopicTable

if TYPE_CHECKING:
    from heater_bridge.mqtt.client import MQTTClient

logger = get_logger(__name__)

# (object_id, name, state channel, unit, device_class, state_class, icon)
SENSORS: tuple[tuple[str, str, Channel, str | None, str | None, str | None, str | None], ...] = (
    ("ambient_temp", "Ambient Temperature", Channel.AMBIENT_TEMP, "°C", "temperature", "measurement", None),
    ("case_temp", "Case Temperature", Channel.CASE_TEMP, "°C", "temperature", "measurement", None),
    ("voltage", "Supply Voltage", Channel.VOLTAGE, "V", "voltage", "measurement", None),
    ("pump_freq", "Pump Frequency", Channel.PUMP_FREQ, "Hz", "frequency", "measurement", "mdi:pump"),
    ("setpoint", "Setpoint", Channel.SETPOINT, None, None, "measurement", "mdi:thermostat"),
    ("state_code", "State Code", Channel.STATE_CODE, None, None, None, "mdi:numeric"),
    ("state", "State", Channel.STATE_TEXT, None, None, None, "mdi:fire"),
    ("rssi", "Signal Strength", Channel.RSSI, "dBm", "signal_strength", "measurement", None),
)


class DiscoveryHelper:
    """Builds and publishes retained HA discovery configs."""

    def __init__(self, mqtt_client: MQTTClient, topics: TopicTable) -> None:
        self.client: MQTTClient = mqtt_client
        self.topics: TopicTable = topics

    @property
    def device_registry_struct(self) -> dict[str, Any]:
        return {
            "identifiers": [HEATER_MQTT_CLIENT_ID],
            "name": "Diesel Heater",
            "manufacturer": HEATER_MANUFACTURER,
            "model": HEATER_MODEL,
            "sw_version": HEATER_VERSION,
        }

    def _base(self, object_id: str, name: str) -> dict[str, Any]:
        return {
            "name": name,
            "unique_id": f"{self.topics.node_id}_{object_id}",
            "object_id": f"{self.topics.node_id}_{object_id}",
            "availability_topic": self.topics.availability,
            "origin": ORIGIN_STRUCT,
            "device": self.device_registry_struct,
        }

    def entity_configs(self) -> dict[str, dict[str, Any]]:
        """Discovery topic -> config payload for every exposed entity."""
        topic = self.topics.topic
        configs: dict[str, dict[str, Any]] = {}

        power = self._base("power", "Power")
        power.update(
            {
                "command_topic": topic(Channel.POWER_SET),
                "state_topic": topic(Channel.POWER_STATE),
                "payload_on": "ON",
                "payload_off": "OFF",
                "icon": "mdi:radiator",
            },
        )
        configs[self.topics.discovery("switch", "power")] = power

        pair = self._base("pair", "Pair Remote")
        pair.update(
            {
                "command_topic": topic(Channel.PAIR_SET),
                "state_topic": topic(Channel.PAIR_STATE),
                "payload_on": "ON",
                "payload_off": "OFF",
                "icon": "mdi:link-variant",
                "entity_category": "config",
            },
        )
        configs[self.topics.discovery("switch", "pair")] = pair

        mode = self._base("mode", "Mode")
        mode.update(
            {
                "command_topic": topic(Channel.MODE_SET),
                "state_topic": topic(Channel.MODE_STATE),
                "options": [MODE_AUTO, MODE_MANUAL],
                "icon": "mdi:thermostat-auto",
            },
        )
        configs[self.topics.discovery("select", "mode")] = mode

        for object_id, name, channel, unit, device_class, state_class, icon in SENSORS:
            sensor = self._base(object_id, name)
            sensor["state_topic"] = topic(channel)
            if unit:
                sensor["unit_of_measurement"] = unit
            if device_class:
                sensor["device_class"] = device_class
            if state_class:
                sensor["state_class"] = state_class
            if icon:
                sensor["icon"] = icon
            if channel == Channel.RSSI:
                sensor["entity_category"] = "diagnostic"
            configs[self.topics.discovery("sensor", object_id)] = sensor

        return configs

    async def publish(self) -> bool:
        """Publish every discovery config (retained). Safe to call on every (re)connect."""
        lp = f"{self.client.lp}discovery:"
        configs = self.entity_configs()
        failed = 0
        for disc_topic, payload in configs.items():
            if not await self.client.publish_json(disc_topic, payload, retain=True):
                failed += 1
                logger.warning("%s Failed to publish discovery config to %s", lp, disc_topic)
        if failed:
            return False
        logger.info("%s Published %d discovery configs", lp, len(configs))
        return True
