"""Logical MQTT channels and their full topic names."""

from __future__ import annotations

from enum import StrEnum

from heater_bridge.const import HEATER_HASS_STATUS_TOPIC, HEATER_MQTT_CLIENT_ID


class Channel(StrEnum):
    """Topic suffix below the bridge's base prefix."""

    # commands (subscribed)
    POWER_SET = "power/set"
    MODE_SET = "mode/set"
    PAIR_SET = "pair/set"
    CMD_WAKEUP = "cmd/wakeup"
    CMD_MODE = "cmd/mode"
    CMD_POWER = "cmd/power"
    CMD_UP = "cmd/up"
    CMD_DOWN = "cmd/down"

    # state (published)
    POWER_STATE = "power/state"
    MODE_STATE = "mode/state"
    PAIR_STATE = "pair/state"
    STATE_RAW = "state/raw"
    STATE_TEXT = "state/text"
    STATE_CODE = "state_code"
    AMBIENT_TEMP = "ambient_temp"
    CASE_TEMP = "case_temp"
    VOLTAGE = "voltage"
    PUMP_FREQ = "pump_freq"
    SETPOINT = "setpoint"
    RSSI = "rssi"
    AVAILABILITY = "status"


COMMAND_CHANNELS: frozenset[Channel] = frozenset(
    {
        Channel.POWER_SET,
        Channel.MODE_SET,
        Channel.PAIR_SET,
        Channel.CMD_WAKEUP,
        Channel.CMD_MODE,
        Channel.CMD_POWER,
        Channel.CMD_UP,
        Channel.CMD_DOWN,
    },
)
STATE_CHANNELS: frozenset[Channel] = frozenset(set(Channel) - COMMAND_CHANNELS)


class TopicTable:
    """Map channels to topics under one base prefix, plus the Home Assistant topics."""

    def __init__(self, base: str, hass_prefix: str = "homeassistant") -> None:
        self.base: str = base.strip("/") or "diesel_heater"
        self.hass_prefix: str = hass_prefix.strip("/") or "homeassistant"
        self._by_topic: dict[str, Channel] = {self.topic(ch): ch for ch in Channel}

    def topic(self, channel: Channel) -> str:
        return f"{self.base}/{channel.value}"

    def channel_for(self, topic: str) -> Channel | None:
        return self._by_topic.get(topic)

    @property
    def command_topics(self) -> list[str]:
        return sorted(self.topic(ch) for ch in COMMAND_CHANNELS)

    @property
    def availability(self) -> str:
        return self.topic(Channel.AVAILABILITY)

    @property
    def hass_status(self) -> str:
        """Topic Home Assistant announces its own birth/will on."""
        return f"{self.hass_prefix}/{HEATER_HASS_STATUS_TOPIC}"

    @property
    def node_id(self) -> str:
        return HEATER_MQTT_CLIENT_ID.replace("-", "_")

    def discovery(self, component: str, object_id: str) -> str:
        """``<hass_prefix>/<component>/<node_id>/<object_id>/config``"""
        return f"{self.hass_prefix}/{component}/{self.node_id}/{object_id}/config"
