"""Broker session for the heater bridge.

Owns the ``aiomqtt`` client: connection with LWT, the reconnect loop, the
receiver that feeds inbound messages to a handler, and fire-and-forget publish
helpers that report failure instead of raising.
"""

from __future__ import annotations

import asyncio
import json
from collections.abc import Awaitable, Callable
from typing import Any

import aiomqtt

from heater_bridge.const import DEVICE_LWT_MSG, HEATER_MQTT_CLIENT_ID
from heater_bridge.correlation import WORK_MESSAGE, correlation_context
from heater_bridge.logging_abstraction import get_logger
from heater_bridge.mqtt.topics import TopicTable
from heater_bridge.structs import BridgeEnv

logger = get_logger(__name__)

MessageHandler = Callable[[str, str], Awaitable[None]]
ConnectedCallback = Callable[[], Awaitable[None]]


def _decode_payload(payload: Any) -> str:
    if payload is None:
        return ""
    if isinstance(payload, (bytes, bytearray)):
        return bytes(payload).decode("utf-8", errors="replace")
    return str(payload)


class MQTTClient:
    """Broker session adapter with automatic reconnect."""

    lp: str = "mqtt:"

    def __init__(
        self,
        env: BridgeEnv,
        topics: TopicTable,
        on_message: MessageHandler | None = None,
        on_connected: ConnectedCallback | None = None,
    ) -> None:
        self.env: BridgeEnv = env
        self.topics: TopicTable = topics
        self.on_message: MessageHandler | None = on_message
        self.on_connected: ConnectedCallback | None = on_connected
        self.client: aiomqtt.Client | None = None
        self.broker_client_id: str = HEATER_MQTT_CLIENT_ID
        self._connected: bool = False
        self.connect_count: int = 0

    @property
    def is_connected(self) -> bool:
        """Check if MQTT client is connected to the broker."""
        return self._connected

    def set_connected(self, connected: bool) -> None:
        self._connected = connected

    def _get_connection_delay(self, lp: str) -> int:
        """Get connection retry delay, defaulting to 5 seconds."""
        delay = self.env.mqtt_conn_delay
        if delay <= 0:
            logger.debug(
                "%s MQTT connection delay is less than or equal to 0, which is probably a typo, setting to 5...",
                lp,
            )
            return 5
        return delay

    async def connect(self) -> bool:
        lp = f"{self.lp}connect:"
        self._connected = False
        logger.debug("%s Connecting to MQTT broker %s:%s...", lp, self.env.mqtt_host, self.env.mqtt_port)
        lwt = aiomqtt.Will(topic=self.topics.availability, payload=DEVICE_LWT_MSG, qos=0, retain=True)
        self.client = aiomqtt.Client(
            hostname=self.env.mqtt_host,
            port=int(self.env.mqtt_port) if self.env.mqtt_port else 1883,
            username=self.env.mqtt_user,
            password=self.env.mqtt_pass,
            identifier=self.broker_client_id,
            will=lwt,
        )
        try:
            _ = await self.client.__aenter__()
        except aiomqtt.MqttError as mqtt_err_exc:
            # -> [Errno 111] Connection refused
            # [code:134] Bad user name or password
            if "code:134" in str(mqtt_err_exc) or "code:135" in str(mqtt_err_exc):
                logger.error(
                    "%s Broker rejected credentials, check your MQTT username/password (username: %s)",
                    lp,
                    self.env.mqtt_user,
                )
            else:
                logger.warning("%s Connection failed [MqttError] -> %s", lp, mqtt_err_exc)
            return False
        self._connected = True
        self.connect_count += 1
        logger.info(
            "%s Connected to MQTT broker: %s port: %s",
            lp,
            self.env.mqtt_host,
            self.env.mqtt_port,
            extra={"connect_count": self.connect_count},
        )
        return True

    async def start(self) -> None:
        """Connect, run the receiver, and reconnect whenever the session drops. Runs until cancelled."""
        lp = f"{self.lp}start:"
        while True:
            if await self.connect():
                try:
                    if self.on_connected is not None:
                        await self.on_connected()
                    await self._receive()
                except aiomqtt.MqttError as msg_err:
                    logger.warning("%s MQTT session lost: %s", lp, msg_err)
                    self._connected = False
                    continue
                # broker closed the message stream without an error
                self._connected = False
                continue
            delay = self._get_connection_delay(lp)
            logger.info(
                "%s connecting to MQTT broker failed, sleeping for %s seconds before re-trying...",
                lp,
                delay,
            )
            await asyncio.sleep(delay)

    async def subscribe(self, topics: list[str]) -> None:
        assert self.client is not None, "client must be initialized"
        for topic in topics:
            await self.client.subscribe(topic, qos=0)
        logger.debug("%s Subscribed to MQTT topics: %s", self.lp, topics)

    async def _receive(self) -> None:
        lp = f"{self.lp}rcv:"
        assert self.client is not None, "client must be initialized"
        logger.info("%s Waiting for MQTT messages...", lp)
        async for message in self.client.messages:
            topic = message.topic.value
            payload = _decode_payload(message.payload)
            with correlation_context(WORK_MESSAGE):
                logger.debug("%s >>> topic=%s payload=%r", lp, topic, payload)
                if self.on_message is None:
                    continue
                try:
                    await self.on_message(topic, payload)
                except asyncio.CancelledError:
                    raise
                except Exception:
                    logger.exception("%s Handler failed for topic %s", lp, topic)

    async def publish(self, topic: str, payload: str | bytes, retain: bool = False) -> bool:
        """Publish a message to the MQTT broker. Returns False instead of raising."""
        lp = f"{self.lp}publish:"
        if not self._connected or self.client is None:
            logger.debug("%s Not connected, dropping publish to %s", lp, topic)
            return False
        data = payload.encode() if isinstance(payload, str) else payload
        try:
            _ = await self.client.publish(topic, data, qos=0, retain=retain)
        except aiomqtt.MqttError as mqtt_err:
            logger.warning("%s [MqttError] -> %s", lp, mqtt_err)
            self._connected = False
        except Exception as e:
            logger.warning("%s [Exception] -> %s", lp, e)
        else:
            return True
        return False

    async def publish_json(self, topic: str, msg_data: dict[str, Any], retain: bool = False) -> bool:
        return await self.publish(topic, json.dumps(msg_data), retain=retain)

    async def stop(self) -> None:
        """Release the broker session."""
        lp = f"{self.lp}stop:"
        if self.client is None:
            return
        try:
            logger.debug("%s Disconnecting from broker...", lp)
            await self.client.__aexit__(None, None, None)
        except aiomqtt.MqttError as ce:
            logger.warning("%s MQTT disconnect failed: %s", lp, ce)
        except Exception as e:
            logger.warning("%s MQTT disconnect failed: %s", lp, e)
        else:
            logger.info("%s Disconnected from MQTT broker", lp)
        finally:
            self._connected = False
