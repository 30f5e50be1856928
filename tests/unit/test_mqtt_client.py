"""
Unit tests for the MQTT session adapter.
"""

import asyncio
from unittest.mock import AsyncMock, MagicMock, patch

import aiomqtt
import pytest

from heater_bridge.mqtt.client import MQTTClient
from heater_bridge.structs import BridgeEnv

# Filter deprecation warning from aiomqtt.client module
pytestmark = pytest.mark.filterwarnings("ignore:There is no current event loop:DeprecationWarning:aiomqtt.client")


@pytest.fixture
def env():
    return BridgeEnv(
        mqtt_host="broker.lan",
        mqtt_port=1884,
        mqtt_user="heater",
        mqtt_pass="secret",
        mqtt_topic="diesel_heater",
        mqtt_conn_delay=0,
    )


@pytest.fixture
def client(env, topics):
    return MQTTClient(env, topics)


def make_message(topic, payload):
    msg = MagicMock()
    msg.topic.value = topic
    msg.payload = payload
    return msg


class FakeMessages:
    def __init__(self, messages):
        self._messages = list(messages)

    def __aiter__(self):
        return self

    async def __anext__(self):
        if not self._messages:
            raise StopAsyncIteration
        return self._messages.pop(0)


class TestConnect:
    @pytest.mark.asyncio
    async def test_connect_success(self, client):
        with patch("heater_bridge.mqtt.client.aiomqtt.Client") as mock_client_cls:
            mock_client_cls.return_value.__aenter__ = AsyncMock()
            assert await client.connect() is True

        assert client.is_connected is True
        kwargs = mock_client_cls.call_args.kwargs
        assert kwargs["hostname"] == "broker.lan"
        assert kwargs["port"] == 1884
        assert kwargs["username"] == "heater"
        assert kwargs["password"] == "secret"
        assert kwargs["identifier"] == "diesel-heater-bridge"
        will = kwargs["will"]
        assert will.topic == "diesel_heater/status"
        assert will.payload == b"offline"
        assert will.retain is True

    @pytest.mark.asyncio
    async def test_connect_refused(self, client):
        with patch("heater_bridge.mqtt.client.aiomqtt.Client") as mock_client_cls:
            mock_client_cls.return_value.__aenter__ = AsyncMock(side_effect=aiomqtt.MqttError("[Errno 111]"))
            assert await client.connect() is False
        assert client.is_connected is False

    @pytest.mark.asyncio
    async def test_bad_credentials_do_not_terminate(self, client):
        with (
            patch("heater_bridge.mqtt.client.aiomqtt.Client") as mock_client_cls,
            patch("os.kill") as mock_kill,
        ):
            mock_client_cls.return_value.__aenter__ = AsyncMock(
                side_effect=aiomqtt.MqttError("[code:134] Bad user name or password"),
            )
            assert await client.connect() is False
        mock_kill.assert_not_called()


class TestStartLoop:
    def test_connection_delay_fallback(self, client):
        assert client._get_connection_delay("test:") == 5
        client.env = client.env.model_copy(update={"mqtt_conn_delay": 2})
        assert client._get_connection_delay("test:") == 2

    @pytest.mark.asyncio
    async def test_retries_and_reconnects(self, client):
        on_connected = AsyncMock()
        client.on_connected = on_connected
        with (
            patch.object(client, "connect", AsyncMock(side_effect=[False, True, asyncio.CancelledError()])) as connect,
            patch.object(client, "_receive", AsyncMock(side_effect=aiomqtt.MqttError("lost"))),
            patch("heater_bridge.mqtt.client.asyncio.sleep", new_callable=AsyncMock) as mock_sleep,
        ):
            with pytest.raises(asyncio.CancelledError):
                await client.start()

        assert connect.await_count == 3
        on_connected.assert_awaited_once()
        mock_sleep.assert_awaited_once_with(5)
        assert client.is_connected is False


class TestReceive:
    @pytest.mark.asyncio
    async def test_dispatches_decoded_messages(self, client):
        handler = AsyncMock(side_effect=[RuntimeError("handler bug"), None, None])
        client.on_message = handler
        client.client = MagicMock()
        client.client.messages = FakeMessages(
            [
                make_message("diesel_heater/power/set", b"ON"),
                make_message("diesel_heater/mode/set", b"auto"),
                make_message("diesel_heater/cmd/up", None),
            ],
        )

        await client._receive()

        assert [c.args for c in handler.await_args_list] == [
            ("diesel_heater/power/set", "ON"),
            ("diesel_heater/mode/set", "auto"),
            ("diesel_heater/cmd/up", ""),
        ]


class TestPublish:
    @pytest.mark.asyncio
    async def test_not_connected(self, client):
        client.client = MagicMock()
        client.client.publish = AsyncMock()
        assert await client.publish("diesel_heater/voltage", "12.1") is False
        client.client.publish.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_publish_encodes_and_retains(self, client):
        client.client = MagicMock()
        client.client.publish = AsyncMock()
        client.set_connected(True)
        assert await client.publish("diesel_heater/status", "online", retain=True) is True
        client.client.publish.assert_awaited_once_with("diesel_heater/status", b"online", qos=0, retain=True)

    @pytest.mark.asyncio
    async def test_publish_error_marks_disconnected(self, client):
        client.client = MagicMock()
        client.client.publish = AsyncMock(side_effect=aiomqtt.MqttError("gone"))
        client.set_connected(True)
        assert await client.publish("diesel_heater/voltage", "12.1") is False
        assert client.is_connected is False

    @pytest.mark.asyncio
    async def test_publish_json(self, client):
        client.client = MagicMock()
        client.client.publish = AsyncMock()
        client.set_connected(True)
        assert await client.publish_json("t/config", {"name": "Power"}, retain=True) is True
        client.client.publish.assert_awaited_once_with("t/config", b'{"name": "Power"}', qos=0, retain=True)


class TestStop:
    @pytest.mark.asyncio
    async def test_stop_releases_session(self, client):
        client.client = MagicMock()
        client.client.__aexit__ = AsyncMock()
        client.set_connected(True)
        await client.stop()
        client.client.__aexit__.assert_awaited_once_with(None, None, None)
        assert client.is_connected is False

    @pytest.mark.asyncio
    async def test_stop_tolerates_disconnect_error(self, client):
        client.client = MagicMock()
        client.client.__aexit__ = AsyncMock(side_effect=aiomqtt.MqttError("already gone"))
        client.set_connected(True)
        await client.stop()
        assert client.is_connected is False
