"""
Unit tests for the MQTT topic table.
"""

from heater_bridge.mqtt.topics import COMMAND_CHANNELS, STATE_CHANNELS, Channel, TopicTable


class TestChannels:
    def test_command_and_state_disjoint(self):
        assert not COMMAND_CHANNELS & STATE_CHANNELS
        assert COMMAND_CHANNELS | STATE_CHANNELS == set(Channel)

    def test_command_channels(self):
        assert {ch.value for ch in COMMAND_CHANNELS} == {
            "power/set",
            "mode/set",
            "pair/set",
            "cmd/wakeup",
            "cmd/mode",
            "cmd/power",
            "cmd/up",
            "cmd/down",
        }


class TestTopicTable:
    def test_topics_under_base(self, topics):
        assert topics.topic(Channel.POWER_SET) == "diesel_heater/power/set"
        assert topics.topic(Channel.STATE_TEXT) == "diesel_heater/state/text"
        assert topics.availability == "diesel_heater/status"

    def test_every_topic_under_base(self, topics):
        assert all(topics.topic(ch).startswith("diesel_heater/") for ch in Channel)

    def test_command_topics(self, topics):
        assert len(topics.command_topics) == 8
        assert "diesel_heater/pair/set" in topics.command_topics
        assert "diesel_heater/power/state" not in topics.command_topics

    def test_channel_for(self, topics):
        assert topics.channel_for("diesel_heater/mode/set") is Channel.MODE_SET
        assert topics.channel_for("diesel_heater/bogus") is None
        assert topics.channel_for("other/mode/set") is None

    def test_base_slashes_trimmed(self):
        table = TopicTable("/garage/heater/", "ha/")
        assert table.topic(Channel.VOLTAGE) == "garage/heater/voltage"
        assert table.hass_status == "ha/status"

    def test_hass_topics(self, topics):
        assert topics.hass_status == "homeassistant/status"
        assert topics.discovery("sensor", "voltage") == "homeassistant/sensor/diesel_heater_bridge/voltage/config"
