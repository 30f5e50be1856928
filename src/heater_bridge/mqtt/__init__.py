"""MQTT side of the heater bridge.

- topics.py: channel names and the topic table
- client.py: broker session with reconnect and message dispatch
- command_routing.py: inbound commands -> driver actions
- state_updates.py: state, pairing and availability publishing
- discovery.py: Home Assistant discovery configs
"""

from .client import MQTTClient
from .command_routing import CommandContext, CommandRouter
from .discovery import DiscoveryHelper
from .state_updates import StateUpdateHelper
from .topics import COMMAND_CHANNELS, STATE_CHANNELS, Channel, TopicTable

__all__ = [
    "COMMAND_CHANNELS",
    "STATE_CHANNELS",
    "Channel",
    "CommandContext",
    "CommandRouter",
    "DiscoveryHelper",
    "MQTTClient",
    "StateUpdateHelper",
    "TopicTable",
]
