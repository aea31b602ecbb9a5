"""MQTT package for the Cocoro bridge.

- client.py: MQTTClient wrapping aiomqtt with the connection lifecycle
- discovery.py: Home Assistant device discovery
- command_routing.py: inbound command decoding and routing
- state_updates.py: device state publishing
"""

from .client import MQTTClient
from .command_routing import CommandRouter
from .discovery import DiscoveryHelper
from .state_updates import StateUpdateHelper

__all__ = [
    "CommandRouter",
    "DiscoveryHelper",
    "MQTTClient",
    "StateUpdateHelper",
]
