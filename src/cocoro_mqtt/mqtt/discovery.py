"""MQTT discovery helpers for Home Assistant device registration.

Each air purifier is announced as one Home Assistant device carrying a fan,
a humidifier switch, two binary sensors and seven sensors.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from cocoro_mqtt.logging_abstraction import get_logger
from cocoro_mqtt.structs import AirVolume

if TYPE_CHECKING:
    from cocoro_mqtt.structs import BusClientProtocol, CocoroDeviceProtocol

logger = get_logger(__name__)

COMMAND_ATTRIBUTES: tuple[str, ...] = ("on", "mode", "humidifier")


@dataclass(frozen=True)
class DiscoveryEntity:
    """Static description of one Home Assistant entity of an air purifier.

    ``attribute`` is the state topic segment the entity's ``~`` points at;
    ``None`` roots ``~`` at the device itself (used by the fan, which reads
    several attributes).
    """

    component: str
    object_id: str
    name: str
    attribute: str | None
    fields: dict[str, object] = field(default_factory=dict)


DISCOVERY_ENTITIES: tuple[DiscoveryEntity, ...] = (
    DiscoveryEntity(
        "fan",
        "airpurifier",
        "Air Purifier",
        None,
        {
            "icon": "mdi:air-purifier",
            "state_topic": "~/on/state",
            "command_topic": "~/on/set",
            "preset_mode_state_topic": "~/mode/state",
            "preset_mode_command_topic": "~/mode/set",
            "preset_modes": [mode.value for mode in AirVolume],
        },
    ),
    DiscoveryEntity(
        "switch",
        "humidifier",
        "Humidifier",
        "humidifier",
        {"state_topic": "~/state", "command_topic": "~/set", "icon": "mdi:air-humidifier"},
    ),
    DiscoveryEntity(
        "binary_sensor",
        "light",
        "Light",
        "light",
        {"device_class": "light", "state_topic": "~/state"},
    ),
    DiscoveryEntity(
        "binary_sensor",
        "empty_water_tank",
        "Empty Water Tank",
        "empty_water_tank",
        {"device_class": "problem", "state_topic": "~/state", "icon": "mdi:water"},
    ),
    DiscoveryEntity(
        "sensor",
        "temperature",
        "Temperature",
        "temperature",
        {"device_class": "temperature", "state_topic": "~/state", "unit_of_measurement": "°C"},
    ),
    DiscoveryEntity(
        "sensor",
        "humidity",
        "Humidity",
        "humidity",
        {"device_class": "humidity", "state_topic": "~/state", "unit_of_measurement": "%"},
    ),
    DiscoveryEntity(
        "sensor",
        "air_cleaned",
        "Total Air Cleaned",
        "air_cleaned",
        {"device_class": "gas", "state_topic": "~/state", "unit_of_measurement": "m³"},
    ),
    DiscoveryEntity(
        "sensor",
        "pm25",
        "PM 2.5",
        "pm25",
        {"device_class": "pm25", "state_topic": "~/state", "unit_of_measurement": "µg/m³"},
    ),
    DiscoveryEntity(
        "sensor",
        "odor",
        "Odor",
        "odor",
        {"state_topic": "~/state", "icon": "mdi:scent", "unit_of_measurement": "%"},
    ),
    DiscoveryEntity(
        "sensor",
        "dust",
        "Dust",
        "dust",
        {"state_topic": "~/state", "icon": "mdi:broom", "unit_of_measurement": "%"},
    ),
    DiscoveryEntity(
        "sensor",
        "overall_dirtiness",
        "Overall Air Dirtiness",
        "overall_dirtiness",
        {"state_topic": "~/state", "icon": "mdi:delete", "unit_of_measurement": "%"},
    ),
)


def device_registry_struct(device: CocoroDeviceProtocol) -> dict[str, object]:
    return {
        "manufacturer": device.maker,
        "model": device.model,
        "name": device.name,
        "identifiers": [device.echonet_node],
    }


def discovery_payload(topic: str, device: CocoroDeviceProtocol, entity: DiscoveryEntity) -> dict[str, object]:
    """Build the discovery config for one entity of one device."""
    device_id = device.echonet_node
    base = f"{topic}/{device_id}"
    tilde = base if entity.attribute is None else f"{base}/{entity.attribute}"
    payload: dict[str, object] = {
        "~": tilde,
        "name": f"{device.name} {entity.name}",
        "unique_id": f"{device_id}_{entity.object_id}",
        "device": device_registry_struct(device),
    }
    payload.update(entity.fields)
    return payload


def discovery_messages(topic: str, ha_topic: str, device: CocoroDeviceProtocol) -> list[tuple[str, str]]:
    """Return ``(config_topic, json_payload)`` pairs for every entity of the device."""
    return [
        (
            f"{ha_topic}/{entity.component}/{entity.object_id}/{device.echonet_node}/config",
            json.dumps(discovery_payload(topic, device, entity), ensure_ascii=False),
        )
        for entity in DISCOVERY_ENTITIES
    ]


def command_topics(topic: str, device: CocoroDeviceProtocol) -> list[str]:
    return [f"{topic}/{device.echonet_node}/{attr}/set" for attr in COMMAND_ATTRIBUTES]


class DiscoveryHelper:
    """Helper class for MQTT discovery operations."""

    def __init__(self, mqtt_client: BusClientProtocol) -> None:
        self.client: BusClientProtocol = mqtt_client

    async def subscribe_device(self, device: CocoroDeviceProtocol) -> None:
        """Subscribe to the command topics of the device."""
        await self.client.subscribe(*command_topics(self.client.topic, device))

    async def register_device(self, device: CocoroDeviceProtocol) -> bool:
        """Register a single device with Home Assistant via MQTT discovery."""
        lp = "mqtt:hass:"
        messages = discovery_messages(self.client.topic, self.client.ha_topic, device)
        ok = True
        for config_topic, payload in messages:
            if not await self.client.publish(config_topic, payload):
                ok = False
        if ok:
            logger.info(
                "%s Registered '%s' (%s) with %d entities",
                lp,
                device.name,
                device.echonet_node,
                len(messages),
            )
        else:
            logger.warning("%s Some discovery messages for '%s' were not published", lp, device.name)
        return ok
