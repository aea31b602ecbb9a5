"""MQTT state publishing for Cocoro devices.

Translates a ``StatusSnapshot`` into the per-attribute ``<topic>/<id>/<attr>/state``
messages that the Home Assistant entities listen on.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from cocoro_mqtt.logging_abstraction import get_logger

if TYPE_CHECKING:
    from cocoro_mqtt.structs import BusClientProtocol, CocoroDeviceProtocol, StatusSnapshot

logger = get_logger(__name__)

STATE_ATTRIBUTES: tuple[str, ...] = (
    "on",
    "mode",
    "humidifier",
    "light",
    "empty_water_tank",
    "temperature",
    "humidity",
    "air_cleaned",
    "pm25",
    "odor",
    "dust",
    "overall_dirtiness",
)


def on_off(value: bool) -> str:
    return "ON" if value else "OFF"


def state_topic(topic: str, device_id: str, attribute: str) -> str:
    return f"{topic}/{device_id}/{attribute}/state"


def status_messages(topic: str, device_id: str, status: StatusSnapshot) -> list[tuple[str, str]]:
    """Map a status snapshot to ``(topic, payload)`` pairs, one per attribute.

    The water tank sensor is exposed as a "problem" binary sensor, so it reads
    ON when the tank is empty: the inverse of ``enough_water``.
    """
    values: dict[str, str] = {
        "on": on_off(status.power_on),
        "mode": status.air_volume,
        "humidifier": on_off(status.humidifier_on),
        "light": on_off(status.light_detected),
        "empty_water_tank": on_off(not status.enough_water),
        "temperature": str(status.temperature),
        "humidity": str(status.humidity),
        "air_cleaned": str(status.total_air_cleaned),
        "pm25": str(status.pm25),
        "odor": str(status.odor),
        "dust": str(status.dust),
        "overall_dirtiness": str(status.overall_dirtiness),
    }
    return [(state_topic(topic, device_id, attr), values[attr]) for attr in STATE_ATTRIBUTES]


class StateUpdateHelper:
    """Helper class for publishing device state updates to MQTT."""

    def __init__(self, mqtt_client: BusClientProtocol) -> None:
        self.client: BusClientProtocol = mqtt_client

    async def publish_device_state(self, device: CocoroDeviceProtocol, status: StatusSnapshot) -> int:
        """Publish every state message for the device; returns how many the broker accepted."""
        lp = "mqtt:publish_device_state:"
        published = 0
        for topic, payload in status_messages(self.client.topic, device.echonet_node, status):
            if await self.client.publish(topic, payload):
                published += 1
        if published < len(STATE_ATTRIBUTES):
            logger.warning(
                "%s Only %d of %d state messages for '%s' were published",
                lp,
                published,
                len(STATE_ATTRIBUTES),
                device.name,
            )
        return published
