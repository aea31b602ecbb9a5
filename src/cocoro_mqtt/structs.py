"""Core data structures and typing protocols for the Cocoro MQTT bridge."""

from __future__ import annotations

from collections.abc import AsyncIterator, Sequence
from contextlib import AbstractAsyncContextManager
from enum import StrEnum
from typing import Protocol

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class AirVolume(StrEnum):
    """Operating presets accepted by the air purifier (the fan preset modes)."""

    AUTO = "auto"
    NIGHT = "night"
    POLLEN = "pollen"
    QUIET = "quiet"
    MEDIUM = "medium"
    STRONG = "strong"
    OMAKASE = "omakase"
    POWERFUL = "powerful"


class StatusSnapshot(BaseModel):
    """Point-in-time read of an air purifier's sensed and actuated values.

    Created by every fetch and published right away; never cached.
    """

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    power_on: bool
    air_volume: str
    humidifier_on: bool
    light_detected: bool
    enough_water: bool
    temperature: int | float
    humidity: int | float
    total_air_cleaned: int | float
    pm25: int | float
    odor: int | float
    dust: int | float
    overall_dirtiness: int | float


class CocoroDeviceProtocol(Protocol):
    """Protocol for a controllable Cocoro device handle."""

    echonet_node: str
    name: str
    maker: str
    model: str
    type: str

    async def fetch_status(self) -> StatusSnapshot:
        """Fetch the latest status from the cloud API."""
        ...

    async def set_power_on(self, on: bool) -> None:
        """Turn the device on or off."""
        ...

    async def set_humidifier_on(self, on: bool) -> None:
        """Turn the humidifier on or off."""
        ...

    async def set_air_volume(self, air_volume: str) -> None:
        """Switch the operating preset."""
        ...


class CocoroClientProtocol(Protocol):
    """Protocol for the cloud API client as seen by the device registry."""

    async def devices(self) -> Sequence[CocoroDeviceProtocol]:
        """Enumerate every device on the account."""
        ...


class BusClientProtocol(Protocol):
    """Protocol for the MQTT client as seen by the bridge."""

    topic: str
    ha_topic: str

    def connect(self) -> AbstractAsyncContextManager[BusClientProtocol]:
        """Connect to the broker for the duration of the context."""
        ...

    async def subscribe(self, *topics: str) -> None:
        """Subscribe to the given topics."""
        ...

    async def publish(self, topic: str, payload: str | bytes, retain: bool = False) -> bool:
        """Publish a message, returning False if the broker rejected it."""
        ...

    def receive(self) -> AsyncIterator[tuple[str, bytes]]:
        """Yield (topic, payload) pairs as messages arrive."""
        ...
