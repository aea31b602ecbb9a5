"""Shared fixtures for unit tests.

Provides in-memory stand-ins for the cloud API, its devices and the MQTT bus
so the bridge can be exercised without a broker or network access.
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager
from dataclasses import dataclass, field

import pytest

from cocoro_mqtt.bridge import CocoroBridge
from cocoro_mqtt.exceptions import CocoroApiError
from cocoro_mqtt.structs import StatusSnapshot

StatusFactory = Callable[..., StatusSnapshot]


def make_status(**overrides: object) -> StatusSnapshot:
    """Return a status snapshot with plausible values, overridden by keyword."""
    values: dict[str, object] = {
        "power_on": True,
        "air_volume": "auto",
        "humidifier_on": False,
        "light_detected": True,
        "enough_water": True,
        "temperature": 22,
        "humidity": 45,
        "total_air_cleaned": 1234,
        "pm25": 8,
        "odor": 10,
        "dust": 5,
        "overall_dirtiness": 12,
    }
    values.update(overrides)
    return StatusSnapshot.model_validate(values)


@dataclass
class FakeDevice:
    """Device handle recording every call made against it."""

    echonet_node: str
    name: str = "Living Room"
    maker: str = "SHARP"
    model: str = "KI-NX75"
    type: str = "AIR_CLEANER"
    status: StatusSnapshot = field(default_factory=make_status)
    fetch_delay: float = 0.0
    fetch_error: CocoroApiError | None = None
    control_error: CocoroApiError | None = None
    calls: list[tuple[str, object]] = field(default_factory=list)

    async def fetch_status(self) -> StatusSnapshot:
        self.calls.append(("fetch_status", None))
        if self.fetch_delay:
            await asyncio.sleep(self.fetch_delay)
        if self.fetch_error is not None:
            raise self.fetch_error
        return self.status

    async def _control(self, name: str, value: object) -> None:
        self.calls.append((name, value))
        if self.control_error is not None:
            raise self.control_error

    async def set_power_on(self, on: bool) -> None:
        await self._control("set_power_on", on)

    async def set_humidifier_on(self, on: bool) -> None:
        await self._control("set_humidifier_on", on)

    async def set_air_volume(self, air_volume: str) -> None:
        await self._control("set_air_volume", air_volume)

    def call_names(self) -> list[str]:
        return [name for name, _ in self.calls]


@dataclass
class FakeCloud:
    """Cloud client serving a fixed device list."""

    listing: list[FakeDevice] = field(default_factory=list)
    calls: int = 0

    async def devices(self) -> list[FakeDevice]:
        self.calls += 1
        return list(self.listing)


@dataclass
class FakeBus:
    """MQTT client double: records publishes and subscriptions, replays scripted messages."""

    topic: str = "cocoro"
    ha_topic: str = "homeassistant"
    published: list[tuple[str, str | bytes, bool]] = field(default_factory=list)
    subscribed: list[str] = field(default_factory=list)
    incoming: list[tuple[str, bytes]] = field(default_factory=list)
    connected: bool = False
    publish_ok: bool = True

    @asynccontextmanager
    async def connect(self) -> AsyncIterator[FakeBus]:
        self.connected = True
        try:
            yield self
        finally:
            self.connected = False

    async def subscribe(self, *topics: str) -> None:
        self.subscribed.extend(topics)

    async def publish(self, topic: str, payload: str | bytes, retain: bool = False) -> bool:
        self.published.append((topic, payload, retain))
        return self.publish_ok

    async def receive(self) -> AsyncIterator[tuple[str, bytes]]:
        for message in self.incoming:
            yield message

    def topics(self) -> list[str]:
        return [topic for topic, _, _ in self.published]

    def state_payloads(self) -> dict[str, str | bytes]:
        return {topic: payload for topic, payload, _ in self.published if topic.endswith("/state")}


@pytest.fixture
def status_factory() -> StatusFactory:
    """Build status snapshots with selected fields overridden."""
    return make_status


@pytest.fixture
def device() -> FakeDevice:
    return FakeDevice(echonet_node="abc123")


@pytest.fixture
def cloud(device: FakeDevice) -> FakeCloud:
    return FakeCloud(listing=[device])


@pytest.fixture
def bus() -> FakeBus:
    return FakeBus()


@pytest.fixture
def bridge(cloud: FakeCloud, bus: FakeBus) -> CocoroBridge:
    """Bridge wired to the in-memory cloud and bus; the bus is not connected."""
    return CocoroBridge(cocoro_client=cloud, mqtt_client=bus, interval=0)
