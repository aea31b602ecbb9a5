"""Bridge between the Cocoro Air cloud API and MQTT.

Two long-running tasks share the device registry and a single lock:

- the publisher refreshes every device on a fixed interval
- the subscriber executes inbound commands one at a time and refreshes the
  device each command touched

Every remote call runs under the lock, so at most one request is in flight
against the cloud API at any time, whichever task issued it.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING, TypeVar

from cocoro_mqtt.const import (
    COCORO_DEFAULT_INTERVAL,
    PUBLISHER_TASK_NAME,
    SUBSCRIBER_TASK_NAME,
)
from cocoro_mqtt.correlation import correlation_context, ensure_correlation_id
from cocoro_mqtt.exceptions import CocoroApiError
from cocoro_mqtt.instrumentation import timed_async
from cocoro_mqtt.logging_abstraction import CocoroLogger, get_logger
from cocoro_mqtt.mqtt.command_routing import CommandRouter
from cocoro_mqtt.mqtt.discovery import DiscoveryHelper
from cocoro_mqtt.mqtt.state_updates import StateUpdateHelper
from cocoro_mqtt.registry import DeviceRegistry

if TYPE_CHECKING:
    from cocoro_mqtt.structs import (
        BusClientProtocol,
        CocoroClientProtocol,
        CocoroDeviceProtocol,
        StatusSnapshot,
    )

T = TypeVar("T")


class CocoroBridge:
    """Coordinator owning the registry, the lock and the two bridge loops."""

    lp: str = "CocoroBridge:"

    def __init__(
        self,
        cocoro_client: CocoroClientProtocol,
        mqtt_client: BusClientProtocol,
        interval: float = COCORO_DEFAULT_INTERVAL,
        logger: CocoroLogger | None = None,
        lock: asyncio.Lock | None = None,
    ) -> None:
        """Initialize the bridge.

        Args:
            cocoro_client: cloud API client used to enumerate devices
            mqtt_client: MQTT client used for discovery, state and commands
            interval: seconds to sleep between two publisher cycles
            logger: logger to use instead of the module logger
            lock: guard shared by both loops (a fresh lock if omitted)

        """
        self.cocoro: CocoroClientProtocol = cocoro_client
        self.mqtt: BusClientProtocol = mqtt_client
        self.interval: float = interval
        self.logger: CocoroLogger = logger or get_logger(__name__)
        self.lock: asyncio.Lock = lock or asyncio.Lock()
        self.registry: DeviceRegistry = DeviceRegistry(cocoro_client)
        self.discovery: DiscoveryHelper = DiscoveryHelper(mqtt_client)
        self.state_updates: StateUpdateHelper = StateUpdateHelper(mqtt_client)
        self.command_router: CommandRouter = CommandRouter(self)
        self.tasks: list[asyncio.Task[None]] = []

    async def start(self) -> None:
        """Connect, announce every device, then run both loops until one of them fails."""
        lp = f"{self.lp}start:"
        _ = ensure_correlation_id()
        async with self.mqtt.connect():
            devices = await self.registry.devices()
            for device in devices:
                await self.discovery.subscribe_device(device)
                _ = await self.discovery.register_device(device)
            await self.mqtt.subscribe(self.command_router.hass_status_topic)
            self.logger.info(
                "%s Bridging %d device(s), refreshing every %ss",
                lp,
                len(devices),
                self.interval,
            )

            subscriber = asyncio.create_task(self.keep_handling_commands(), name=SUBSCRIBER_TASK_NAME)
            publisher = asyncio.create_task(self.keep_publishing_state_updates(), name=PUBLISHER_TASK_NAME)
            self.tasks = [subscriber, publisher]
            try:
                _ = await asyncio.gather(*self.tasks)
            finally:
                for task in self.tasks:
                    if not task.done():
                        self.logger.debug("%s Cancelling task: %s", lp, task.get_name())
                        _ = task.cancel()
                _ = await asyncio.gather(*self.tasks, return_exceptions=True)

    async def with_lock(self, fn: Callable[[], Awaitable[T]]) -> T:
        """Run ``fn`` while holding the guard shared by both loops."""
        async with self.lock:
            return await fn()

    @timed_async("fetch_status")
    async def _fetch_status(self, device: CocoroDeviceProtocol) -> StatusSnapshot:
        return await device.fetch_status()

    async def refresh_device_state(self, device: CocoroDeviceProtocol) -> bool:
        """Fetch the device status and publish it, holding the guard throughout.

        API failures are logged and reported as False; nothing is published.
        """
        lp = f"{self.lp}refresh:"
        try:
            async with self.lock:
                self.logger.info("%s Fetching %s status...", lp, device.name)
                status = await self._fetch_status(device)
                self.logger.debug("%s %s", lp, status.model_dump())
                _ = await self.state_updates.publish_device_state(device, status)
        except CocoroApiError as e:
            self.logger.error("%s Couldn't fetch %s status: %s", lp, device.name, e)
            return False
        return True

    async def publish_all_states(self) -> int:
        """Refresh every device once, in registry order. Returns how many succeeded."""
        refreshed = 0
        for device in await self.registry.devices():
            if await self.refresh_device_state(device):
                refreshed += 1
        return refreshed

    async def keep_publishing_state_updates(self) -> None:
        lp = f"{self.lp}publisher:"
        self.logger.debug("%s Publishing state updates every %ss", lp, self.interval)
        while True:
            with correlation_context():
                _ = await self.publish_all_states()
            await asyncio.sleep(self.interval)

    async def keep_handling_commands(self) -> None:
        lp = f"{self.lp}subscriber:"
        self.logger.debug("%s Waiting for MQTT messages...", lp)
        async for topic, payload in self.mqtt.receive():
            with correlation_context():
                await self.command_router.handle_message(topic, payload)
