"""Device registry: the cached list of air purifiers the bridge controls."""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

from cocoro_mqtt.const import AIR_CLEANER_TYPE
from cocoro_mqtt.logging_abstraction import get_logger

if TYPE_CHECKING:
    from cocoro_mqtt.structs import CocoroClientProtocol, CocoroDeviceProtocol

logger = get_logger(__name__)


class DeviceRegistry:
    """Resolves the supported devices once and serves them from cache afterwards.

    The device list is read-only once loaded and is shared by both bridge loops.
    """

    lp: str = "DeviceRegistry:"

    def __init__(self, cocoro_client: CocoroClientProtocol, device_type: str = AIR_CLEANER_TYPE) -> None:
        self._client: CocoroClientProtocol = cocoro_client
        self.device_type: str = device_type
        self._devices: tuple[CocoroDeviceProtocol, ...] | None = None
        self._load_lock: asyncio.Lock = asyncio.Lock()

    async def devices(self) -> tuple[CocoroDeviceProtocol, ...]:
        """Return the supported devices, querying the cloud API on the first call only.

        Errors from the first query propagate and leave the registry unloaded.
        """
        if self._devices is not None:
            return self._devices
        async with self._load_lock:
            # another caller may have loaded while we waited
            if self._devices is None:
                lp = f"{self.lp}load:"
                all_devices = await self._client.devices()
                self._devices = tuple(d for d in all_devices if d.type == self.device_type)
                logger.info(
                    "%s %d of %d device(s) are of type %s",
                    lp,
                    len(self._devices),
                    len(all_devices),
                    self.device_type,
                    extra={"device_ids": [d.echonet_node for d in self._devices]},
                )
        return self._devices

    def find(self, device_id: str) -> CocoroDeviceProtocol | None:
        """Return the first loaded device whose id matches, or None."""
        if self._devices is None:
            return None
        return next((d for d in self._devices if d.echonet_node == device_id), None)
