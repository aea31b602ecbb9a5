"""Cocoro device handle."""

from __future__ import annotations

from typing import TYPE_CHECKING, override

from cocoro_mqtt.logging_abstraction import get_logger

if TYPE_CHECKING:
    from cocoro_mqtt.cloud_api import CocoroCloudAPI
    from cocoro_mqtt.structs import StatusSnapshot

logger = get_logger(__name__)


class CocoroDevice:
    """One Cocoro appliance as reported by the cloud API.

    Metadata is fixed at construction; the only state that changes lives in
    the cloud and is observed through ``fetch_status``.
    """

    lp: str = "CocoroDevice:"

    def __init__(
        self,
        api: CocoroCloudAPI,
        echonet_node: str,
        name: str,
        maker: str = "",
        model: str = "",
        type: str = "",  # noqa: A002
    ) -> None:
        self._api: CocoroCloudAPI = api
        self.echonet_node: str = echonet_node
        self.name: str = name
        self.maker: str = maker
        self.model: str = model
        self.type: str = type

    async def fetch_status(self) -> StatusSnapshot:
        return await self._api.fetch_status(self.echonet_node)

    async def set_power_on(self, on: bool) -> None:
        logger.debug("%s '%s' power -> %s", self.lp, self.name, on)
        await self._api.control(self.echonet_node, {"powerOn": on})

    async def set_humidifier_on(self, on: bool) -> None:
        logger.debug("%s '%s' humidifier -> %s", self.lp, self.name, on)
        await self._api.control(self.echonet_node, {"humidifierOn": on})

    async def set_air_volume(self, air_volume: str) -> None:
        logger.debug("%s '%s' air volume -> %s", self.lp, self.name, air_volume)
        await self._api.control(self.echonet_node, {"airVolume": air_volume})

    @override
    def __repr__(self) -> str:
        return f"<CocoroDevice: {self.name!r} node={self.echonet_node} type={self.type}>"
