"""MQTT command routing for message handling.

Decodes inbound ``<topic>/<device-id>/<target>/set`` messages into device
commands, runs them against the cloud API and triggers a state refresh for the
affected device.
"""

from __future__ import annotations

import functools
from dataclasses import dataclass
from typing import TYPE_CHECKING

from cocoro_mqtt.const import COCORO_HASS_BIRTH_MSG, COCORO_HASS_STATUS_TOPIC, COCORO_HASS_WILL_MSG
from cocoro_mqtt.exceptions import (
    CocoroApiError,
    DecodeError,
    MalformedTopicError,
    UnknownDeviceError,
    UnknownTargetError,
)

if TYPE_CHECKING:
    from cocoro_mqtt.bridge import CocoroBridge
    from cocoro_mqtt.structs import CocoroDeviceProtocol

COMMAND_SUFFIX = "set"


@dataclass(frozen=True)
class CommandTopic:
    """A parsed command topic."""

    device_id: str
    target: str


@dataclass(frozen=True)
class PowerCommand:
    on: bool


@dataclass(frozen=True)
class HumidifierCommand:
    on: bool


@dataclass(frozen=True)
class ModeCommand:
    preset: str


@dataclass(frozen=True)
class UnknownCommand:
    target: str


type DeviceCommand = PowerCommand | HumidifierCommand | ModeCommand
type Command = DeviceCommand | UnknownCommand


def parse_command_topic(topic: str, namespace: str) -> CommandTopic:
    """Split ``<namespace>/<device-id>/<target>/set`` into its parts.

    Raises:
        MalformedTopicError: if the topic has any other shape

    """
    parts = topic.split("/")
    if len(parts) != 4 or parts[0] != namespace or parts[3] != COMMAND_SUFFIX or not parts[1] or not parts[2]:
        raise MalformedTopicError(topic)
    return CommandTopic(device_id=parts[1], target=parts[2])


def decode_command(target: str, payload: str) -> Command:
    """Map a command target and its payload to a command.

    Switch payloads follow Home Assistant: exactly ``ON`` turns on, anything
    else turns off. Mode payloads are passed through as the preset name.
    """
    if target == "on":
        return PowerCommand(payload == "ON")
    if target == "humidifier":
        return HumidifierCommand(payload == "ON")
    if target == "mode":
        return ModeCommand(payload)
    return UnknownCommand(target)


async def execute_command(device: CocoroDeviceProtocol, command: DeviceCommand) -> None:
    """Run the command against the device. API failures propagate as ``CocoroApiError``."""
    if isinstance(command, PowerCommand):
        await device.set_power_on(command.on)
    elif isinstance(command, HumidifierCommand):
        await device.set_humidifier_on(command.on)
    else:
        await device.set_air_volume(command.preset)


class CommandRouter:
    """Helper class for routing MQTT messages to appropriate handlers."""

    lp: str = "CocoroBridge:rcv:"

    def __init__(self, bridge: CocoroBridge) -> None:
        """Initialize the command router.

        Args:
            bridge: CocoroBridge instance providing the registry, the guard and the refresh operation

        """
        self.bridge: CocoroBridge = bridge
        self.logger = bridge.logger

    @property
    def hass_status_topic(self) -> str:
        return f"{self.bridge.mqtt.ha_topic}/{COCORO_HASS_STATUS_TOPIC}"

    async def decode(self, topic: str, payload: str) -> tuple[CocoroDeviceProtocol, DeviceCommand]:
        """Resolve the target device and command of an inbound message.

        Raises:
            MalformedTopicError: topic is not a command topic
            UnknownDeviceError: no registered device has the topic's id
            UnknownTargetError: the topic's target is not a known control

        """
        parsed = parse_command_topic(topic, self.bridge.mqtt.topic)
        _ = await self.bridge.registry.devices()
        device = self.bridge.registry.find(parsed.device_id)
        if device is None:
            raise UnknownDeviceError(parsed.device_id, topic)
        command = decode_command(parsed.target, payload)
        if isinstance(command, UnknownCommand):
            raise UnknownTargetError(command.target, topic)
        return device, command

    async def handle_command(self, topic: str, payload: str) -> bool:
        """Decode and run one command, then refresh the device.

        Returns True if the command was executed.
        """
        lp = self.lp
        try:
            device, command = await self.decode(topic, payload)
        except DecodeError as e:
            self.logger.error("%s %s", lp, e)
            return False

        self.logger.info("%s Executing '%s' command at '%s'", lp, payload, topic)
        try:
            await self.bridge.with_lock(functools.partial(execute_command, device, command))
        except CocoroApiError as e:
            self.logger.error("%s Couldn't handle '%s' at '%s': %s", lp, payload, topic, e)
            return False

        _ = await self.bridge.refresh_device_state(device)
        return True

    async def handle_hass_status(self, payload: str) -> None:
        """Re-announce discovery and state when Home Assistant comes back online."""
        lp = f"{self.lp}hass:"
        if payload.casefold() == COCORO_HASS_BIRTH_MSG.casefold():
            self.logger.info(
                "%s HASS has sent MQTT BIRTH message, re-announcing device discovery and status...",
                lp,
            )
            devices = await self.bridge.registry.devices()
            for device in devices:
                _ = await self.bridge.discovery.register_device(device)
            for device in devices:
                _ = await self.bridge.refresh_device_state(device)
        elif payload.casefold() == COCORO_HASS_WILL_MSG.casefold():
            self.logger.info("%s received Last Will msg from Home Assistant, HASS is offline!", lp)
        else:
            self.logger.warning("%s Unknown HASS status message: %s", lp, payload)

    async def handle_message(self, topic: str, raw_payload: bytes) -> None:
        """Route one inbound message. Returns once it and any refresh it triggered are done."""
        lp = self.lp
        payload = raw_payload.decode("utf-8", errors="replace")
        self.logger.debug("%s >>> MQTT MESSAGE RECEIVED: topic=%s, payload=%r", lp, topic, payload)
        if topic == self.hass_status_topic:
            status = payload.strip()
            if not status:
                self.logger.debug("%s Received empty HASS status payload, skipping...", lp)
                return
            await self.handle_hass_status(status)
        else:
            # command payloads are matched verbatim: anything but "ON" is off
            _ = await self.handle_command(topic, payload)
