"""MQTT client core for the Cocoro bridge.

Wraps ``aiomqtt.Client`` behind the four operations the bridge needs:
connect, subscribe, publish and receive.
"""

from __future__ import annotations

import asyncio
import uuid
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import aiomqtt

from cocoro_mqtt.const import (
    COCORO_AVAILABILITY_OFFLINE,
    COCORO_AVAILABILITY_ONLINE,
    COCORO_DEFAULT_HASS_TOPIC,
    COCORO_DEFAULT_MQTT_HOST,
    COCORO_DEFAULT_MQTT_PORT,
    COCORO_DEFAULT_TOPIC,
)
from cocoro_mqtt.logging_abstraction import get_logger

logger = get_logger(__name__)


class MQTTClient:
    """MQTT connection used by the bridge loops.

    Publishing is safe from both loops at once; aiomqtt serializes writes on
    its own connection.
    """

    lp: str = "mqtt:"
    client: aiomqtt.Client | None = None
    _connected: bool = False

    def __init__(
        self,
        host: str = COCORO_DEFAULT_MQTT_HOST,
        port: int | str | None = COCORO_DEFAULT_MQTT_PORT,
        username: str | None = None,
        password: str | None = None,
        topic: str = COCORO_DEFAULT_TOPIC,
        ha_topic: str = COCORO_DEFAULT_HASS_TOPIC,
    ) -> None:
        lp = f"{self.lp}init:"
        if not topic:
            topic = "cocoro"
            logger.warning("%s MQTT topic not set, using default: %s", lp, topic)
        if not ha_topic:
            ha_topic = "homeassistant"
            logger.warning("%s HomeAssistant topic not set, using default: %s", lp, ha_topic)

        self.broker_host: str = host
        self.broker_port: int = int(port) if port else 1883
        self.broker_username: str | None = username
        self.broker_password: str | None = password
        self.broker_client_id: str = f"cocoro_mqtt_{uuid.uuid4().hex[:12]}"
        self.topic: str = topic
        self.ha_topic: str = ha_topic
        self.availability_topic: str = f"{topic}/bridge/availability"

    @property
    def is_connected(self) -> bool:
        return self._connected

    def _build_client(self) -> aiomqtt.Client:
        lwt = aiomqtt.Will(topic=self.availability_topic, payload=COCORO_AVAILABILITY_OFFLINE, retain=True)
        return aiomqtt.Client(
            hostname=self.broker_host,
            port=self.broker_port,
            username=self.broker_username,
            password=self.broker_password,
            identifier=self.broker_client_id,
            will=lwt,
        )

    @asynccontextmanager
    async def connect(self) -> AsyncIterator[MQTTClient]:
        """Connect to the broker for the duration of the ``async with`` block.

        Raises:
            aiomqtt.MqttError: if the broker cannot be reached or refuses the credentials

        """
        lp = f"{self.lp}connect:"
        logger.debug("%s Connecting to MQTT broker %s:%s...", lp, self.broker_host, self.broker_port)
        self.client = self._build_client()
        established = False
        try:
            async with self.client:
                established = self._connected = True
                logger.info(
                    "%s Connected to MQTT broker: %s port: %s",
                    lp,
                    self.broker_host,
                    self.broker_port,
                )
                _ = await self.publish(self.availability_topic, COCORO_AVAILABILITY_ONLINE, retain=True)
                try:
                    yield self
                except aiomqtt.MqttError as lost_exc:
                    logger.error("%s Lost connection to MQTT broker: %s", lp, lost_exc)
                    raise
                finally:
                    # clean disconnects skip the will, so mark ourselves offline
                    _ = await self.publish(self.availability_topic, COCORO_AVAILABILITY_OFFLINE, retain=True)
        except aiomqtt.MqttError as mqtt_err_exc:
            if established:
                # already logged as a lost connection, or raised by the disconnect
                raise
            # -> [Errno 111] Connection refused
            # [code:134] Bad user name or password
            logger.error("%s MQTT connection failed: %s", lp, mqtt_err_exc)
            if "code:134" in str(mqtt_err_exc):
                logger.error(
                    "%s Bad username or password, check your MQTT credentials (username: %s)",
                    lp,
                    self.broker_username,
                )
            raise
        finally:
            if established:
                logger.info("%s Disconnected from MQTT broker", lp)
            self._connected = False

    async def subscribe(self, *topics: str) -> None:
        """Subscribe to each topic with QoS 0."""
        lp = f"{self.lp}subscribe:"
        assert self.client is not None, "client must be connected"
        for topic in topics:
            await self.client.subscribe(topic, qos=0)
        logger.debug("%s Subscribed to MQTT topics: %s", lp, list(topics))

    async def publish(self, topic: str, payload: str | bytes, retain: bool = False) -> bool:
        """Publish a message to the MQTT broker."""
        lp = f"{self.lp}publish:"
        if not self.is_connected or self.client is None:
            logger.debug("%s Not connected, dropping message for %s", lp, topic)
            return False
        msg_data = payload.encode() if isinstance(payload, str) else payload
        try:
            await self.client.publish(topic, msg_data, qos=0, retain=retain)
        except aiomqtt.MqttCodeError as mqtt_code_exc:
            logger.warning("%s [MqttCodeError] -> %s", lp, mqtt_code_exc)
        except aiomqtt.MqttError as mqtt_err:
            # connection loss surfaces in receive(), which ends the bridge
            logger.warning("%s [MqttError] -> %s", lp, mqtt_err)
        else:
            return True
        return False

    async def receive(self) -> AsyncIterator[tuple[str, bytes]]:
        """Yield ``(topic, payload)`` for every message on the subscribed topics.

        Blocks between messages. Connection loss surfaces as ``aiomqtt.MqttError``.
        """
        lp = f"{self.lp}rcv:"
        assert self.client is not None, "client must be connected"
        try:
            async for message in self.client.messages:
                payload = message.payload
                if payload is None:
                    data = b""
                elif isinstance(payload, bytes | bytearray):
                    data = bytes(payload)
                else:
                    data = str(payload).encode()
                yield message.topic.value, data
        except asyncio.CancelledError:
            logger.debug("%s MQTT receiver cancelled, propagating...", lp)
            raise
        except aiomqtt.MqttError as msg_err:
            logger.warning("%s MQTT error: %s", lp, msg_err)
            self._connected = False
            raise
