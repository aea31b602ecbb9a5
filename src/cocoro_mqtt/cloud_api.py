"""Cocoro Air cloud API client.

Provides authentication against the Cocoro cloud, device enumeration, status
fetches and device control. Every failure surfaces as ``CocoroApiError`` so the
bridge can contain it at the boundary of a single device operation.
"""

from __future__ import annotations

from typing import TypedDict, cast

import aiohttp
from pydantic import BaseModel, ConfigDict, ValidationError
from pydantic.alias_generators import to_camel

from cocoro_mqtt.const import COCORO_DEFAULT_API_BASE, COCORO_DEFAULT_API_TIMEOUT
from cocoro_mqtt.devices import CocoroDevice
from cocoro_mqtt.exceptions import CocoroApiError, CocoroAuthenticationError
from cocoro_mqtt.logging_abstraction import get_logger
from cocoro_mqtt.structs import StatusSnapshot

logger = get_logger(__name__)

AUTH_FAILURE_STATUSES = (401, 403)


class LoginRequestData(TypedDict):
    """Type definition for the login request body."""

    appSecret: str
    terminalKey: str


class ControlRequestData(TypedDict, total=False):
    """Type definition for a device control request body."""

    powerOn: bool
    humidifierOn: bool
    airVolume: str


class DeviceInfo(BaseModel):
    """Model for one entry of the device listing.

    API response structure:
        {
            'devices': [
                {
                    'echonetNode': '1a2b3c',
                    'name': 'Living Room',
                    'maker': 'SHARP',
                    'model': 'KI-NX75',
                    'type': 'AIR_CLEANER'
                }
            ]
        }
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    echonet_node: str
    name: str
    maker: str = ""
    model: str = ""
    type: str


class CocoroCloudAPI:
    """Cocoro Air cloud API client.

    The HTTP session is created lazily and logged in on first use. A rejected
    session is dropped so the next request logs in again.
    """

    lp: str = "CocoroCloudAPI"

    def __init__(
        self,
        app_secret: str | None = None,
        terminal_key: str | None = None,
        api_base: str = COCORO_DEFAULT_API_BASE,
        api_timeout: int = COCORO_DEFAULT_API_TIMEOUT,
    ) -> None:
        self.app_secret: str | None = app_secret
        self.terminal_key: str | None = terminal_key
        self.api_base: str = api_base if api_base.endswith("/") else f"{api_base}/"
        self.api_timeout: int = api_timeout
        self.http_session: aiohttp.ClientSession | None = None
        self._authenticated: bool = False

    async def close(self) -> None:
        """Close the aiohttp session if it exists and is not closed."""
        lp = f"{self.lp}:close:"
        if self.http_session and not self.http_session.closed:
            logger.debug("%s Closing aiohttp ClientSession", lp)
            await self.http_session.close()
        self.http_session = None
        self._authenticated = False

    async def _check_session(self) -> aiohttp.ClientSession:
        """Return an open, logged-in session, creating one if needed."""
        if not self.http_session or self.http_session.closed:
            logger.debug("%s:_check_session: Creating new aiohttp ClientSession", self.lp)
            self.http_session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.api_timeout),
            )
            self._authenticated = False
        if not self._authenticated:
            await self._login(self.http_session)
        return self.http_session

    async def _login(self, sesh: aiohttp.ClientSession) -> None:
        lp = f"{self.lp}:login:"
        if not self.app_secret or not self.terminal_key:
            msg = "Cocoro app secret or terminal key not set, cannot log in"
            raise CocoroAuthenticationError(msg)
        login_data: LoginRequestData = {
            "appSecret": self.app_secret,
            "terminalKey": self.terminal_key,
        }
        logger.debug("%s Logging in to %s", lp, self.api_base)
        _ = await self._send(sesh, "POST", "login", login_data)
        self._authenticated = True
        logger.info("%s Logged in to the Cocoro cloud", lp)

    async def _send(
        self,
        sesh: aiohttp.ClientSession,
        method: str,
        path: str,
        json_data: object | None = None,
    ) -> dict[str, object]:
        """Issue one request and return the decoded JSON object body."""
        url = f"{self.api_base}{path}"
        try:
            async with sesh.request(method, url, json=json_data) as resp:
                if resp.status in AUTH_FAILURE_STATUSES:
                    self._authenticated = False
                    msg = f"{method} {path} rejected by the Cocoro cloud"
                    raise CocoroAuthenticationError(msg, resp.status)
                resp.raise_for_status()
                body: object = await resp.json(content_type=None)
        except aiohttp.ClientResponseError as e:
            raise CocoroApiError(f"{method} {path} failed: {e.message}", e.status) from e
        except aiohttp.ClientError as e:
            raise CocoroApiError(f"{method} {path} failed: {e}") from e
        except TimeoutError as e:
            raise CocoroApiError(f"{method} {path} timed out after {self.api_timeout}s") from e
        except ValueError as e:
            raise CocoroApiError(f"{method} {path} returned malformed JSON") from e

        if body is None:
            return {}
        if not isinstance(body, dict):
            raise CocoroApiError(f"{method} {path} returned unexpected body type {type(body).__name__}")
        return cast("dict[str, object]", body)

    async def request(self, method: str, path: str, json_data: object | None = None) -> dict[str, object]:
        sesh = await self._check_session()
        return await self._send(sesh, method, path, json_data)

    async def devices(self) -> list[CocoroDevice]:
        """Enumerate every device registered on the account."""
        lp = f"{self.lp}:devices:"
        body = await self.request("GET", "devices")
        raw_devices = body.get("devices", [])
        if not isinstance(raw_devices, list):
            raise CocoroApiError("device listing is not a list")
        try:
            infos = [DeviceInfo.model_validate(raw) for raw in cast("list[object]", raw_devices)]
        except ValidationError as e:
            raise CocoroApiError(f"malformed device listing: {e.error_count()} error(s)") from e
        logger.debug("%s Found %d device(s)", lp, len(infos))
        return [
            CocoroDevice(
                api=self,
                echonet_node=info.echonet_node,
                name=info.name,
                maker=info.maker,
                model=info.model,
                type=info.type,
            )
            for info in infos
        ]

    async def fetch_status(self, echonet_node: str) -> StatusSnapshot:
        body = await self.request("GET", f"devices/{echonet_node}/status")
        try:
            return StatusSnapshot.model_validate(body.get("status", body))
        except ValidationError as e:
            raise CocoroApiError(f"malformed status for {echonet_node}: {e.error_count()} error(s)") from e

    async def control(self, echonet_node: str, control: ControlRequestData) -> None:
        lp = f"{self.lp}:control:"
        logger.debug("%s %s <- %s", lp, echonet_node, control)
        _ = await self.request("POST", f"devices/{echonet_node}/control", control)


__all__ = [
    "CocoroCloudAPI",
    "ControlRequestData",
    "DeviceInfo",
]
