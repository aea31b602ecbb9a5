"""Unit tests for the Cocoro cloud API client."""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from unittest.mock import MagicMock, patch

import aiohttp
import pytest

from cocoro_mqtt.cloud_api import CocoroCloudAPI
from cocoro_mqtt.devices import CocoroDevice
from cocoro_mqtt.exceptions import CocoroApiError, CocoroAuthenticationError

API_BASE = "https://cocoro.test/api"

STATUS_BODY: dict[str, object] = {
    "status": {
        "powerOn": True,
        "airVolume": "night",
        "humidifierOn": True,
        "lightDetected": False,
        "enoughWater": False,
        "temperature": 19.5,
        "humidity": 55,
        "totalAirCleaned": 4321,
        "pm25": 12,
        "odor": 3,
        "dust": 4,
        "overallDirtiness": 9,
    },
}


class FakeResponse:
    def __init__(self, status: int = 200, body: object = None) -> None:
        self.status = status
        self.body = body

    def raise_for_status(self) -> None:
        if self.status >= 400:
            raise aiohttp.ClientResponseError(
                request_info=MagicMock(),
                history=(),
                status=self.status,
                message="Server Error",
            )

    async def json(self, content_type: str | None = None) -> object:
        _ = content_type
        return self.body


class FakeSession:
    """Scripted aiohttp session; responses are consumed in request order."""

    def __init__(self, responses: list[FakeResponse | Exception]) -> None:
        self.responses = responses
        self.requests: list[tuple[str, str, object]] = []
        self.closed = False

    @asynccontextmanager
    async def _respond(self, response: FakeResponse) -> AsyncIterator[FakeResponse]:
        yield response

    def request(self, method: str, url: str, json: object = None):
        self.requests.append((method, url, json))
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return self._respond(response)

    async def close(self) -> None:
        self.closed = True


LOGIN_OK = FakeResponse(200, {"result": "ok"})


def _api() -> CocoroCloudAPI:
    return CocoroCloudAPI(app_secret="app-secret", terminal_key="terminal-key", api_base=API_BASE, api_timeout=5)


@pytest.mark.asyncio
async def test_devices_logs_in_then_lists() -> None:
    session = FakeSession(
        [
            LOGIN_OK,
            FakeResponse(
                200,
                {
                    "devices": [
                        {
                            "echonetNode": "a1",
                            "name": "Bedroom",
                            "maker": "SHARP",
                            "model": "KI-NX75",
                            "type": "AIR_CLEANER",
                        },
                        {"echonetNode": "c1", "name": "Kitchen", "type": "AIR_CONDITIONER"},
                    ],
                },
            ),
        ],
    )
    api = _api()

    with patch("cocoro_mqtt.cloud_api.aiohttp.ClientSession", return_value=session):
        devices = await api.devices()

    assert session.requests[0] == (
        "POST",
        "https://cocoro.test/api/login",
        {"appSecret": "app-secret", "terminalKey": "terminal-key"},
    )
    assert session.requests[1][:2] == ("GET", "https://cocoro.test/api/devices")
    assert [type(d) for d in devices] == [CocoroDevice, CocoroDevice]
    assert devices[0].echonet_node == "a1"
    assert devices[0].model == "KI-NX75"
    assert devices[1].type == "AIR_CONDITIONER"
    assert devices[1].maker == ""


@pytest.mark.asyncio
async def test_login_happens_once() -> None:
    session = FakeSession([LOGIN_OK, FakeResponse(200, {"devices": []}), FakeResponse(200, {"devices": []})])
    api = _api()

    with patch("cocoro_mqtt.cloud_api.aiohttp.ClientSession", return_value=session):
        _ = await api.devices()
        _ = await api.devices()

    assert [url for _, url, _ in session.requests].count("https://cocoro.test/api/login") == 1


@pytest.mark.asyncio
async def test_missing_credentials() -> None:
    session = FakeSession([])
    api = CocoroCloudAPI(api_base=API_BASE)

    with (
        patch("cocoro_mqtt.cloud_api.aiohttp.ClientSession", return_value=session),
        pytest.raises(CocoroAuthenticationError),
    ):
        _ = await api.devices()
    assert session.requests == []


@pytest.mark.asyncio
async def test_rejected_session_logs_in_again() -> None:
    session = FakeSession([LOGIN_OK, FakeResponse(401), LOGIN_OK, FakeResponse(200, {"devices": []})])
    api = _api()

    with patch("cocoro_mqtt.cloud_api.aiohttp.ClientSession", return_value=session):
        with pytest.raises(CocoroAuthenticationError) as exc_info:
            _ = await api.devices()
        assert exc_info.value.status == 401
        assert await api.devices() == []

    assert [url for _, url, _ in session.requests].count("https://cocoro.test/api/login") == 2


@pytest.mark.asyncio
async def test_http_errors_become_api_errors() -> None:
    session = FakeSession([LOGIN_OK, FakeResponse(500)])
    api = _api()

    with (
        patch("cocoro_mqtt.cloud_api.aiohttp.ClientSession", return_value=session),
        pytest.raises(CocoroApiError) as exc_info,
    ):
        _ = await api.fetch_status("a1")
    assert exc_info.value.status == 500
    assert not isinstance(exc_info.value, CocoroAuthenticationError)


@pytest.mark.asyncio
async def test_connection_errors_become_api_errors() -> None:
    session = FakeSession([LOGIN_OK, aiohttp.ClientConnectionError("connection reset")])
    api = _api()

    with (
        patch("cocoro_mqtt.cloud_api.aiohttp.ClientSession", return_value=session),
        pytest.raises(CocoroApiError, match="connection reset"),
    ):
        _ = await api.fetch_status("a1")


@pytest.mark.asyncio
async def test_timeouts_become_api_errors() -> None:
    session = FakeSession([LOGIN_OK, TimeoutError()])
    api = _api()

    with (
        patch("cocoro_mqtt.cloud_api.aiohttp.ClientSession", return_value=session),
        pytest.raises(CocoroApiError, match="timed out after 5s"),
    ):
        _ = await api.fetch_status("a1")


@pytest.mark.asyncio
async def test_fetch_status() -> None:
    session = FakeSession([LOGIN_OK, FakeResponse(200, STATUS_BODY)])
    api = _api()

    with patch("cocoro_mqtt.cloud_api.aiohttp.ClientSession", return_value=session):
        status = await api.fetch_status("a1")

    assert session.requests[1][:2] == ("GET", "https://cocoro.test/api/devices/a1/status")
    assert status.power_on is True
    assert status.air_volume == "night"
    assert status.enough_water is False
    assert status.temperature == 19.5
    assert status.total_air_cleaned == 4321
    assert status.overall_dirtiness == 9


@pytest.mark.asyncio
async def test_malformed_status() -> None:
    session = FakeSession([LOGIN_OK, FakeResponse(200, {"status": {"powerOn": True}})])
    api = _api()

    with (
        patch("cocoro_mqtt.cloud_api.aiohttp.ClientSession", return_value=session),
        pytest.raises(CocoroApiError, match="malformed status for a1"),
    ):
        _ = await api.fetch_status("a1")


@pytest.mark.asyncio
async def test_unexpected_body_type() -> None:
    session = FakeSession([LOGIN_OK, FakeResponse(200, ["not", "an", "object"])])
    api = _api()

    with (
        patch("cocoro_mqtt.cloud_api.aiohttp.ClientSession", return_value=session),
        pytest.raises(CocoroApiError, match="unexpected body type list"),
    ):
        _ = await api.devices()


@pytest.mark.asyncio
async def test_device_controls_post_to_the_device() -> None:
    session = FakeSession([LOGIN_OK, FakeResponse(200, None), FakeResponse(200, None), FakeResponse(200, None)])
    api = _api()
    device = CocoroDevice(api, echonet_node="a1", name="Bedroom")

    with patch("cocoro_mqtt.cloud_api.aiohttp.ClientSession", return_value=session):
        await device.set_power_on(True)
        await device.set_humidifier_on(False)
        await device.set_air_volume("pollen")

    assert session.requests[1:] == [
        ("POST", "https://cocoro.test/api/devices/a1/control", {"powerOn": True}),
        ("POST", "https://cocoro.test/api/devices/a1/control", {"humidifierOn": False}),
        ("POST", "https://cocoro.test/api/devices/a1/control", {"airVolume": "pollen"}),
    ]


@pytest.mark.asyncio
async def test_close() -> None:
    session = FakeSession([LOGIN_OK, FakeResponse(200, {"devices": []})])
    api = _api()

    with patch("cocoro_mqtt.cloud_api.aiohttp.ClientSession", return_value=session):
        _ = await api.devices()
    await api.close()

    assert session.closed is True
    assert api.http_session is None
