"""Unit tests for state message publishing."""

from __future__ import annotations

import pytest
from conftest import FakeBus, FakeDevice, StatusFactory

from cocoro_mqtt.mqtt.state_updates import STATE_ATTRIBUTES, StateUpdateHelper, on_off, state_topic, status_messages


def test_on_off() -> None:
    assert on_off(True) == "ON"
    assert on_off(False) == "OFF"


def test_state_topic() -> None:
    assert state_topic("cocoro", "abc123", "pm25") == "cocoro/abc123/pm25/state"


def test_status_messages_cover_every_attribute_in_order(status_factory: StatusFactory) -> None:
    messages = status_messages("cocoro", "abc123", status_factory())

    assert [topic for topic, _ in messages] == [f"cocoro/abc123/{attr}/state" for attr in STATE_ATTRIBUTES]
    assert len(messages) == 12


def test_status_messages_values(status_factory: StatusFactory) -> None:
    status = status_factory(
        power_on=True,
        air_volume="quiet",
        humidifier_on=False,
        light_detected=False,
        enough_water=True,
        temperature=21.5,
        humidity=40,
        total_air_cleaned=987,
        pm25=3,
        odor=0,
        dust=7,
        overall_dirtiness=11,
    )
    payloads = dict(status_messages("cocoro", "abc123", status))

    assert payloads == {
        "cocoro/abc123/on/state": "ON",
        "cocoro/abc123/mode/state": "quiet",
        "cocoro/abc123/humidifier/state": "OFF",
        "cocoro/abc123/light/state": "OFF",
        "cocoro/abc123/empty_water_tank/state": "OFF",
        "cocoro/abc123/temperature/state": "21.5",
        "cocoro/abc123/humidity/state": "40",
        "cocoro/abc123/air_cleaned/state": "987",
        "cocoro/abc123/pm25/state": "3",
        "cocoro/abc123/odor/state": "0",
        "cocoro/abc123/dust/state": "7",
        "cocoro/abc123/overall_dirtiness/state": "11",
    }


@pytest.mark.parametrize(("enough_water", "expected"), [(True, "OFF"), (False, "ON")])
def test_empty_water_tank_is_inverse_of_enough_water(
    status_factory: StatusFactory,
    enough_water: bool,
    expected: str,
) -> None:
    payloads = dict(status_messages("cocoro", "abc123", status_factory(enough_water=enough_water)))

    assert payloads["cocoro/abc123/empty_water_tank/state"] == expected


class TestStateUpdateHelper:
    """Tests for StateUpdateHelper.publish_device_state."""

    @pytest.mark.asyncio
    async def test_publishes_non_retained_messages(
        self,
        bus: FakeBus,
        device: FakeDevice,
        status_factory: StatusFactory,
    ) -> None:
        helper = StateUpdateHelper(bus)

        published = await helper.publish_device_state(device, status_factory())

        assert published == 12
        assert len(bus.published) == 12
        assert all(retain is False for _, _, retain in bus.published)

    @pytest.mark.asyncio
    async def test_reports_rejected_publishes(
        self,
        bus: FakeBus,
        device: FakeDevice,
        status_factory: StatusFactory,
        caplog: pytest.LogCaptureFixture,
    ) -> None:
        bus.publish_ok = False
        helper = StateUpdateHelper(bus)

        published = await helper.publish_device_state(device, status_factory())

        assert published == 0
        assert "Only 0 of 12 state messages" in caplog.text
