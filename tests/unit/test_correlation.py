"""Unit tests for correlation ID tracking."""

from __future__ import annotations

import asyncio

import pytest

from cocoro_mqtt.correlation import (
    correlation_context,
    ensure_correlation_id,
    generate_correlation_id,
    get_correlation_id,
    set_correlation_id,
)


@pytest.fixture(autouse=True)
def clear_correlation_id():
    set_correlation_id(None)
    yield
    set_correlation_id(None)


def test_generate_is_unique_hex() -> None:
    first = generate_correlation_id()

    assert len(first) == 32
    assert first != generate_correlation_id()


def test_context_sets_and_restores() -> None:
    set_correlation_id("outer")

    with correlation_context() as corr_id:
        assert corr_id is not None
        assert get_correlation_id() == corr_id
        with correlation_context("inner"):
            assert get_correlation_id() == "inner"
        assert get_correlation_id() == corr_id

    assert get_correlation_id() == "outer"


def test_context_without_auto_generate() -> None:
    with correlation_context(auto_generate=False) as corr_id:
        assert corr_id is None
        assert get_correlation_id() is None


def test_ensure_keeps_existing_id() -> None:
    set_correlation_id("existing")

    assert ensure_correlation_id() == "existing"


def test_ensure_creates_missing_id() -> None:
    corr_id = ensure_correlation_id()

    assert get_correlation_id() == corr_id


@pytest.mark.asyncio
async def test_tasks_do_not_leak_ids() -> None:
    async def _worker() -> str:
        return ensure_correlation_id()

    first, second = await asyncio.gather(_worker(), _worker())

    assert first != second
    assert get_correlation_id() is None
