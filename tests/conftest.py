#!/usr/bin/env python3
"""Fixtures for testing."""

import asyncio
import logging
from collections.abc import AsyncGenerator, Callable
from typing import Any

import pytest

from dyson_link import DysonLinkDevice

from .mock import SERIAL_LEGACY, FakePahoClient, MockDysonDevice

_LOGGER = logging.getLogger(__name__)

ASSERT_CYCLE_TIME = 0.001  # max_cycles_per_assert = max_sleep / ASSERT_CYCLE_TIME
DEFAULT_MAX_SLEEP = 0.5

# faster timings for testing
COMMS_PARAMS = {
    "wait_timeout": 0.2,
    "freshness_window": 60,
    "poll_interval": 600,
    "oscillation_delay": 0.05,
}


#######################################################################################


@pytest.fixture(autouse=True)
def patches_for_tests(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr("dyson_tx.protocol._DBG_FORCE_LOG_FRAMES", True)
    monkeypatch.setattr("dyson_tx.protocol_fsm._DBG_MAINTAIN_STATE_CHAIN", True)
    monkeypatch.setattr("dyson_tx.transport._DBG_FORCE_FRAME_LOGGING", True)


async def assert_this(
    fnc: Callable[[], Any], max_sleep: float = DEFAULT_MAX_SLEEP
) -> None:
    """Wait until fnc() is True (or the time runs out)."""
    for _ in range(int(max_sleep / ASSERT_CYCLE_TIME)):
        if fnc():
            break
        await asyncio.sleep(ASSERT_CYCLE_TIME)
    assert fnc()


async def settle(cycles: int = 10) -> None:
    """Let any pending callbacks (e.g. frames) be processed."""
    for _ in range(cycles):
        await asyncio.sleep(0)


@pytest.fixture
def mock_device(monkeypatch: pytest.MonkeyPatch) -> MockDysonDevice:
    """Return a mocked device, to which any MqttTransport will be connected.

    Tests that need a different model should use make_mock_device().
    """
    return make_mock_device(monkeypatch)


def make_mock_device(
    monkeypatch: pytest.MonkeyPatch, serial_number: str = SERIAL_LEGACY, **kwargs: Any
) -> MockDysonDevice:
    device = MockDysonDevice(serial_number, **kwargs)

    def create_paho_client(legacy_mqtt: bool = False) -> FakePahoClient:
        return FakePahoClient(device, legacy_mqtt=legacy_mqtt)

    monkeypatch.setattr("dyson_tx.transport._create_paho_client", create_paho_client)
    return device


async def start_device(
    mock: MockDysonDevice, serial_number: str = SERIAL_LEGACY, **kwargs: Any
) -> DysonLinkDevice:
    """Start a DysonLinkDevice (connected to the mock), and let it quiesce."""

    kwargs.setdefault("comms_params", COMMS_PARAMS)
    device = DysonLinkDevice("Test Fan", "192.168.0.99", serial_number, "pw", **kwargs)
    await device.start()

    await assert_this(lambda: device.is_connected)
    await assert_this(lambda: len(mock.requests) >= 1)  # the refresh on connect
    await assert_this(lambda: device.environment.last_updated is not None)
    return device


@pytest.fixture
async def fan(mock_device: MockDysonDevice) -> AsyncGenerator[DysonLinkDevice, None]:
    """Return a (legacy) device, connected to a mocked device."""

    device = await start_device(mock_device)
    try:
        yield device
    finally:
        await device.stop()
