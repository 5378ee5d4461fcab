#!/usr/bin/env python3
"""Dyson Link - a mocked device (and MQTT client) used for testing."""

from .const import (  # noqa: F401, pylint: disable=unused-import
    SERIAL_2018,
    SERIAL_HEATER,
    SERIAL_HEATER_2018,
    SERIAL_LEGACY,
    __dev_mode__,
)
from .transport import FakePahoClient, MockDysonDevice  # noqa: F401
