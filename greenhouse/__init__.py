"""Greenhouse temperature/humidity monitor publishing over MQTT."""

from .config import Config, SensorType
from .errors import (
    ConfigError,
    GreenhouseError,
    LoopStateError,
    PublisherNotConnected,
    SensorFault,
    SensorReleasedError,
    SensorUnavailable,
)
from .models import Reading

# Sensors, publisher and the control API pull in hardware and network
# dependencies - import them from their modules when needed

__all__ = [
    "Config",
    "SensorType",
    "Reading",
    "GreenhouseError",
    "ConfigError",
    "SensorFault",
    "SensorReleasedError",
    "SensorUnavailable",
    "LoopStateError",
    "PublisherNotConnected",
]
