"""Exceptions raised by the greenhouse monitor."""


class GreenhouseError(Exception):
    """Base class for all greenhouse monitor errors."""


class ConfigError(GreenhouseError):
    """Required configuration is missing."""

    def __init__(self, missing: list[str]):
        self.missing = missing
        super().__init__(f"Missing required configuration: {', '.join(missing)}")


class SensorFault(GreenhouseError):
    """Transient sensor read failure (checksum error, timing glitch)."""


class SensorReleasedError(GreenhouseError):
    """The sensor handle was used after release()."""


class LoopStateError(GreenhouseError):
    """Operation not allowed in the loop's current state."""


class PublisherNotConnected(GreenhouseError):
    """The MQTT connection has not been confirmed by the broker."""


class SensorUnavailable(GreenhouseError):
    """The sensor could not be initialized."""
