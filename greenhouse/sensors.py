"""Hardware abstraction layer for sensors."""

import logging
import random
from typing import Callable

from .config import Config, SensorType
from .errors import SensorFault, SensorReleasedError, SensorUnavailable

logger = logging.getLogger(__name__)


class Sensor:
    """
    Base class for a single temperature/humidity sensor.

    Subclasses implement _sample_temperature/_sample_humidity and raise
    SensorFault for transient failures. Reads turn a SensorFault into None.
    """

    name = "sensor"

    def __init__(self):
        self._released = False

    @property
    def released(self) -> bool:
        return self._released

    def read_temperature(self) -> float | None:
        """Read temperature in Celsius, or None on a transient fault."""
        return self._read("temperature", self._sample_temperature)

    def read_humidity(self) -> float | None:
        """Read relative humidity in percent, or None on a transient fault."""
        return self._read("humidity", self._sample_humidity)

    def release(self) -> None:
        """Release the hardware handle. Safe to call more than once."""
        if self._released:
            return
        self._released = True
        self._close()
        logger.info(f"[{self.name}] Resources released")

    def _read(self, quantity: str, sample: Callable[[], float]) -> float | None:
        if self._released:
            raise SensorReleasedError(f"{self.name} used after release")
        try:
            return sample()
        except SensorFault as e:
            logger.warning(f"[{self.name}] {quantity} read failed: {e}")
            return None

    def _sample_temperature(self) -> float:
        raise NotImplementedError

    def _sample_humidity(self) -> float:
        raise NotImplementedError

    def _close(self) -> None:
        pass


class DHTSensor(Sensor):
    """DHT11/DHT22 temperature and humidity sensor wrapper."""

    def __init__(self, pin_id: int, model: SensorType = SensorType.DHT22, device=None):
        super().__init__()
        if model not in (SensorType.DHT11, SensorType.DHT22):
            raise ValueError(f"Not a DHT model: {model}")
        self._pin_id = pin_id
        self._model = model
        self._device = device
        self.name = model.name

    def init(self) -> bool:
        """Initialize the DHT device."""
        if self._device is not None:
            return True
        try:
            import board
            import adafruit_dht

            # Map GPIO number to board pin
            pin = getattr(board, f"D{self._pin_id}")
            device_cls = getattr(adafruit_dht, self._model.name)
            # use_pulseio=False helps with timing issues on RPi 4/5
            self._device = device_cls(pin, use_pulseio=False)
            logger.info(f"[{self.name}] Sensor initialized on GPIO{self._pin_id}")
            return True
        except ImportError as e:
            logger.error(f"[{self.name}] Missing package: {e}")
            logger.error(f"[{self.name}] Run: pip install 'greenhouse-monitor[hardware]'")
            return False
        except Exception as e:
            logger.error(f"[{self.name}] Failed to initialize: {e}")
            return False

    def _sample_temperature(self) -> float:
        return self._sample("temperature")

    def _sample_humidity(self) -> float:
        return self._sample("humidity")

    def _sample(self, attribute: str) -> float:
        if self._device is None:
            raise SensorFault("device not initialized")
        try:
            value = getattr(self._device, attribute)
        except RuntimeError as e:
            # DHT sensors often throw RuntimeError for checksum failures - normal behavior
            raise SensorFault(str(e)) from e
        if value is None:
            raise SensorFault(f"no {attribute} data")
        return float(value)

    def _close(self) -> None:
        if self._device is not None:
            self._device.exit()


class SimulatedSensor(Sensor):
    """Generates drifting readings without hardware, with optional random faults."""

    name = "SIM"

    def __init__(
        self,
        base_temp: float = 21.0,
        base_hum: float = 50.0,
        fault_rate: float = 0.0,
        rng: random.Random | None = None,
    ):
        super().__init__()
        self.base_temp = base_temp
        self.base_hum = base_hum
        self.fault_rate = fault_rate
        self._rng = rng or random.Random()
        self._counter = 0

    def _maybe_fail(self) -> None:
        if self.fault_rate and self._rng.random() < self.fault_rate:
            raise SensorFault("simulated checksum error")

    def _sample_temperature(self) -> float:
        self._maybe_fail()
        variation = (self._counter % 20) * 0.05
        self._counter += 1
        return round(self.base_temp + variation + self._rng.uniform(-0.05, 0.05), 2)

    def _sample_humidity(self) -> float:
        self._maybe_fail()
        return round(self.base_hum + self._rng.uniform(-1, 1), 1)


def create_sensor(config: Config) -> Sensor:
    """
    Build and initialize the sensor named in the configuration.
    Raises SensorUnavailable when the hardware cannot be initialized.
    """
    if config.sensor_type is SensorType.SIMULATED:
        logger.info("Using simulated sensor")
        return SimulatedSensor()

    sensor = DHTSensor(config.dht_pin, config.sensor_type)
    if not sensor.init():
        raise SensorUnavailable(f"{config.sensor_type.name} on GPIO{config.dht_pin} not available")
    return sensor
