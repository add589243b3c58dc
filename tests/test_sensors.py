import random

import pytest

from greenhouse.config import Config, SensorType
from greenhouse.errors import SensorReleasedError, SensorUnavailable
from greenhouse.sensors import DHTSensor, SimulatedSensor, create_sensor


class FakeDHTDevice:
    def __init__(self, temperature=22.0, humidity=48.0, error=None):
        self._temperature = temperature
        self._humidity = humidity
        self.error = error
        self.exit_calls = 0

    @property
    def temperature(self):
        if self.error:
            raise self.error
        return self._temperature

    @property
    def humidity(self):
        if self.error:
            raise self.error
        return self._humidity

    def exit(self):
        self.exit_calls += 1


def test_dht_reads_values():
    sensor = DHTSensor(4, SensorType.DHT22, device=FakeDHTDevice(22.0, 48))

    assert sensor.read_temperature() == 22.0
    assert sensor.read_humidity() == 48.0


def test_dht_checksum_error_is_absent_value(caplog):
    device = FakeDHTDevice(error=RuntimeError("Checksum did not validate. Try again."))
    sensor = DHTSensor(4, SensorType.DHT11, device=device)

    assert sensor.read_temperature() is None
    assert sensor.read_humidity() is None
    assert "Checksum did not validate" in caplog.text


def test_dht_missing_value_is_absent():
    sensor = DHTSensor(4, device=FakeDHTDevice(temperature=None))

    assert sensor.read_temperature() is None
    assert sensor.read_humidity() == 48.0


def test_dht_unexpected_error_propagates():
    sensor = DHTSensor(4, device=FakeDHTDevice(error=OSError("GPIO busy")))

    with pytest.raises(OSError):
        sensor.read_temperature()


def test_release_twice_does_not_raise():
    device = FakeDHTDevice()
    sensor = DHTSensor(4, device=device)

    sensor.release()
    sensor.release()

    assert device.exit_calls == 1
    assert sensor.released


def test_read_after_release_raises():
    sensor = DHTSensor(4, device=FakeDHTDevice())
    sensor.release()

    with pytest.raises(SensorReleasedError):
        sensor.read_humidity()


def test_dht_rejects_non_dht_model():
    with pytest.raises(ValueError):
        DHTSensor(4, SensorType.SIMULATED)


def test_simulated_sensor_drifts_around_base():
    sensor = SimulatedSensor(base_temp=18.0, base_hum=40.0, rng=random.Random(7))

    temps = [sensor.read_temperature() for _ in range(30)]
    hums = [sensor.read_humidity() for _ in range(30)]

    assert all(17.9 <= t <= 19.1 for t in temps)
    assert all(39.0 <= h <= 41.0 for h in hums)


def test_simulated_sensor_faults():
    sensor = SimulatedSensor(fault_rate=1.0, rng=random.Random(1))

    assert sensor.read_temperature() is None
    assert sensor.read_humidity() is None


def test_create_sensor_simulated():
    config = Config("gh-1", "localhost", sensor_type=SensorType.SIMULATED)

    assert isinstance(create_sensor(config), SimulatedSensor)


def test_create_sensor_unavailable_hardware(monkeypatch):
    monkeypatch.setattr(DHTSensor, "init", lambda self: False)
    config = Config("gh-1", "localhost", sensor_type=SensorType.DHT11, dht_pin=16)

    with pytest.raises(SensorUnavailable):
        create_sensor(config)
