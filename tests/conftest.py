"""Pytest configuration and fixtures for test suite."""

import time
from types import SimpleNamespace

import pytest

from greenhouse.errors import SensorFault
from greenhouse.publisher import MQTTPublisher
from greenhouse.sensors import Sensor

FIXED_NOW = 1_700_000_000.7


class FakeMQTTClient:
    """Stands in for paho's Client; fires on_connect from loop_start()."""

    def __init__(self, connack=0, connect_error=None, publish_rc=0):
        self.connack = connack
        self.connect_error = connect_error
        self.publish_rc = publish_rc
        self.on_connect = None
        self.on_disconnect = None
        self.on_publish = None
        self.on_message = None
        self.connected_to = None
        self.loop_running = False
        self.disconnected = False
        self.published = []
        self.subscriptions = []

    def connect(self, host, port=1883, keepalive=60):
        if self.connect_error is not None:
            raise self.connect_error
        self.connected_to = (host, port, keepalive)

    def loop_start(self):
        self.loop_running = True
        if self.connack is not None:
            self.on_connect(self, None, {}, self.connack, None)

    def loop_stop(self):
        self.loop_running = False

    def disconnect(self):
        self.disconnected = True

    def publish(self, topic, payload, qos=0):
        self.published.append((topic, payload, qos))
        return SimpleNamespace(rc=self.publish_rc, mid=len(self.published))

    def subscribe(self, topic):
        self.subscriptions.append(topic)


class ScriptedSensor(Sensor):
    """
    Replays one (temperature, humidity) step per cycle. A None value is a
    SensorFault on that field; an exception instance is raised as-is. The
    last step repeats once the script runs out.
    """

    name = "FAKE"

    def __init__(self, script):
        super().__init__()
        self._script = list(script)
        self._current = None
        self.release_calls = 0

    def _sample_temperature(self):
        if self._script:
            self._current = self._script.pop(0)
        if isinstance(self._current, Exception):
            raise self._current
        return self._value(self._current[0])

    def _sample_humidity(self):
        return self._value(self._current[1])

    @staticmethod
    def _value(value):
        if value is None:
            raise SensorFault("checksum did not validate")
        return value

    def release(self):
        self.release_calls += 1
        super().release()


def wait_for(predicate, timeout=2.0):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.01)
    return predicate()


@pytest.fixture
def mqtt_client():
    return FakeMQTTClient()


@pytest.fixture
def publisher(mqtt_client):
    """A publisher whose connection has been confirmed."""
    pub = MQTTPublisher("broker.local", client=mqtt_client, connect_timeout=0.5)
    assert pub.connect()
    return pub


@pytest.fixture
def clock():
    return lambda: FIXED_NOW
