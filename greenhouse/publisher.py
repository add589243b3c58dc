import logging
import threading
from dataclasses import dataclass

import paho.mqtt.client as mqtt

from .config import Config
from .models import Reading

logger = logging.getLogger(__name__)


@dataclass
class ConnectResult:
    """Outcome of MQTTPublisher.connect()."""
    ok: bool
    error: str | None = None

    def __bool__(self) -> bool:
        return self.ok


class MQTTPublisher:
    """
    Process-wide MQTT publisher.

    connect() blocks until the broker acknowledges the connection (or the
    timeout expires) and publish() refuses to send until that happened.
    Delivery is QoS 0: no acknowledgement is awaited.
    """

    def __init__(
        self,
        broker_address: str,
        broker_port: int = 1883,
        client_id: str = "",
        keepalive: int = 60,
        connect_timeout: float = 10.0,
        qos: int = 0,
        client: mqtt.Client | None = None,
    ):
        self.broker_address = broker_address
        self.broker_port = broker_port
        self.keepalive = keepalive
        self.connect_timeout = connect_timeout
        self.qos = qos
        self.client = client or mqtt.Client(mqtt.CallbackAPIVersion.VERSION2, client_id=client_id)
        self.client.on_connect = self._on_connect
        self.client.on_disconnect = self._on_disconnect
        self.client.on_publish = self._on_publish

        self.is_connected = False
        self.published_count = 0
        self._connack = threading.Event()
        self._last_error: str | None = None

    @classmethod
    def from_config(cls, config: Config, client: mqtt.Client | None = None) -> "MQTTPublisher":
        return cls(
            broker_address=config.mqtt_broker,
            broker_port=config.mqtt_port,
            client_id=f"greenhouse-{config.greenhouse_id}",
            keepalive=config.keepalive,
            connect_timeout=config.connect_timeout,
            client=client,
        )

    def connect(self) -> ConnectResult:
        """Connect and wait for the broker's CONNACK."""
        self._connack.clear()
        self._last_error = None
        logger.info(f"Connecting to MQTT broker: {self.broker_address}:{self.broker_port}")
        try:
            self.client.connect(self.broker_address, self.broker_port, self.keepalive)
        except (OSError, ValueError) as e:
            logger.error(f"Failed to connect to MQTT broker: {e}")
            return ConnectResult(False, str(e))

        self.client.loop_start()

        if not self._connack.wait(self.connect_timeout):
            self.client.loop_stop()
            error = f"no CONNACK within {self.connect_timeout}s"
            logger.error(f"Failed to connect to MQTT broker: {error}")
            return ConnectResult(False, error)

        if not self.is_connected:
            self.client.loop_stop()
            return ConnectResult(False, self._last_error)

        return ConnectResult(True)

    def disconnect(self) -> None:
        self.client.loop_stop()
        self.client.disconnect()
        self.is_connected = False
        logger.info("Disconnected from MQTT broker")

    def publish(self, topic: str, payload: str) -> bool:
        """Enqueue a payload. Returns False when not connected or the client rejects it."""
        if not self.is_connected:
            logger.warning(f"Cannot publish to {topic}: MQTT not connected")
            return False

        result = self.client.publish(topic, payload, qos=self.qos)
        if result.rc == mqtt.MQTT_ERR_SUCCESS:
            self.published_count += 1
            logger.info(f"Published to {topic}: {payload}")
            return True

        logger.error(f"Failed to publish to {topic}: {mqtt.error_string(result.rc)}")
        return False

    def publish_reading(self, topic: str, reading: Reading) -> bool:
        return self.publish(topic, reading.to_payload())

    def _on_connect(self, client, userdata, flags, reason_code, properties=None):
        if reason_code == 0:
            self.is_connected = True
            logger.info("Connected to MQTT broker successfully")
        else:
            self.is_connected = False
            self._last_error = f"broker refused connection: {reason_code}"
            logger.error(f"Failed to connect to MQTT broker with code: {reason_code}")
        self._connack.set()

    def _on_disconnect(self, client, userdata, disconnect_flags, reason_code, properties=None):
        self.is_connected = False
        logger.warning(f"Disconnected from MQTT broker with code: {reason_code}")

    def _on_publish(self, client, userdata, mid, reason_code, properties=None):
        logger.debug(f"Publish acknowledged by client (mid={mid})")
