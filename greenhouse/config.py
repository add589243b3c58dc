import os
from dataclasses import dataclass
from enum import Enum
from string import Template

from dotenv import load_dotenv

from .errors import ConfigError

DEFAULT_TOPIC_TEMPLATE = "greenhouse/${id}/data"


class SensorType(Enum):
    """Supported sensor backends."""
    DHT11 = "dht11"
    DHT22 = "dht22"
    SIMULATED = "simulated"


def resolve_topic(template: str, greenhouse_id: str) -> str:
    """Substitute the greenhouse id into a topic template."""
    return Template(template).safe_substitute(id=greenhouse_id)


@dataclass
class Config:
    """Configuration for the greenhouse monitor."""
    # Identification
    greenhouse_id: str

    # MQTT broker
    mqtt_broker: str
    mqtt_port: int = 1883
    topic_template: str = DEFAULT_TOPIC_TEMPLATE
    keepalive: int = 60
    connect_timeout: float = 10.0  # seconds to wait for CONNACK

    # Sensor
    sensor_type: SensorType = SensorType.DHT22
    dht_pin: int = 4                # GPIO 4 = Pin 7
    poll_interval: float = 2.0      # DHT sensors need >= 2s between reads

    # Control API
    http_host: str = "0.0.0.0"
    http_port: int = 8000

    @property
    def topic(self) -> str:
        return resolve_topic(self.topic_template, self.greenhouse_id)

    @classmethod
    def from_env(cls, env: dict[str, str] | None = None) -> "Config":
        """
        Build a Config from environment variables (and a .env file, if present).
        Only presence of the required values is checked.
        """
        if env is None:
            load_dotenv()
            env = dict(os.environ)

        missing = [key for key in ("GREENHOUSE_ID", "MQTT_BROKER") if not env.get(key)]
        if missing:
            raise ConfigError(missing)

        return cls(
            greenhouse_id=env["GREENHOUSE_ID"],
            mqtt_broker=env["MQTT_BROKER"],
            mqtt_port=int(env.get("MQTT_PORT", "1883")),
            topic_template=env.get("MQTT_TOPIC") or DEFAULT_TOPIC_TEMPLATE,
            keepalive=int(env.get("MQTT_KEEPALIVE", "60")),
            connect_timeout=float(env.get("CONNECT_TIMEOUT", "10")),
            sensor_type=SensorType(env.get("SENSOR_TYPE", "dht22").lower()),
            dht_pin=int(env.get("DHT_PIN", "4")),
            poll_interval=float(env.get("POLL_INTERVAL", "2.0")),
            http_host=env.get("HOST", "0.0.0.0"),
            http_port=int(env.get("PORT", "8000")),
        )
