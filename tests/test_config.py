import pytest

from greenhouse.config import Config, SensorType, resolve_topic
from greenhouse.errors import ConfigError
from greenhouse import monitor
from greenhouse.monitor import build_config, main, parse_args


BASE_ENV = {"GREENHOUSE_ID": "abc123", "MQTT_BROKER": "10.0.0.5"}


def test_topic_template_resolves_greenhouse_id():
    assert resolve_topic("greenhouse/${id}/data", "abc123") == "greenhouse/abc123/data"


def test_topic_without_placeholder_is_verbatim():
    assert resolve_topic("sensors/all", "abc123") == "sensors/all"


def test_from_env_defaults():
    config = Config.from_env(BASE_ENV)

    assert config.greenhouse_id == "abc123"
    assert config.mqtt_broker == "10.0.0.5"
    assert config.mqtt_port == 1883
    assert config.keepalive == 60
    assert config.poll_interval == 2.0
    assert config.sensor_type is SensorType.DHT22
    assert config.topic == "greenhouse/abc123/data"


def test_from_env_overrides():
    env = dict(
        BASE_ENV,
        MQTT_PORT="8883",
        MQTT_TOPIC="farm/${id}/climate",
        SENSOR_TYPE="DHT11",
        DHT_PIN="16",
        POLL_INTERVAL="5",
    )

    config = Config.from_env(env)

    assert config.mqtt_port == 8883
    assert config.topic == "farm/abc123/climate"
    assert config.sensor_type is SensorType.DHT11
    assert config.dht_pin == 16
    assert config.poll_interval == 5.0


def test_missing_required_values_are_all_reported():
    with pytest.raises(ConfigError) as excinfo:
        Config.from_env({"MQTT_PORT": "1883"})

    assert excinfo.value.missing == ["GREENHOUSE_ID", "MQTT_BROKER"]


def test_empty_value_counts_as_missing():
    with pytest.raises(ConfigError) as excinfo:
        Config.from_env({"GREENHOUSE_ID": "", "MQTT_BROKER": "localhost"})

    assert excinfo.value.missing == ["GREENHOUSE_ID"]


def test_cli_flags_override_environment():
    args = parse_args(["--broker", "192.168.0.252", "--sensor", "simulated", "-i", "0.5"])

    config = build_config(args, env=BASE_ENV)

    assert config.greenhouse_id == "abc123"
    assert config.mqtt_broker == "192.168.0.252"
    assert config.sensor_type is SensorType.SIMULATED
    assert config.poll_interval == 0.5


def test_cli_can_supply_required_values():
    args = parse_args(["-g", "gh-7", "-b", "localhost"])

    config = build_config(args, env={})

    assert config.topic == "greenhouse/gh-7/data"


@pytest.mark.parametrize("key, value", [
    ("POLL_INTERVAL", "often"),
    ("MQTT_PORT", "eighteen"),
    ("SENSOR_TYPE", "bme280"),
])
def test_cli_exits_on_bad_config_value(monkeypatch, caplog, key, value):
    monkeypatch.setattr(monitor, "load_dotenv", lambda: None)
    for name, setting in BASE_ENV.items():
        monkeypatch.setenv(name, setting)
    monkeypatch.setenv(key, value)

    assert main([]) == 1
    assert value in caplog.text
