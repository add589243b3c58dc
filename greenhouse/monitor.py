#!/usr/bin/env python3
"""
Greenhouse Monitor

Reads temperature and humidity from a DHT sensor and publishes JSON readings
to an MQTT broker. Polling is started and stopped over HTTP (/start, /stop).
"""

import argparse
import logging
import os
import signal
import sys
import threading

from dotenv import load_dotenv

from .app import create_app
from .config import Config, SensorType
from .errors import GreenhouseError
from .monitoring import MonitoringService
from .publisher import MQTTPublisher
from .sensors import create_sensor

logger = logging.getLogger(__name__)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command line arguments. Unset options fall back to the environment."""
    parser = argparse.ArgumentParser(
        description="Greenhouse Monitor - publishes DHT readings over MQTT",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter
    )

    parser.add_argument("-g", "--greenhouse-id", help="Greenhouse identifier (GREENHOUSE_ID)")
    parser.add_argument("-b", "--broker", help="MQTT broker address (MQTT_BROKER)")
    parser.add_argument("-p", "--port", type=int, help="MQTT broker port (MQTT_PORT)")
    parser.add_argument(
        "--sensor",
        choices=[t.value for t in SensorType],
        help="Sensor backend (SENSOR_TYPE)"
    )
    parser.add_argument("--dht-pin", type=int, help="GPIO pin of the DHT sensor (DHT_PIN)")
    parser.add_argument(
        "-i", "--interval",
        type=float,
        help="Seconds between readings (POLL_INTERVAL)"
    )
    parser.add_argument("--host", help="Control API listen address (HOST)")
    parser.add_argument("--http-port", type=int, help="Control API port (PORT)")
    parser.add_argument(
        "--autostart",
        action="store_true",
        help="Start polling immediately instead of waiting for /start"
    )
    parser.add_argument(
        "--headless",
        action="store_true",
        help="Poll until interrupted, without the HTTP control API"
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level"
    )

    return parser.parse_args(argv)


def build_config(args: argparse.Namespace, env: dict[str, str] | None = None) -> Config:
    """Merge command line overrides into the environment configuration."""
    overrides = {
        "GREENHOUSE_ID": args.greenhouse_id,
        "MQTT_BROKER": args.broker,
        "MQTT_PORT": args.port,
        "SENSOR_TYPE": args.sensor,
        "DHT_PIN": args.dht_pin,
        "POLL_INTERVAL": args.interval,
        "HOST": args.host,
        "PORT": args.http_port,
    }
    if env is None:
        load_dotenv()
        env = os.environ
    env = dict(env)

    env.update({key: str(value) for key, value in overrides.items() if value is not None})
    return Config.from_env(env)


def setup_logging(level: str) -> None:
    logging.basicConfig(level=level, format='%(asctime)s - %(levelname)s - %(message)s')


def run_headless(service: MonitoringService) -> None:
    """Run one loop until SIGINT/SIGTERM or until it fails."""
    stop_event = threading.Event()

    def signal_handler(sig, frame):
        stop_event.set()

    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)

    loop, _ = service.start()
    while not stop_event.is_set() and loop.is_running:
        stop_event.wait(timeout=0.5)

    service.shutdown()


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    args = parse_args(argv)
    setup_logging(args.log_level)

    try:
        config = build_config(args)
    except (GreenhouseError, ValueError) as e:
        logger.error(str(e))
        return 1

    logger.info("=" * 50)
    logger.info(f"Greenhouse ID: {config.greenhouse_id}")
    logger.info(f"Broker: {config.mqtt_broker}:{config.mqtt_port}")
    logger.info(f"Topic: {config.topic}")
    logger.info(f"Sensor: {config.sensor_type.value} (interval {config.poll_interval}s)")
    logger.info("=" * 50)

    publisher = MQTTPublisher.from_config(config)
    result = publisher.connect()
    if not result:
        logger.error(f"MQTT connect failed: {result.error}")
        return 1

    service = MonitoringService(
        greenhouse_id=config.greenhouse_id,
        topic=config.topic,
        publisher=publisher,
        sensor_factory=lambda: create_sensor(config),
        poll_interval=config.poll_interval,
    )

    try:
        if args.headless:
            run_headless(service)
            return 0 if service.status()["state"] != "faulted" else 1

        if args.autostart:
            service.start()

        app = create_app(service)
        logging.getLogger("werkzeug").setLevel(logging.WARNING)
        logger.info(f"Control API on {config.http_host}:{config.http_port}")
        app.run(host=config.http_host, port=config.http_port, debug=False)
        return 0
    except GreenhouseError as e:
        logger.error(str(e))
        return 1
    finally:
        service.shutdown()
        publisher.disconnect()


if __name__ == "__main__":
    sys.exit(main())
