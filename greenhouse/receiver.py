#!/usr/bin/env python3
"""
Greenhouse Receiver

Subscribes to published greenhouse readings and logs them. Useful to verify
that a monitor is publishing, in place of mosquitto_sub.
"""

import argparse
import logging
import os
import signal
import sys
import threading
from datetime import datetime
from typing import Callable

import paho.mqtt.client as mqtt
from dotenv import load_dotenv

from .models import Reading

logger = logging.getLogger(__name__)

DEFAULT_TOPIC_FILTER = "greenhouse/+/data"


class ReadingReceiver:
    """Receives readings via MQTT and hands each decoded Reading to a callback."""

    def __init__(
        self,
        broker_address: str,
        broker_port: int = 1883,
        topic: str = DEFAULT_TOPIC_FILTER,
        client_id: str = "greenhouse-receiver",
        on_reading: Callable[[str, Reading], None] | None = None,
        client: mqtt.Client | None = None,
    ):
        self.broker_address = broker_address
        self.broker_port = broker_port
        self.topic = topic
        self.on_reading = on_reading or log_reading
        self.client = client or mqtt.Client(mqtt.CallbackAPIVersion.VERSION2, client_id=client_id)
        self.client.on_connect = self._on_connect
        self.client.on_message = self._on_message

        self._stop_event = threading.Event()
        self.message_count = 0
        self.rejected_count = 0

    def _on_connect(self, client, userdata, flags, reason_code, properties=None):
        if reason_code == 0:
            logger.info(f"Connected to broker, subscribing to {self.topic}")
            client.subscribe(self.topic)
        else:
            logger.error(f"Connect failed rc={reason_code}")

    def _on_message(self, client, userdata, message):
        try:
            reading = Reading.from_payload(message.payload)
        except (ValueError, UnicodeDecodeError) as e:
            self.rejected_count += 1
            logger.warning(f"Skipping malformed payload on {message.topic}: {e}")
            return

        self.message_count += 1
        self.on_reading(message.topic, reading)

    def start(self) -> bool:
        try:
            self.client.connect(self.broker_address, self.broker_port, 60)
        except (OSError, ValueError) as e:
            logger.error(f"Connection error: {e}")
            return False
        self.client.loop_start()
        logger.info("Receiver started. Press Ctrl+C to stop.")
        return True

    def stop(self) -> None:
        self._stop_event.set()
        self.client.loop_stop()
        self.client.disconnect()
        logger.info(f"Receiver stopped after {self.message_count} readings")

    def wait(self) -> None:
        """Block until stop() is called."""
        while not self._stop_event.is_set():
            self._stop_event.wait(timeout=0.5)


def log_reading(topic: str, reading: Reading) -> None:
    ts = datetime.fromtimestamp(reading.timestamp).strftime("%Y-%m-%d %H:%M:%S")
    if not reading.complete:
        logger.warning(f"[{ts}] {reading.greenhouse_id}: incomplete reading ({topic})")
        return
    logger.info(
        f"[{ts}] {reading.greenhouse_id}: "
        f"Temp={reading.temperature:.1f}°C, Humidity={reading.humidity:.1f}% ({topic})"
    )


def main(argv: list[str] | None = None) -> int:
    load_dotenv()

    parser = argparse.ArgumentParser(
        description="Greenhouse Receiver - logs readings published over MQTT",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter
    )
    parser.add_argument(
        "-b", "--broker",
        default=os.getenv("MQTT_BROKER", "127.0.0.1"),
        help="MQTT broker address"
    )
    parser.add_argument(
        "-p", "--port",
        type=int,
        default=int(os.getenv("MQTT_PORT", "1883")),
        help="MQTT broker port"
    )
    parser.add_argument(
        "-t", "--topic",
        default=DEFAULT_TOPIC_FILTER,
        help="Topic filter to subscribe to"
    )
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(levelname)s - %(message)s')

    receiver = ReadingReceiver(args.broker, args.port, args.topic)

    def signal_handler(sig, frame):
        receiver.stop()

    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)

    if not receiver.start():
        return 1
    receiver.wait()
    return 0


if __name__ == "__main__":
    sys.exit(main())
