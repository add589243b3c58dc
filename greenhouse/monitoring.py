"""Polling loop that reads the sensor and publishes readings over MQTT."""

import logging
import threading
import time
from enum import Enum
from typing import Callable

from .errors import LoopStateError, PublisherNotConnected
from .models import Reading
from .publisher import MQTTPublisher
from .sensors import Sensor

logger = logging.getLogger(__name__)


class LoopState(Enum):
    IDLE = "idle"
    RUNNING = "running"
    STOPPED = "stopped"
    FAULTED = "faulted"


class MonitoringLoop:
    """
    Reads the sensor every poll_interval seconds and publishes complete readings.

    The loop owns its sensor: the sensor is released exactly once when the
    loop ends, whether it was stopped or failed. Both end states are terminal.
    Uses a threading event for timing so stop() also interrupts the wait.
    """

    def __init__(
        self,
        greenhouse_id: str,
        topic: str,
        sensor: Sensor,
        publisher: MQTTPublisher,
        poll_interval: float = 2.0,
        clock: Callable[[], float] = time.time,
    ):
        self.greenhouse_id = greenhouse_id
        self.topic = topic
        self.poll_interval = poll_interval
        self._sensor = sensor
        self._publisher = publisher
        self._clock = clock

        self._state = LoopState.IDLE
        self._state_lock = threading.Lock()
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None

        # Statistics
        self.cycles = 0
        self.published = 0
        self.dropped = 0
        self.error: str | None = None

    @property
    def state(self) -> LoopState:
        return self._state

    @property
    def is_running(self) -> bool:
        return self._state is LoopState.RUNNING

    @property
    def is_stopping(self) -> bool:
        """Stop was requested but the thread has not finished its cycle yet."""
        return self.is_running and self._stop_event.is_set()

    @property
    def is_active(self) -> bool:
        return self.is_running and not self._stop_event.is_set()

    def start(self) -> None:
        """Spawn the polling thread."""
        with self._state_lock:
            if self._state is not LoopState.IDLE:
                raise LoopStateError(f"Cannot start loop in state {self._state.value}")
            self._state = LoopState.RUNNING

        self._thread = threading.Thread(target=self.run, name="MonitoringLoop", daemon=True)
        self._thread.start()
        logger.info(f"Monitoring started for greenhouse {self.greenhouse_id} on {self.topic}")

    def stop(self) -> None:
        """Ask the loop to stop; returns without waiting."""
        self._stop_event.set()

    def join(self, timeout: float | None = None) -> None:
        if self._thread is not None:
            self._thread.join(timeout=timeout)

    def run(self) -> None:
        """Run cycles until stopped or a cycle fails. Blocks the calling thread."""
        if self._thread is None:
            with self._state_lock:
                if self._state is not LoopState.IDLE:
                    raise LoopStateError(f"Cannot run loop in state {self._state.value}")
                self._state = LoopState.RUNNING

        end_state = LoopState.STOPPED
        try:
            while not self._stop_event.is_set():
                self.run_cycle()
                if self._stop_event.wait(timeout=self.poll_interval):
                    break
        except Exception as e:
            logger.exception(f"Monitoring loop failed: {e}")
            self.error = str(e)
            end_state = LoopState.FAULTED
        finally:
            self._sensor.release()
            with self._state_lock:
                self._state = end_state

        logger.info(
            f"Monitoring {end_state.value} after {self.cycles} cycles "
            f"({self.published} published, {self.dropped} dropped)"
        )

    def run_cycle(self) -> Reading | None:
        """Read both values and publish them if complete. Returns the published reading."""
        self.cycles += 1
        temperature = self._sensor.read_temperature()
        humidity = self._sensor.read_humidity()

        if temperature is None or humidity is None:
            self.dropped += 1
            logger.error(
                f"Failed to read from sensor (temperature={temperature}, humidity={humidity})"
            )
            return None

        reading = Reading(
            greenhouse_id=self.greenhouse_id,
            temperature=temperature,
            humidity=humidity,
            timestamp=int(self._clock()),
        )
        if self._publisher.publish_reading(self.topic, reading):
            self.published += 1
        return reading

    def stats(self) -> dict:
        return {
            "state": self._state.value,
            "cycles": self.cycles,
            "published": self.published,
            "dropped": self.dropped,
            "error": self.error,
        }


class MonitoringService:
    """
    Owns the shared publisher and at most one active MonitoringLoop.

    start() is idempotent: while a loop is running it is returned instead of
    spawning a second one, so a single loop owns the sensor at any time.
    """

    def __init__(
        self,
        greenhouse_id: str,
        topic: str,
        publisher: MQTTPublisher,
        sensor_factory: Callable[[], Sensor],
        poll_interval: float = 2.0,
        clock: Callable[[], float] = time.time,
    ):
        self.greenhouse_id = greenhouse_id
        self.topic = topic
        self.publisher = publisher
        self.poll_interval = poll_interval
        self._sensor_factory = sensor_factory
        self._clock = clock
        self._lock = threading.Lock()
        self._loop: MonitoringLoop | None = None
        self.loops_started = 0

    @property
    def current_loop(self) -> MonitoringLoop | None:
        return self._loop

    def start(self) -> tuple[MonitoringLoop, bool]:
        """Start polling. Returns (loop, created)."""
        with self._lock:
            if self._loop is not None and self._loop.is_active:
                logger.info("Monitoring already running")
                return self._loop, False

            if self._loop is not None and self._loop.is_stopping:
                # The old loop must release its sensor before a new one is built
                self._loop.join()

            if not self.publisher.is_connected:
                raise PublisherNotConnected(
                    f"MQTT broker {self.publisher.broker_address}:{self.publisher.broker_port} not connected"
                )

            loop = MonitoringLoop(
                greenhouse_id=self.greenhouse_id,
                topic=self.topic,
                sensor=self._sensor_factory(),
                publisher=self.publisher,
                poll_interval=self.poll_interval,
                clock=self._clock,
            )
            loop.start()
            self._loop = loop
            self.loops_started += 1
            return loop, True

    def stop(self) -> bool:
        """Signal the active loop to stop. Returns False when nothing was running."""
        with self._lock:
            loop = self._loop
        if loop is None or not loop.is_active:
            return False
        loop.stop()
        logger.info("Monitoring stop requested")
        return True

    def status(self) -> dict:
        loop = self._loop
        status = loop.stats() if loop else {"state": LoopState.IDLE.value}
        status.update(
            greenhouse_id=self.greenhouse_id,
            topic=self.topic,
            mqtt_connected=self.publisher.is_connected,
            mqtt_published=self.publisher.published_count,
            loops_started=self.loops_started,
        )
        return status

    def shutdown(self, timeout: float = 5.0) -> None:
        """Stop the active loop and wait for it to release the sensor."""
        loop = self._loop
        if loop is not None:
            loop.stop()
            loop.join(timeout=timeout)
