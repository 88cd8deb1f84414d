"""
Snapshot scheduler.

Fires on a fixed period on the control loop. Each tick reads the current
people count and environment reading, builds one Snapshot, and passes it
to every registered consumer (persistence, display, web state). Consumers
are independent: one failing does not affect the others or the next tick.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Callable, List, Optional, Protocol

from models.environment import EnvironmentReading
from models.snapshot import Snapshot
from runtime.loop import ControlLoop, TimerHandle

DEFAULT_INTERVAL_S = 5.0

SnapshotConsumer = Callable[[Snapshot], None]


class ReadingSource(Protocol):
    def current_reading(self) -> EnvironmentReading:
        ...


class SchedulerState(str, Enum):
    IDLE = "idle"
    ARMED = "armed"


class SnapshotScheduler:
    """
    Periodic Snapshot producer.

    Example:
        scheduler = SnapshotScheduler(loop, pipeline.current_count, environment)
        scheduler.add_consumer(persister.submit)
        scheduler.start()
    """

    def __init__(
        self,
        loop: ControlLoop,
        count_source: Callable[[], int],
        environment: ReadingSource,
        interval_s: float = DEFAULT_INTERVAL_S,
    ):
        if interval_s <= 0:
            raise ValueError("interval_s must be positive")
        self.loop = loop
        self.interval_s = float(interval_s)
        self._count_source = count_source
        self._environment = environment
        self._consumers: List[SnapshotConsumer] = []
        self._timer: Optional[TimerHandle] = None
        self._state = SchedulerState.IDLE
        self.tick_count = 0
        self.last_snapshot: Optional[Snapshot] = None

    @property
    def state(self) -> SchedulerState:
        return self._state

    def add_consumer(self, consumer: SnapshotConsumer) -> None:
        self._consumers.append(consumer)

    def start(self) -> None:
        """Arm the periodic timer. Re-arming cancels the previous timer first."""
        if self._timer is not None:
            self._timer.cancel()
        self._timer = self.loop.call_every(self.interval_s, self.tick)
        self._state = SchedulerState.ARMED
        logging.info(f"Snapshot scheduler armed: interval={self.interval_s}s")

    def stop(self) -> None:
        """Disarm the timer. Idempotent."""
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        if self._state is SchedulerState.ARMED:
            logging.info(f"Snapshot scheduler stopped after {self.tick_count} ticks")
        self._state = SchedulerState.IDLE

    def build_snapshot(self) -> Snapshot:
        """Read wall-clock time, current count and reading into a Snapshot."""
        return Snapshot.capture(
            timestamp=self.loop.clock.time(),
            passenger_count=self._count_source(),
            reading=self._environment.current_reading(),
        )

    def tick(self) -> Snapshot:
        snapshot = self.build_snapshot()
        self.tick_count += 1
        self.last_snapshot = snapshot
        logging.debug(
            f"Tick {self.tick_count}: people={snapshot.passenger_count}, "
            f"condition={snapshot.condition}, temperature={snapshot.temperature}"
        )

        for consumer in self._consumers:
            try:
                consumer(snapshot)
            except Exception as e:
                logging.warning(f"Snapshot consumer error: {e}")
        return snapshot
