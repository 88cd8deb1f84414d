"""
Environment context: the latest ambient reading, refreshed in the background.

A refresh is two chained asynchronous steps, a location fix and then a
weather lookup for that fix. Only a fully successful chain replaces the
reading; any failure leaves the previous value in place.
"""

from __future__ import annotations

import logging
import threading
import time
from concurrent.futures import Executor, Future, ThreadPoolExecutor
from typing import Callable, List, Optional

from common.exceptions import EnvironmentLookupError
from models.environment import PENDING_READING, Coordinates, EnvironmentReading
from .location import LocationProvider
from .weather import WeatherService


class EnvironmentContext:
    """
    Holds the current EnvironmentReading.

    current_reading() never blocks on I/O. request_refresh() returns a
    Future resolving to the committed reading, or None if the refresh failed.
    """

    def __init__(
        self,
        location_provider: LocationProvider,
        weather_service: WeatherService,
        executor: Optional[Executor] = None,
    ):
        self.location_provider = location_provider
        self.weather_service = weather_service
        self._owns_executor = executor is None
        self._executor = executor or ThreadPoolExecutor(max_workers=1, thread_name_prefix="Environment")

        self._lock = threading.Lock()
        self._reading: EnvironmentReading = PENDING_READING
        self._requested = 0
        self._committed = 0
        self._listeners: List[Callable[[EnvironmentReading], None]] = []

        self.last_updated: Optional[float] = None
        self.failures = 0

    def current_reading(self) -> EnvironmentReading:
        with self._lock:
            return self._reading

    def add_listener(self, callback: Callable[[EnvironmentReading], None]) -> None:
        """Register a callback run (on the lookup thread) after each committed reading."""
        self._listeners.append(callback)

    # -------------------------------------------------------------------------
    # Refresh chain
    # -------------------------------------------------------------------------

    def request_refresh(self) -> "Future[Optional[EnvironmentReading]]":
        """Start a location -> weather -> commit chain."""
        with self._lock:
            self._requested += 1
            generation = self._requested

        result: "Future[Optional[EnvironmentReading]]" = Future()
        location_future = self._executor.submit(self.location_provider.request_once)
        location_future.add_done_callback(lambda f: self._on_location(f, generation, result))
        return result

    def _fail(self, stage: str, exc: BaseException, result: Future) -> None:
        with self._lock:
            self.failures += 1
        if isinstance(exc, EnvironmentLookupError):
            logging.warning(f"Environment {stage} failed, keeping previous reading: {exc}")
        else:
            logging.error(f"Unexpected error during environment {stage}: {exc}")
        result.set_result(None)

    def _on_location(self, future: Future, generation: int, result: Future) -> None:
        exc = future.exception()
        if exc is not None:
            self._fail("location fix", exc, result)
            return

        coords: Coordinates = future.result()
        try:
            weather_future = self._executor.submit(self.weather_service.lookup, coords)
        except RuntimeError as e:
            # Executor shut down between the two steps
            self._fail("weather lookup", e, result)
            return
        weather_future.add_done_callback(lambda f: self._on_weather(f, generation, result))

    def _on_weather(self, future: Future, generation: int, result: Future) -> None:
        exc = future.exception()
        if exc is not None:
            self._fail("weather lookup", exc, result)
            return

        reading: EnvironmentReading = future.result()
        result.set_result(self._commit(reading, generation))

    def _commit(self, reading: EnvironmentReading, generation: int) -> Optional[EnvironmentReading]:
        with self._lock:
            if reading.is_pending or generation < self._committed:
                return None
            self._reading = reading
            self._committed = generation
            self.last_updated = time.time()
        logging.info(f"Environment reading updated: {reading.condition}, {reading.temperature}")
        for listener in self._listeners:
            try:
                listener(self.current_reading())
            except Exception as e:
                logging.error(f"Environment listener failed: {e}")
        return reading

    def close(self) -> None:
        if self._owns_executor:
            self._executor.shutdown(wait=False)
