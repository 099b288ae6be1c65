"""Event-driven simulation kernel."""

from __future__ import annotations

import heapq
import itertools
import logging
import math
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

logger = logging.getLogger(__name__)


@dataclass(order=True, slots=True)
class Event:
    time: float
    seq: int
    callback: Callable[..., Any] = field(compare=False)
    args: tuple = field(default=(), compare=False)
    cancelled: bool = field(default=False, compare=False)

    def cancel(self) -> None:
        self.cancelled = True


class Simulator:
    """Processes scheduled callbacks in nondecreasing time order.

    Events scheduled for the same instant run in the order they were
    scheduled. The kernel is single threaded; callbacks may schedule further
    events but never run concurrently.
    """

    def __init__(self, tick_ns: int | None = 1) -> None:
        if tick_ns is not None and tick_ns <= 0:
            raise ValueError("tick_ns must be a positive integer")
        self.tick_ns = tick_ns
        self.event_queue: list[Event] = []
        self.current_time = 0.0
        self.event_id_counter = 0
        self.events_processed = 0
        self.running = False
        self.finished = False
        self.stop_time: float | None = None
        self._packet_uids = itertools.count()

    @property
    def now(self) -> float:
        return self.current_time

    def next_packet_uid(self) -> int:
        """Return a packet identifier unique within this simulation."""
        return next(self._packet_uids)

    def _quantize(self, t: float) -> float:
        """Round ``t`` to the scheduler resolution (1 ns by default)."""
        if self.tick_ns is None:
            return float(t)
        ticks = round(t * 1_000_000_000 / self.tick_ns)
        return ticks * self.tick_ns / 1_000_000_000

    def schedule_at(self, time: float, callback: Callable[..., Any], *args: Any) -> Event:
        """Schedule ``callback(*args)`` at absolute time ``time`` (seconds)."""

        if not math.isfinite(time):
            raise ValueError(f"event time must be finite, got {time!r}")
        time = self._quantize(time)
        if time < self.current_time:
            raise ValueError(
                f"cannot schedule an event in the past "
                f"(t={time:.9f}s < now={self.current_time:.9f}s)"
            )
        event = Event(time, self.event_id_counter, callback, args)
        self.event_id_counter += 1
        heapq.heappush(self.event_queue, event)
        return event

    def schedule(self, delay: float, callback: Callable[..., Any], *args: Any) -> Event:
        """Schedule ``callback(*args)`` ``delay`` seconds from now."""

        if delay < 0:
            raise ValueError(f"delay must be >= 0, got {delay!r}")
        return self.schedule_at(self.current_time + delay, callback, *args)

    def schedule_now(self, callback: Callable[..., Any], *args: Any) -> Event:
        return self.schedule_at(self.current_time, callback, *args)

    def step(self) -> bool:
        """Run the next scheduled event. Return False when the queue is empty."""
        if not self.event_queue:
            return False
        event = heapq.heappop(self.event_queue)
        if event.cancelled:
            return True
        self.current_time = event.time
        event.callback(*event.args)
        self.events_processed += 1
        return True

    def run(self, stop_time: float | None = None) -> None:
        """Run until the queue is empty or the next event lies after ``stop_time``.

        ``stop_time`` is a hard ceiling: events scheduled at or before it are
        processed, later ones are left in the queue and the clock is advanced
        to ``stop_time``. :meth:`stop` halts the loop after the current event.
        """

        if self.finished:
            raise RuntimeError("simulation already ran; build a new Simulator")
        if stop_time is not None:
            if not math.isfinite(stop_time) or stop_time < self.current_time:
                raise ValueError(f"invalid stop time {stop_time!r}")
            self.stop_time = float(stop_time)
        self.running = True
        logger.debug("Simulation started (stop at %s)", self.stop_time)
        while self.running and self.event_queue:
            if self.stop_time is not None and self.event_queue[0].time > self.stop_time:
                break
            self.step()
        if self.running and self.stop_time is not None:
            self.current_time = max(self.current_time, self.stop_time)
        self.running = False
        self.finished = True
        logger.debug(
            "Simulation halted at t=%.6fs after %d events (%d pending)",
            self.current_time,
            self.events_processed,
            len(self.event_queue),
        )

    def stop(self) -> None:
        """Halt the running simulation after the current event."""
        self.running = False

    def pending_events(self) -> int:
        return sum(1 for e in self.event_queue if not e.cancelled)


__all__ = ["Event", "Simulator"]
