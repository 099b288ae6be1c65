"""802.11-style devices sharing a :class:`~iotwifisim.launcher.channel.WifiChannel`.

The model keeps what matters for end-to-end statistics of an infrastructure
BSS and nothing more:

* stations associate when they decode the first beacon of the access point
  advertising their SSID (passive scanning);
* uplink frames go through a DCF-like access procedure: DIFS plus a random
  backoff drawn in ``[0, CW]`` slots, deferral while the medium is busy,
  binary exponential backoff after a failure and a retry limit;
* every device hears every other one (single collision domain), so two
  frames collide only when they start in the same slot.
"""

from __future__ import annotations

import logging
import math
from collections import deque
from dataclasses import dataclass, fields

import numpy as np

from .config import InvalidParameter
from .node import Node, Packet

logger = logging.getLogger(__name__)
diag_logger = logging.getLogger("diagnostics")

STATION = "sta"
ACCESS_POINT = "ap"


@dataclass(frozen=True)
class MacParameters:
    """Timing and queueing parameters (802.11 OFDM, 20 MHz, 6 Mb/s)."""

    data_rate_bps: float = 6e6
    slot_time: float = 9e-6
    sifs: float = 16e-6
    preamble_duration: float = 20e-6
    # MAC header (24) + LLC/SNAP (8) + FCS (4)
    mac_overhead_bytes: int = 36
    ack_duration: float = 44e-6
    cw_min: int = 15
    cw_max: int = 1023
    retry_limit: int = 7
    queue_limit: int = 500
    beacon_interval: float = 0.1024

    def __post_init__(self) -> None:
        for f in fields(self):
            value = getattr(self, f.name)
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise InvalidParameter(f.name, value, "must be a number")
            if not math.isfinite(value) or value <= 0:
                raise InvalidParameter(f.name, value, "must be a positive, finite number")
        if self.cw_max < self.cw_min:
            raise InvalidParameter("cw_max", self.cw_max, "must be >= cw_min")

    @property
    def difs(self) -> float:
        return self.sifs + 2.0 * self.slot_time

    @property
    def ack_timeout(self) -> float:
        return self.sifs + self.ack_duration + self.slot_time

    def frame_duration(self, ip_bytes: int) -> float:
        """Airtime of a data frame carrying an ``ip_bytes`` datagram."""
        bits = (ip_bytes + self.mac_overhead_bytes) * 8
        return self.preamble_duration + bits / self.data_rate_bps


@dataclass(slots=True)
class Transmission:
    sender: "WifiDevice"
    packet: Packet
    start: float
    end: float
    busy_until: float
    collided: bool = False


class WifiDevice:
    """Network interface of a node, in station or access-point role."""

    def __init__(
        self,
        node: Node,
        role: str,
        *,
        ssid: str,
        channel,
        simulator,
        tx_power_dBm: float,
        mac: MacParameters,
        rng: np.random.Generator,
    ) -> None:
        if role not in (STATION, ACCESS_POINT):
            raise ValueError(f"unknown Wi-Fi role {role!r}")
        self.node = node
        self.role = role
        self.ssid = ssid
        self.channel = channel
        self.simulator = simulator
        self.tx_power_dBm = tx_power_dBm
        self.mac = mac
        self.rng = rng
        self.queue: deque[Packet] = deque()
        self.cw = mac.cw_min
        self.retries = 0
        self.access_pending = False
        self.access_point: WifiDevice | None = None
        self.collisions = 0
        self._unreachable_logged = False
        node.attach_device(self)
        channel.add_device(self)

    @property
    def position(self) -> tuple[float, float, float]:
        return self.node.position

    @property
    def associated(self) -> bool:
        return self.access_point is not None

    # ------------------------------------------------------------------
    # Association
    # ------------------------------------------------------------------
    def start(self) -> None:
        if self.role == ACCESS_POINT:
            jitter = float(self.rng.uniform(0.0, self.mac.beacon_interval))
            self.simulator.schedule(jitter, self._send_beacon)

    def _send_beacon(self) -> None:
        pending = False
        for device in self.channel.devices:
            if device.role != STATION or device.ssid != self.ssid or device.associated:
                continue
            pending = True
            _, delay, decodable = self.channel.link(
                self.position, device.position, self.tx_power_dBm
            )
            if decodable:
                self.simulator.schedule(delay, device.on_beacon, self)
            else:
                device.beacon_missed(self)
        if pending:
            self.simulator.schedule(self.mac.beacon_interval, self._send_beacon)

    def on_beacon(self, ap: "WifiDevice") -> None:
        if self.associated:
            return
        self.access_point = ap
        logger.debug(
            "Node %s associated with %s (ssid=%s) at t=%.4fs",
            self.node.id,
            ap.node.address,
            self.ssid,
            self.simulator.now,
        )

    def beacon_missed(self, ap: "WifiDevice") -> None:
        if not self._unreachable_logged:
            diag_logger.info(
                "Node %s out of range of AP %s (ssid=%s)",
                self.node.id,
                ap.node.address,
                self.ssid,
            )
            self._unreachable_logged = True

    # ------------------------------------------------------------------
    # Transmit path
    # ------------------------------------------------------------------
    def enqueue(self, packet: Packet) -> None:
        if self.role == ACCESS_POINT:
            self._drop(packet, "no_downlink")
            return
        if not self.associated:
            self._drop(packet, "not_associated")
            return
        if len(self.queue) >= self.mac.queue_limit:
            self._drop(packet, "queue_full")
            return
        self.queue.append(packet)
        if not self.access_pending:
            self._start_access()

    def _draw_backoff(self) -> float:
        slots = int(self.rng.integers(0, self.cw + 1))
        return self.mac.difs + slots * self.mac.slot_time

    def _start_access(self, not_before: float | None = None) -> None:
        self.access_pending = True
        start = self.simulator.now if not_before is None else not_before
        self.simulator.schedule_at(start + self._draw_backoff(), self._attempt)

    def _attempt(self) -> None:
        now = self.simulator.now
        on_air = self.channel.on_air(now)
        same_slot = [tx for tx in on_air if now - tx.start < self.mac.slot_time]
        if on_air and not same_slot:
            # Medium sensed busy: defer until it is idle again.
            idle_at = max(tx.busy_until for tx in on_air)
            self._start_access(not_before=idle_at)
            return
        self._transmit(same_slot)

    def _transmit(self, colliding: list[Transmission]) -> None:
        now = self.simulator.now
        packet = self.queue[0]
        end = now + self.mac.frame_duration(packet.size)
        tx = Transmission(self, packet, now, end, end + self.mac.sifs + self.mac.ack_duration)
        if colliding:
            tx.collided = True
            for other in colliding:
                other.collided = True
        self.channel.start_transmission(tx)
        self.simulator.schedule_at(end, self._end_transmission, tx)

    def _end_transmission(self, tx: Transmission) -> None:
        ap = self.access_point if self.role == STATION else None
        decodable = False
        delay = 0.0
        if ap is not None:
            _, delay, decodable = self.channel.link(self.position, ap.position, self.tx_power_dBm)
        if decodable and not tx.collided:
            self.simulator.schedule(delay, ap.receive, tx.packet)
            self._next_frame(tx.busy_until)
            return
        if tx.collided:
            self.collisions += 1
        self.retries += 1
        if self.retries > self.mac.retry_limit:
            reason = "collision" if tx.collided else "low_snr"
            diag_logger.info(
                "Frame %s of node %s dropped after %d attempts (%s)",
                tx.packet.uid,
                self.node.id,
                self.retries,
                reason,
            )
            self._drop(tx.packet, reason)
            self._next_frame(self.simulator.now + self.mac.ack_timeout)
            return
        self.cw = min(2 * self.cw + 1, self.mac.cw_max)
        self._start_access(not_before=self.simulator.now + self.mac.ack_timeout)

    def _next_frame(self, idle_at: float) -> None:
        self.queue.popleft()
        self.cw = self.mac.cw_min
        self.retries = 0
        if self.queue:
            self._start_access(not_before=idle_at)
        else:
            self.access_pending = False

    def _drop(self, packet: Packet, reason: str) -> None:
        self.node.ip_drop(packet, reason)

    # ------------------------------------------------------------------
    # Receive path
    # ------------------------------------------------------------------
    def receive(self, packet: Packet) -> None:
        self.node.ip_receive(packet)


__all__ = [
    "STATION",
    "ACCESS_POINT",
    "MacParameters",
    "Transmission",
    "WifiDevice",
]
