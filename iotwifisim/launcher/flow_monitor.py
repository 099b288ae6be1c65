"""Per-flow statistics collector.

Every datagram leaving a monitored node is classified by its five-tuple into
a :class:`FlowId`. The monitor counts transmitted and received packets and
bytes, accumulates end-to-end delay and jitter, and tracks the packets still
in flight so that :meth:`FlowMonitor.check_for_lost_packets` can account for
those that never arrived. After the run, :meth:`FlowMonitor.snapshot` returns
a read-only mapping of immutable :class:`FlowRecord` objects.
"""

from __future__ import annotations

import ipaddress
import logging
import math
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field, fields
from types import MappingProxyType

import pandas as pd

from .node import Node, Packet

logger = logging.getLogger(__name__)

DEFAULT_MAX_DELAY = 10.0


@dataclass(frozen=True, order=True)
class FlowId:
    source: ipaddress.IPv4Address
    destination: ipaddress.IPv4Address
    protocol: int
    source_port: int
    destination_port: int

    @classmethod
    def of(cls, packet: Packet) -> "FlowId":
        return cls(
            packet.source,
            packet.destination,
            packet.protocol,
            packet.source_port,
            packet.destination_port,
        )

    def __str__(self) -> str:
        return (
            f"{self.source}:{self.source_port} -> "
            f"{self.destination}:{self.destination_port} (proto {self.protocol})"
        )


@dataclass(frozen=True)
class FlowRecord:
    """Final statistics of one directional flow."""

    tx_packets: int = 0
    tx_bytes: int = 0
    rx_packets: int = 0
    rx_bytes: int = 0
    delay_sum: float = 0.0
    jitter_sum: float = 0.0
    lost_packets: int = 0
    time_first_tx: float | None = None
    time_last_tx: float | None = None
    time_first_rx: float | None = None
    time_last_rx: float | None = None
    drop_reasons: Mapping[str, int] = field(default_factory=dict)


@dataclass
class _FlowState:
    tx_packets: int = 0
    tx_bytes: int = 0
    rx_packets: int = 0
    rx_bytes: int = 0
    delays: list[float] = field(default_factory=list)
    jitter_sum: float = 0.0
    last_delay: float | None = None
    lost_packets: int = 0
    time_first_tx: float | None = None
    time_last_tx: float | None = None
    time_first_rx: float | None = None
    time_last_rx: float | None = None
    drop_reasons: dict[str, int] = field(default_factory=dict)

    def freeze(self) -> FlowRecord:
        return FlowRecord(
            tx_packets=self.tx_packets,
            tx_bytes=self.tx_bytes,
            rx_packets=self.rx_packets,
            rx_bytes=self.rx_bytes,
            delay_sum=math.fsum(self.delays),
            jitter_sum=self.jitter_sum,
            lost_packets=self.lost_packets,
            time_first_tx=self.time_first_tx,
            time_last_tx=self.time_last_tx,
            time_first_rx=self.time_first_rx,
            time_last_rx=self.time_last_rx,
            drop_reasons=MappingProxyType(dict(self.drop_reasons)),
        )


class FlowMonitor:
    """Collects per-flow counters from the IP layer of the monitored nodes."""

    def __init__(self, simulator, *, max_delay: float = DEFAULT_MAX_DELAY) -> None:
        self.simulator = simulator
        self.max_delay = max_delay
        self._flows: dict[FlowId, _FlowState] = {}
        # uid -> (flow, send time)
        self._in_flight: dict[int, tuple[FlowId, float]] = {}
        self._monitored: set[int] = set()

    # ------------------------------------------------------------------
    def install(self, node: Node) -> None:
        if node.id in self._monitored:
            return
        node.tx_hooks.append(self.record_tx)
        node.rx_hooks.append(self.record_rx)
        node.drop_hooks.append(self.record_drop)
        self._monitored.add(node.id)

    def install_all(self, nodes: Iterable[Node]) -> None:
        for node in nodes:
            self.install(node)
        logger.debug("Flow monitor attached to %d nodes", len(self._monitored))

    # ------------------------------------------------------------------
    def record_tx(self, packet: Packet) -> None:
        now = self.simulator.now
        flow = FlowId.of(packet)
        state = self._flows.setdefault(flow, _FlowState())
        state.tx_packets += 1
        state.tx_bytes += packet.size
        if state.time_first_tx is None:
            state.time_first_tx = now
        state.time_last_tx = now
        self._in_flight[packet.uid] = (flow, now)

    def record_rx(self, packet: Packet) -> None:
        entry = self._in_flight.pop(packet.uid, None)
        if entry is None:
            # Not sent by a monitored node or already accounted as lost.
            return
        flow, sent_at = entry
        now = self.simulator.now
        state = self._flows[flow]
        delay = now - sent_at
        state.rx_packets += 1
        state.rx_bytes += packet.size
        state.delays.append(delay)
        if state.last_delay is not None:
            state.jitter_sum += abs(delay - state.last_delay)
        state.last_delay = delay
        if state.time_first_rx is None:
            state.time_first_rx = now
        state.time_last_rx = now

    def record_drop(self, packet: Packet, reason: str) -> None:
        entry = self._in_flight.pop(packet.uid, None)
        if entry is None:
            return
        state = self._flows[entry[0]]
        state.lost_packets += 1
        state.drop_reasons[reason] = state.drop_reasons.get(reason, 0) + 1

    # ------------------------------------------------------------------
    def check_for_lost_packets(self, max_delay: float | None = None) -> int:
        """Count as lost every in-flight packet at least ``max_delay`` seconds old.

        Returns the number of packets newly marked as lost.
        """

        limit = self.max_delay if max_delay is None else max_delay
        now = self.simulator.now
        expired = [
            uid for uid, (_, sent_at) in self._in_flight.items() if now - sent_at >= limit
        ]
        for uid in expired:
            flow, _ = self._in_flight.pop(uid)
            self._flows[flow].lost_packets += 1
        if expired:
            logger.debug("%d in-flight packets marked as lost at t=%.3fs", len(expired), now)
        return len(expired)

    @property
    def packets_in_flight(self) -> int:
        return len(self._in_flight)

    def snapshot(self) -> Mapping[FlowId, FlowRecord]:
        """Return an immutable view of the statistics of every flow."""

        ordered = sorted(self._flows.items(), key=lambda item: item[0])
        return MappingProxyType({flow: state.freeze() for flow, state in ordered})


def flow_stats_dataframe(flow_stats: Mapping[FlowId, FlowRecord]) -> pd.DataFrame:
    """Tabulate ``flow_stats`` with one row per flow."""

    columns = [
        "source",
        "destination",
        "protocol",
        "source_port",
        "destination_port",
        "tx_packets",
        "tx_bytes",
        "rx_packets",
        "rx_bytes",
        "lost_packets",
        "delay_sum",
        "jitter_sum",
        "time_first_tx",
        "time_last_tx",
        "time_first_rx",
        "time_last_rx",
    ]
    rows = []
    for flow, record in flow_stats.items():
        row = {
            f.name: getattr(record, f.name)
            for f in fields(record)
            if f.name != "drop_reasons"
        }
        row.update(
            source=str(flow.source),
            destination=str(flow.destination),
            protocol=flow.protocol,
            source_port=flow.source_port,
            destination_port=flow.destination_port,
        )
        rows.append(row)
    return pd.DataFrame(rows, columns=columns)


__all__ = [
    "DEFAULT_MAX_DELAY",
    "FlowId",
    "FlowRecord",
    "FlowMonitor",
    "flow_stats_dataframe",
]
