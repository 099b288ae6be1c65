"""Reduce per-flow statistics to scenario-level metrics."""

from __future__ import annotations

import math
from dataclasses import asdict, dataclass
from typing import Any, Mapping


@dataclass(frozen=True)
class AggregateMetrics:
    """Scenario-level results of one run."""

    total_tx_packets: int
    total_rx_packets: int
    total_rx_bytes: int
    packet_delivery_ratio: float
    average_delay_s: float
    average_throughput_kbps: float

    @property
    def pdr_percent(self) -> float:
        return self.packet_delivery_ratio * 100.0

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def aggregate_flow_stats(
    flow_stats: Mapping[Any, Any], simulation_duration: float
) -> AggregateMetrics:
    """Sum the counters of every flow and derive PDR, delay and throughput.

    Each ratio is guarded against a zero denominator and falls back to 0:

    * PDR = received / transmitted packets;
    * average delay = sum of delays / received packets (seconds);
    * throughput = received bytes * 8 / duration / 1000 (kb/s).

    ``math.fsum`` keeps the delay sum exact whatever the iteration order of
    ``flow_stats``.
    """

    total_tx = 0
    total_rx = 0
    total_rx_bytes = 0
    rx_for_delay = 0
    delays: list[float] = []
    for record in flow_stats.values():
        total_tx += record.tx_packets
        total_rx += record.rx_packets
        total_rx_bytes += record.rx_bytes
        delays.append(float(record.delay_sum))
        rx_for_delay += record.rx_packets
    sum_delay = math.fsum(delays)

    pdr = total_rx / total_tx if total_tx > 0 else 0.0
    avg_delay = sum_delay / rx_for_delay if rx_for_delay > 0 else 0.0
    if simulation_duration > 0:
        throughput_kbps = total_rx_bytes * 8.0 / simulation_duration / 1000.0
    else:
        throughput_kbps = 0.0

    return AggregateMetrics(
        total_tx_packets=total_tx,
        total_rx_packets=total_rx,
        total_rx_bytes=total_rx_bytes,
        packet_delivery_ratio=pdr,
        average_delay_s=avg_delay,
        average_throughput_kbps=throughput_kbps,
    )


__all__ = ["AggregateMetrics", "aggregate_flow_stats"]
