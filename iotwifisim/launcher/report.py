"""Human-readable summary of a run."""

from __future__ import annotations

from .config import ScenarioConfig
from .metrics import AggregateMetrics

HEADER = "========== RESULTS =========="
FOOTER = "=============================="
LABEL_WIDTH = 21


def _num(value: float) -> str:
    return f"{value:g}"


def report_lines(config: ScenarioConfig, metrics: AggregateMetrics) -> list[tuple[str, str]]:
    """Return the ``(label, value)`` pairs of the report, in display order."""

    return [
        ("Sensors:", str(config.sensor_count)),
        ("Simulation time:", f"{_num(config.simulation_duration)} s"),
        ("TxPower:", f"{_num(config.tx_power)} dBm"),
        ("Packet interval:", f"{_num(config.packet_interval)} s"),
        ("Packets transmitted:", str(metrics.total_tx_packets)),
        ("Packets received:", str(metrics.total_rx_packets)),
        ("PDR:", f"{_num(metrics.pdr_percent)} %"),
        ("Average delay:", f"{_num(metrics.average_delay_s)} s"),
        ("Average throughput:", f"{_num(metrics.average_throughput_kbps)} kbps"),
    ]


def format_report(config: ScenarioConfig, metrics: AggregateMetrics) -> str:
    body = [f"{label:<{LABEL_WIDTH}}{value}" for label, value in report_lines(config, metrics)]
    return "\n".join([HEADER, *body, FOOTER])


__all__ = ["report_lines", "format_report"]
