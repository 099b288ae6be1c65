from iotwifisim.launcher.config import ScenarioConfig
from iotwifisim.launcher.metrics import AggregateMetrics, aggregate_flow_stats
from iotwifisim.launcher.report import FOOTER, HEADER, LABEL_WIDTH, format_report, report_lines

LABELS = [
    "Sensors:",
    "Simulation time:",
    "TxPower:",
    "Packet interval:",
    "Packets transmitted:",
    "Packets received:",
    "PDR:",
    "Average delay:",
    "Average throughput:",
]


def test_report_fields_in_order():
    metrics = AggregateMetrics(
        total_tx_packets=100,
        total_rx_packets=80,
        total_rx_bytes=8000,
        packet_delivery_ratio=0.8,
        average_delay_s=0.1,
        average_throughput_kbps=1.6,
    )
    text = format_report(ScenarioConfig(), metrics)
    lines = text.splitlines()
    assert lines[0] == HEADER
    assert lines[-1] == FOOTER
    assert [line[:LABEL_WIDTH].rstrip() for line in lines[1:-1]] == LABELS
    assert "Sensors:             27" in lines
    assert "Packets transmitted: 100" in lines
    assert "PDR:                 80 %" in lines
    assert "Average delay:       0.1 s" in lines
    assert "Average throughput:  1.6 kbps" in lines


def test_zero_traffic_reports_zero_percent():
    metrics = aggregate_flow_stats({}, 10.0)
    pairs = dict(report_lines(ScenarioConfig(simulation_duration=10.0), metrics))
    assert pairs["PDR:"] == "0 %"
    assert pairs["Packets transmitted:"] == "0"
    assert pairs["Simulation time:"] == "10 s"
    assert pairs["TxPower:"] == "20 dBm"
