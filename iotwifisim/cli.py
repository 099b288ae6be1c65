"""Command line entry point: run one scenario and print the report."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Sequence

from iotwifisim.launcher import (
    AddressSpaceExhausted,
    ChannelConfig,
    InvalidParameter,
    ScenarioConfig,
    flow_stats_dataframe,
    format_report,
    load_scenario_file,
    run_scenario,
)

LOGGER = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_CONFIG_ERROR = 1


def build_parser() -> argparse.ArgumentParser:
    defaults = ScenarioConfig()
    parser = argparse.ArgumentParser(
        prog="iotwifisim",
        description=(
            "Simulate N Wi-Fi sensors sending periodic UDP datagrams to a sink "
            "and report PDR, mean delay and mean throughput."
        ),
        allow_abbrev=False,
    )
    parser.add_argument(
        "--packetInterval",
        type=float,
        default=None,
        help=f"Interval between packets in seconds (default: {defaults.packet_interval:g}).",
    )
    parser.add_argument(
        "--txPower",
        type=float,
        default=None,
        help=f"Transmit power in dBm (default: {defaults.tx_power:g}).",
    )
    parser.add_argument(
        "--nSensors",
        type=int,
        default=None,
        help=f"Number of sensor nodes (default: {defaults.sensor_count}).",
    )
    parser.add_argument(
        "--simTime",
        type=float,
        default=None,
        help=f"Simulated time in seconds (default: {defaults.simulation_duration:g}).",
    )
    parser.add_argument(
        "--packetSize",
        type=int,
        default=None,
        help=f"UDP payload size in bytes (default: {defaults.packet_size}).",
    )
    parser.add_argument("--seed", type=int, default=None, help="Global RNG seed.")
    parser.add_argument("--run", type=int, default=None, help="RNG run (replication) number.")
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="YAML file with scenario parameters and an optional 'channel' section.",
    )
    parser.add_argument(
        "--flows-csv",
        type=Path,
        default=None,
        help="Also write the per-flow statistics to this CSV file.",
    )
    parser.add_argument(
        "--log-level",
        default="WARNING",
        choices=("DEBUG", "INFO", "WARNING", "ERROR"),
        help="Logging verbosity on stderr (default: %(default)s).",
    )
    return parser


def _collect_overrides(args: argparse.Namespace) -> tuple[dict, dict]:
    scenario: dict = {}
    channel: dict = {}
    if args.config is not None:
        scenario, channel = load_scenario_file(args.config)
    for flag in ("nSensors", "simTime", "packetInterval", "packetSize", "txPower", "seed", "run"):
        value = getattr(args, flag)
        if value is not None:
            scenario[flag] = value
    return scenario, channel


def main(argv: Sequence[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="[%(levelname)s] %(message)s",
        stream=sys.stderr,
    )

    try:
        scenario_overrides, channel_overrides = _collect_overrides(args)
        config = ScenarioConfig.from_overrides(scenario_overrides)
        channel_config = ChannelConfig.from_overrides(channel_overrides)
        result = run_scenario(config, channel_config=channel_config)
    except InvalidParameter as exc:
        LOGGER.error("Invalid parameter %s: %s", exc.field, exc.reason)
        return EXIT_CONFIG_ERROR
    except AddressSpaceExhausted as exc:
        LOGGER.error("Address space exhausted: %s", exc)
        return EXIT_CONFIG_ERROR

    print(format_report(config, result.metrics))

    if args.flows_csv is not None:
        args.flows_csv.parent.mkdir(parents=True, exist_ok=True)
        flow_stats_dataframe(result.flow_stats).to_csv(args.flows_csv, index=False)
        LOGGER.info("Per-flow statistics written to %s", args.flows_csv)
    return EXIT_OK


if __name__ == "__main__":  # pragma: no cover - manual execution
    sys.exit(main())
