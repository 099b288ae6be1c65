"""Sweep the transmit power of the reference scenario and print the PDR."""

from __future__ import annotations

import sys
from pathlib import Path

# Add the parent directory so the package resolves when the script is run
# directly (``python examples/run_txpower_sweep.py``).
ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from iotwifisim.launcher import ChannelConfig, ScenarioConfig, run_scenario

TX_POWERS_DBM = (-40.0, -30.0, -20.0, 0.0, 20.0)

# Last sweep results, keyed by tx power.
results: dict[float, float] = {}


def run_sweep(
    tx_powers=TX_POWERS_DBM, *, sensors: int = 10, duration: float = 12.0, quiet: bool = False
) -> dict[float, float]:
    """Run one scenario per transmit power and return ``{tx_power: pdr}``."""

    channel = ChannelConfig(propagation_loss="log_distance")
    sweep: dict[float, float] = {}
    for tx_power in tx_powers:
        config = ScenarioConfig.from_overrides(
            sensor_count=sensors, simulation_duration=duration, tx_power=tx_power
        )
        result = run_scenario(config, channel_config=channel)
        sweep[tx_power] = result.metrics.packet_delivery_ratio
        if not quiet:
            print(f"txPower={tx_power:6.1f} dBm  PDR={sweep[tx_power] * 100.0:6.2f} %")
    results.clear()
    results.update(sweep)
    return sweep


def main() -> dict[float, float]:
    return run_sweep(quiet=False)


if __name__ == "__main__":
    main()
