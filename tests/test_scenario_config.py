import math
import textwrap
from pathlib import Path

import pytest

from iotwifisim.launcher.channel import ChannelConfig
from iotwifisim.launcher.config import InvalidParameter, ScenarioConfig, load_scenario_file


def test_defaults_match_reference_scenario():
    config = ScenarioConfig()
    assert config.sensor_count == 27
    assert config.simulation_duration == 47.0
    assert config.packet_interval == 1.0
    assert config.packet_size == 64
    assert config.tx_power == 20.0
    assert config.sink_port == 4000
    assert config.ssid == "IoT-Network"
    assert config.node_count == 28


def test_overrides_accept_field_names_and_cli_aliases():
    config = ScenarioConfig.from_overrides({"packetInterval": 0.5}, nSensors=3, tx_power=-5)
    assert config.packet_interval == 0.5
    assert config.sensor_count == 3
    assert config.tx_power == -5.0
    assert isinstance(config.tx_power, float)


def test_none_overrides_fall_back_to_defaults():
    config = ScenarioConfig.from_overrides(txPower=None, nSensors=None)
    assert config == ScenarioConfig()


def test_config_is_immutable():
    config = ScenarioConfig()
    with pytest.raises(AttributeError):
        config.sensor_count = 3


def test_with_overrides_revalidates():
    config = ScenarioConfig().with_overrides(simTime=10.0)
    assert config.simulation_duration == 10.0
    with pytest.raises(InvalidParameter):
        config.with_overrides(packet_size=0)


@pytest.mark.parametrize(
    "name, value, field",
    [
        ("packetInterval", -1, "packet_interval"),
        ("packet_interval", 0.0, "packet_interval"),
        ("simulation_duration", 0, "simulation_duration"),
        ("simTime", math.inf, "simulation_duration"),
        ("packet_size", 0, "packet_size"),
        ("nSensors", 0, "sensor_count"),
        ("sensor_count", -4, "sensor_count"),
        ("sensor_count", 2.5, "sensor_count"),
        ("packet_interval", True, "packet_interval"),
        ("tx_power", math.nan, "tx_power"),
    ],
)
def test_invalid_values_report_the_offending_field(name, value, field):
    with pytest.raises(InvalidParameter) as excinfo:
        ScenarioConfig.from_overrides({name: value})
    assert excinfo.value.field == field
    assert isinstance(excinfo.value, ValueError)


def test_negative_tx_power_is_valid():
    assert ScenarioConfig(tx_power=-30.0).tx_power == -30.0


def test_unknown_parameter_is_rejected():
    with pytest.raises(InvalidParameter) as excinfo:
        ScenarioConfig.from_overrides(nodes=3)
    assert excinfo.value.field == "nodes"


def test_invalid_network_block_is_rejected():
    with pytest.raises(InvalidParameter):
        ScenarioConfig(network_base="10.1.1.0", network_mask="255.0.255.0")


def test_load_scenario_file_splits_channel_section(tmp_path):
    path = tmp_path / "scenario.yaml"
    path.write_text(
        textwrap.dedent(
            """
            nSensors: 4
            packet_interval: 2.0
            channel:
              propagation_loss: none
            """
        )
    )
    scenario, channel = load_scenario_file(path)
    assert scenario == {"nSensors": 4, "packet_interval": 2.0}
    assert channel == {"propagation_loss": "none"}
    config = ScenarioConfig.from_overrides(scenario)
    assert config.sensor_count == 4


def test_load_scenario_file_rejects_non_mapping(tmp_path):
    path = tmp_path / "scenario.yaml"
    path.write_text("- 1\n- 2\n")
    with pytest.raises(InvalidParameter):
        load_scenario_file(path)


@pytest.mark.parametrize("name", ["reference.yaml", "low_power_log_distance.yaml"])
def test_bundled_scenarios_are_valid(name):
    path = Path(__file__).resolve().parents[1] / "scenarios" / name
    scenario, channel = load_scenario_file(path)
    config = ScenarioConfig.from_overrides(scenario)
    channel_config = ChannelConfig.from_overrides(channel)
    assert config.sensor_count == 27
    assert channel_config.propagation_loss in {"friis", "log_distance"}


def test_load_scenario_file_reports_unreadable_files(tmp_path):
    with pytest.raises(InvalidParameter) as excinfo:
        load_scenario_file(tmp_path / "missing.yaml")
    assert excinfo.value.field == "config"
    broken = tmp_path / "broken.yaml"
    broken.write_text("channel: {propagation_loss: none\n")
    with pytest.raises(InvalidParameter):
        load_scenario_file(broken)
