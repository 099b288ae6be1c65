from .applications import UdpClient, UdpServer
from .channel import ChannelConfig, WifiChannel
from .config import InvalidParameter, ScenarioConfig, load_scenario_file
from .driver import SimulationResult, run_scenario, run_simulation
from .flow_monitor import FlowId, FlowMonitor, FlowRecord, flow_stats_dataframe
from .installer import InstalledScenario, install_scenario
from .mac import MacParameters, WifiDevice
from .metrics import AggregateMetrics, aggregate_flow_stats
from .report import format_report
from .simulator import Simulator
from .topology import AddressSpaceExhausted, NodeIdentity, Topology, build_topology

__all__ = [
    "AddressSpaceExhausted",
    "AggregateMetrics",
    "ChannelConfig",
    "FlowId",
    "FlowMonitor",
    "FlowRecord",
    "InstalledScenario",
    "InvalidParameter",
    "MacParameters",
    "NodeIdentity",
    "ScenarioConfig",
    "SimulationResult",
    "Simulator",
    "Topology",
    "UdpClient",
    "UdpServer",
    "WifiChannel",
    "WifiDevice",
    "aggregate_flow_stats",
    "build_topology",
    "flow_stats_dataframe",
    "format_report",
    "install_scenario",
    "load_scenario_file",
    "run_scenario",
    "run_simulation",
]
