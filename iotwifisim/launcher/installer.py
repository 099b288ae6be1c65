"""Wire the topology onto the shared channel and install the UDP traffic."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from .applications import UdpClient, UdpServer
from .channel import ChannelConfig, WifiChannel
from .config import ScenarioConfig
from .flow_monitor import FlowMonitor
from .mac import ACCESS_POINT, STATION, MacParameters, WifiDevice
from .node import Node
from .rng import RngManager
from .simulator import Simulator
from .topology import Topology

logger = logging.getLogger(__name__)


@dataclass
class InstalledScenario:
    """Everything :func:`install_scenario` created, ready to be run."""

    simulator: Simulator
    topology: Topology
    channel: WifiChannel
    nodes: list[Node]
    devices: list[WifiDevice]
    server: UdpServer
    clients: list[UdpClient]
    monitor: FlowMonitor

    @property
    def sink(self) -> Node:
        return self.server.node


def install_devices(
    simulator: Simulator,
    nodes: list[Node],
    channel: WifiChannel,
    config: ScenarioConfig,
    mac: MacParameters,
    rng_manager: RngManager,
) -> list[WifiDevice]:
    """Put every sensor in station role and the sink in access-point role.

    All devices share ``channel``, the SSID and the transmit power.
    """

    devices = []
    for node in nodes:
        role = ACCESS_POINT if node.identity.is_sink else STATION
        device = WifiDevice(
            node,
            role,
            ssid=config.ssid,
            channel=channel,
            simulator=simulator,
            tx_power_dBm=config.tx_power,
            mac=mac,
            rng=rng_manager.get_stream("mac", node.id),
        )
        device.start()
        devices.append(device)
    return devices


def install_applications(
    nodes: list[Node], topology: Topology, config: ScenarioConfig
) -> tuple[UdpServer, list[UdpClient]]:
    """Install the sink's receiver and one periodic sender per sensor."""

    sink_node = next(n for n in nodes if n.identity.is_sink)
    server = UdpServer(sink_node, config.sink_port)
    server.set_start_stop(0.0, config.simulation_duration)

    sink_address = topology.sink_address
    clients = []
    for node in nodes:
        if node.identity.is_sink:
            continue
        client = UdpClient(
            node,
            sink_address,
            config.sink_port,
            interval=config.packet_interval,
            packet_size=config.packet_size,
            max_packets=0,
        )
        client.set_start_stop(config.app_start_time, config.simulation_duration)
        clients.append(client)
    return server, clients


def install_scenario(
    topology: Topology,
    config: ScenarioConfig,
    *,
    simulator: Simulator | None = None,
    channel_config: ChannelConfig | None = None,
    mac: MacParameters | None = None,
    rng_manager: RngManager | None = None,
) -> InstalledScenario:
    """Configure the medium, the devices, the applications and the flow monitor."""

    simulator = simulator or Simulator()
    rng_manager = rng_manager or RngManager(config.seed, config.run)
    mac = mac or MacParameters()
    channel = WifiChannel(channel_config)

    nodes = [Node(identity, simulator) for identity in topology.nodes]
    devices = install_devices(simulator, nodes, channel, config, mac, rng_manager)
    server, clients = install_applications(nodes, topology, config)

    monitor = FlowMonitor(simulator)
    monitor.install_all(nodes)

    logger.info(
        "Installed %d stations and 1 AP on ssid=%s (tx_power=%.1f dBm, loss=%s), "
        "%d UDP clients -> %s:%d",
        len(devices) - 1,
        config.ssid,
        config.tx_power,
        channel.config.propagation_loss,
        len(clients),
        topology.sink_address,
        config.sink_port,
    )
    return InstalledScenario(
        simulator=simulator,
        topology=topology,
        channel=channel,
        nodes=nodes,
        devices=devices,
        server=server,
        clients=clients,
        monitor=monitor,
    )


__all__ = [
    "InstalledScenario",
    "install_devices",
    "install_applications",
    "install_scenario",
]
