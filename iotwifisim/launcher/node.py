"""Simulated hosts: IP layer, UDP port demultiplexing and trace hooks."""

from __future__ import annotations

import ipaddress
import logging
from collections.abc import Callable
from dataclasses import dataclass

from .topology import NodeIdentity

logger = logging.getLogger(__name__)

UDP_PROTOCOL = 17
UDP_HEADER_BYTES = 8
IPV4_HEADER_BYTES = 20


@dataclass(slots=True)
class Packet:
    """A UDP datagram carried over IPv4."""

    uid: int
    source: ipaddress.IPv4Address
    destination: ipaddress.IPv4Address
    source_port: int
    destination_port: int
    payload_size: int
    seq: int = 0
    protocol: int = UDP_PROTOCOL

    @property
    def size(self) -> int:
        """Size of the IP datagram in bytes (headers included)."""
        return self.payload_size + UDP_HEADER_BYTES + IPV4_HEADER_BYTES


class Node:
    """Host bound to one :class:`NodeIdentity`.

    Trace hooks let observers follow every datagram leaving the node
    (``tx``), delivered to it (``rx``) or dropped below the IP layer
    (``drop``).
    """

    def __init__(self, identity: NodeIdentity, simulator) -> None:
        self.identity = identity
        self.simulator = simulator
        self.device = None
        self.applications: list = []
        self._ports: dict[int, Callable[[Packet], None]] = {}
        self._next_port = 49153
        self.tx_hooks: list[Callable[[Packet], None]] = []
        self.rx_hooks: list[Callable[[Packet], None]] = []
        self.drop_hooks: list[Callable[[Packet, str], None]] = []

    @property
    def id(self) -> int:
        return self.identity.node_id

    @property
    def address(self) -> ipaddress.IPv4Address:
        return self.identity.address

    @property
    def position(self) -> tuple[float, float, float]:
        return self.identity.position

    def attach_device(self, device) -> None:
        self.device = device

    def add_application(self, app) -> None:
        self.applications.append(app)

    # ------------------------------------------------------------------
    def bind(self, port: int, handler: Callable[[Packet], None]) -> None:
        if port in self._ports:
            raise ValueError(f"port {port} already bound on node {self.id}")
        self._ports[port] = handler

    def unbind(self, port: int) -> None:
        self._ports.pop(port, None)

    def ephemeral_port(self) -> int:
        port = self._next_port
        self._next_port += 1
        return port

    # ------------------------------------------------------------------
    def ip_send(self, packet: Packet) -> None:
        """Hand ``packet`` to the network device after notifying observers."""

        for hook in self.tx_hooks:
            hook(packet)
        if self.device is None:
            self.ip_drop(packet, "no_device")
            return
        self.device.enqueue(packet)

    def ip_receive(self, packet: Packet) -> None:
        if packet.destination != self.address:
            return
        for hook in self.rx_hooks:
            hook(packet)
        handler = self._ports.get(packet.destination_port)
        if handler is not None:
            handler(packet)

    def ip_drop(self, packet: Packet, reason: str) -> None:
        for hook in self.drop_hooks:
            hook(packet, reason)


__all__ = [
    "UDP_PROTOCOL",
    "UDP_HEADER_BYTES",
    "IPV4_HEADER_BYTES",
    "Packet",
    "Node",
]
