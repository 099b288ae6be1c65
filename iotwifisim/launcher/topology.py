"""Sensor and sink identities, positions and IPv4 addresses."""

from __future__ import annotations

import ipaddress
import logging
from dataclasses import dataclass

import numpy as np

from .config import ScenarioConfig

logger = logging.getLogger(__name__)

SENSOR = "sensor"
SINK = "sink"


class AddressSpaceExhausted(RuntimeError):
    """Raised when the address block cannot hold every node of the scenario."""


@dataclass(frozen=True)
class NodeIdentity:
    """A sensor or the sink, with its static position and IPv4 address."""

    node_id: int
    role: str
    position: tuple[float, float, float]
    address: ipaddress.IPv4Address

    @property
    def is_sink(self) -> bool:
        return self.role == SINK


class Ipv4AddressAllocator:
    """Sequential host addresses from a single network block.

    The first address handed out is ``base + 1``; the network and broadcast
    addresses are never assigned.
    """

    def __init__(self, base: str, mask: str) -> None:
        self.network = ipaddress.IPv4Network(f"{base}/{mask}")
        self._next = int(self.network.network_address) + 1
        self._last = int(self.network.broadcast_address) - 1

    @property
    def capacity(self) -> int:
        """Number of host addresses still available."""
        return max(0, self._last - self._next + 1)

    def allocate(self) -> ipaddress.IPv4Address:
        if self._next > self._last:
            raise AddressSpaceExhausted(f"no address left in {self.network}")
        address = ipaddress.IPv4Address(self._next)
        self._next += 1
        return address

    def assign(self, count: int) -> list[ipaddress.IPv4Address]:
        """Allocate ``count`` consecutive addresses, all or nothing."""

        if count > self.capacity:
            raise AddressSpaceExhausted(
                f"{count} nodes requested but {self.network} only has "
                f"{self.capacity} host addresses left"
            )
        return [self.allocate() for _ in range(count)]


@dataclass(frozen=True)
class Topology:
    """Node set produced by :func:`build_topology`.

    ``nodes`` lists the sensors first and the sink last, so the sink address
    is at index ``sensor_count`` of :attr:`addresses`. Callers should rather
    use :attr:`sink` / :meth:`address_of`, which look nodes up by role and id.
    """

    nodes: tuple[NodeIdentity, ...]
    network: ipaddress.IPv4Network
    area_size: float

    @property
    def sensors(self) -> tuple[NodeIdentity, ...]:
        return tuple(n for n in self.nodes if n.role == SENSOR)

    @property
    def sink(self) -> NodeIdentity:
        for node in self.nodes:
            if node.role == SINK:
                return node
        raise LookupError("topology has no sink")

    @property
    def sink_address(self) -> ipaddress.IPv4Address:
        return self.sink.address

    @property
    def addresses(self) -> list[ipaddress.IPv4Address]:
        return [n.address for n in self.nodes]

    def address_of(self, node_id: int) -> ipaddress.IPv4Address:
        for node in self.nodes:
            if node.node_id == node_id:
                return node.address
        raise KeyError(node_id)


def sensor_positions(count: int, side: float, rng: np.random.Generator) -> np.ndarray:
    """Draw ``count`` static positions uniformly in ``[0, side]²`` (z = 0)."""

    xy = rng.uniform(0.0, side, size=(count, 2))
    return np.column_stack([xy, np.zeros(count)])


def build_topology(config: ScenarioConfig, rng: np.random.Generator) -> Topology:
    """Create the sensors and the sink, place them and bind their addresses."""

    allocator = Ipv4AddressAllocator(config.network_base, config.network_mask)
    # Sensors first, sink last.
    addresses = allocator.assign(config.node_count)

    positions = sensor_positions(config.sensor_count, config.area_size, rng)
    nodes: list[NodeIdentity] = []
    for idx in range(config.sensor_count):
        x, y, z = (float(v) for v in positions[idx])
        nodes.append(NodeIdentity(idx, SENSOR, (x, y, z), addresses[idx]))
    centre = config.area_size / 2.0
    nodes.append(
        NodeIdentity(config.sensor_count, SINK, (centre, centre, 0.0), addresses[-1])
    )
    logger.info(
        "Topology: %d sensors in %.1fx%.1f area, sink %s at (%.1f, %.1f)",
        config.sensor_count,
        config.area_size,
        config.area_size,
        addresses[-1],
        centre,
        centre,
    )
    return Topology(tuple(nodes), allocator.network, config.area_size)


__all__ = [
    "SENSOR",
    "SINK",
    "AddressSpaceExhausted",
    "NodeIdentity",
    "Ipv4AddressAllocator",
    "Topology",
    "sensor_positions",
    "build_topology",
]
