"""UDP traffic generator and receiving endpoint."""

from __future__ import annotations

import ipaddress
import logging

from .node import Node, Packet

logger = logging.getLogger(__name__)

class Application:
    """Base class handling the start/stop schedule of an application."""

    def __init__(self, node: Node) -> None:
        self.node = node
        self.simulator = node.simulator
        self.start_time: float | None = None
        self.stop_time: float | None = None
        self.active = False
        node.add_application(self)

    def set_start_stop(self, start: float, stop: float | None = None) -> None:
        self.start_time = start
        self.stop_time = stop
        self.simulator.schedule_at(start, self._start)
        if stop is not None:
            self.simulator.schedule_at(stop, self._stop)

    def _start(self) -> None:
        if self.stop_time is not None and self.simulator.now >= self.stop_time:
            return
        self.active = True
        self.start_application()

    def _stop(self) -> None:
        if self.active:
            self.active = False
            self.stop_application()

    def start_application(self) -> None:  # pragma: no cover - overridden
        pass

    def stop_application(self) -> None:  # pragma: no cover - overridden
        pass


class UdpServer(Application):
    """Receives datagrams on ``port`` and tracks sequence gaps."""

    def __init__(self, node: Node, port: int) -> None:
        super().__init__(node)
        self.port = port
        self.received = 0
        self._highest_seq: dict[ipaddress.IPv4Address, int] = {}
        self._received_by_source: dict[ipaddress.IPv4Address, int] = {}

    def start_application(self) -> None:
        self.node.bind(self.port, self.handle_read)

    def stop_application(self) -> None:
        self.node.unbind(self.port)

    def handle_read(self, packet: Packet) -> None:
        self.received += 1
        count = self._received_by_source.get(packet.source, 0)
        self._received_by_source[packet.source] = count + 1
        highest = self._highest_seq.get(packet.source, -1)
        if packet.seq > highest:
            self._highest_seq[packet.source] = packet.seq

    @property
    def lost(self) -> int:
        """Datagrams missing from the sequence numbers seen so far."""
        missing = 0
        for source, highest in self._highest_seq.items():
            missing += highest + 1 - self._received_by_source.get(source, 0)
        return missing


class UdpClient(Application):
    """Sends ``packet_size``-byte datagrams every ``interval`` seconds.

    ``max_packets == 0`` means no limit: the client keeps sending until its
    stop time.
    """

    def __init__(
        self,
        node: Node,
        remote_address: ipaddress.IPv4Address,
        remote_port: int,
        *,
        interval: float,
        packet_size: int,
        max_packets: int = 0,
    ) -> None:
        super().__init__(node)
        self.remote_address = remote_address
        self.remote_port = remote_port
        self.interval = interval
        self.packet_size = packet_size
        self.max_packets = max_packets
        self.local_port = node.ephemeral_port()
        self.sent = 0
        self._send_event = None

    def start_application(self) -> None:
        self._send_event = self.simulator.schedule_now(self._send)

    def stop_application(self) -> None:
        if self._send_event is not None:
            self._send_event.cancel()
            self._send_event = None

    def _send(self) -> None:
        self._send_event = None
        if not self.active:
            return
        packet = Packet(
            uid=self.simulator.next_packet_uid(),
            source=self.node.address,
            destination=self.remote_address,
            source_port=self.local_port,
            destination_port=self.remote_port,
            payload_size=self.packet_size,
            seq=self.sent,
        )
        self.sent += 1
        logger.debug(
            "Node %s sends seq=%d to %s:%d at t=%.4fs",
            self.node.id,
            packet.seq,
            self.remote_address,
            self.remote_port,
            self.simulator.now,
        )
        self.node.ip_send(packet)
        if self.max_packets == 0 or self.sent < self.max_packets:
            self._send_event = self.simulator.schedule(self.interval, self._send)


__all__ = ["Application", "UdpServer", "UdpClient"]
