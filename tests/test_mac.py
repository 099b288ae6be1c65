import ipaddress

import pytest

from iotwifisim.launcher.channel import ChannelConfig, WifiChannel
from iotwifisim.launcher.config import InvalidParameter
from iotwifisim.launcher.mac import ACCESS_POINT, STATION, MacParameters, WifiDevice
from iotwifisim.launcher.node import Node, Packet
from iotwifisim.launcher.simulator import Simulator
from iotwifisim.launcher.topology import SENSOR, SINK, NodeIdentity

AP_POSITION = (15.0, 15.0, 0.0)


class FixedDraws:
    """Random source returning constant draws and recording the backoff bounds."""

    def __init__(self, slots=0, jitter=0.0):
        self.slots = slots
        self.jitter = jitter
        self.bounds = []

    def integers(self, low, high):
        self.bounds.append(high)
        return self.slots

    def uniform(self, low, high):
        return self.jitter


def _device(sim, channel, mac, node_id, role, position, *, rng=None, tx_power=20.0):
    address = ipaddress.IPv4Address("10.1.1.1") + node_id
    identity = NodeIdentity(node_id, SINK if role == ACCESS_POINT else SENSOR, position, address)
    return WifiDevice(
        Node(identity, sim),
        role,
        ssid="IoT-Network",
        channel=channel,
        simulator=sim,
        tx_power_dBm=tx_power,
        mac=mac,
        rng=rng or FixedDraws(),
    )


def _packet(sim, station, ap):
    return Packet(
        uid=sim.next_packet_uid(),
        source=station.node.address,
        destination=ap.node.address,
        source_port=49153,
        destination_port=4000,
        payload_size=64,
    )


def _bss(mac, station_draws, *, channel_config=None, positions=None, tx_power=20.0):
    sim = Simulator()
    channel = WifiChannel(channel_config or ChannelConfig(propagation_loss="none"))
    ap = _device(sim, channel, mac, 9, ACCESS_POINT, AP_POSITION, tx_power=tx_power)
    positions = positions or [(10.0 + i, 15.0, 0.0) for i in range(len(station_draws))]
    stations = [
        _device(sim, channel, mac, i, STATION, position, rng=draws, tx_power=tx_power)
        for i, (draws, position) in enumerate(zip(station_draws, positions))
    ]
    received = []
    ap.node.rx_hooks.append(lambda packet: received.append((sim.now, packet.source)))
    drops = []
    for station in stations:
        station.node.drop_hooks.append(lambda packet, reason: drops.append(reason))
    return sim, ap, stations, received, drops


def test_stations_associate_and_beacons_stop():
    mac = MacParameters()
    sim, ap, stations, _, _ = _bss(mac, [FixedDraws(), FixedDraws()])
    ap.rng = FixedDraws(jitter=0.05)
    beacons = []
    send_beacon = ap._send_beacon

    def counting_beacon():
        beacons.append(sim.now)
        send_beacon()

    ap._send_beacon = counting_beacon
    ap.start()
    sim.run(1.0)
    assert all(station.access_point is ap for station in stations)
    assert beacons == [pytest.approx(0.05), pytest.approx(0.05 + mac.beacon_interval)]
    assert sim.pending_events() == 0


def test_beacons_continue_while_a_station_is_out_of_range():
    mac = MacParameters()
    sim, ap, stations, _, _ = _bss(
        mac,
        [FixedDraws(), FixedDraws()],
        channel_config=ChannelConfig(propagation_loss="log_distance"),
        positions=[(15.5, 15.0, 0.0), (115.0, 15.0, 0.0)],
        tx_power=-40.0,
    )
    ap.start()
    sim.run(1.0)
    near, far = stations
    assert near.associated
    assert not far.associated
    assert sim.pending_events() == 1


def test_frames_before_association_are_dropped():
    sim, ap, (station,), received, drops = _bss(MacParameters(), [FixedDraws()])
    station.node.ip_send(_packet(sim, station, ap))
    assert drops == ["not_associated"]
    assert received == []


def test_access_point_has_no_downlink():
    sim, ap, (station,), _, _ = _bss(MacParameters(), [FixedDraws()])
    reasons = []
    ap.node.drop_hooks.append(lambda packet, reason: reasons.append(reason))
    ap.node.ip_send(_packet(sim, station, ap))
    assert reasons == ["no_downlink"]


def test_same_slot_frames_collide_until_the_retry_limit():
    mac = MacParameters(cw_min=1, cw_max=7, retry_limit=1)
    sim, ap, stations, received, drops = _bss(mac, [FixedDraws(), FixedDraws()])
    for station in stations:
        station.on_beacon(ap)
        station.node.ip_send(_packet(sim, station, ap))
    sim.run()

    assert received == []
    assert drops == ["collision", "collision"]
    for station in stations:
        assert station.collisions == 2
        # CW doubles after the first failure: [0, 1] then [0, 3].
        assert station.rng.bounds == [2, 4]
        assert station.cw == mac.cw_min
        assert not station.queue
        assert not station.access_pending


def test_contention_window_doubles_up_to_cw_max_then_drops_low_snr():
    mac = MacParameters(cw_min=1, cw_max=7, retry_limit=3)
    sim, ap, (station,), received, drops = _bss(
        mac,
        [FixedDraws()],
        channel_config=ChannelConfig(propagation_loss="log_distance"),
        positions=[(115.0, 15.0, 0.0)],
        tx_power=-40.0,
    )
    station.on_beacon(ap)
    station.node.ip_send(_packet(sim, station, ap))
    sim.run()

    assert received == []
    assert drops == ["low_snr"]
    assert station.collisions == 0
    assert station.rng.bounds == [2, 4, 8, 8]


def test_queue_limit_drops_the_overflow():
    mac = MacParameters(queue_limit=2)
    sim, ap, (station,), received, drops = _bss(mac, [FixedDraws()])
    station.on_beacon(ap)
    for _ in range(3):
        station.node.ip_send(_packet(sim, station, ap))
    assert drops == ["queue_full"]
    assert len(station.queue) == 2
    sim.run()
    assert len(received) == 2
    assert not station.queue


def test_busy_medium_defers_without_growing_the_window():
    mac = MacParameters(cw_min=1)
    first, second = FixedDraws(slots=0), FixedDraws(slots=3)
    sim, ap, stations, received, drops = _bss(mac, [first, second])
    for station in stations:
        station.on_beacon(ap)
        station.node.ip_send(_packet(sim, station, ap))
    sim.run()

    assert drops == []
    assert [source for _, source in received] == [s.node.address for s in stations]
    assert received[1][0] - received[0][0] > mac.sifs + mac.ack_duration + mac.difs
    assert all(station.collisions == 0 for station in stations)
    assert first.bounds == [2]
    # One draw for the first attempt, one after deferring.
    assert second.bounds == [2, 2]


def test_frame_duration_and_parameter_validation():
    mac = MacParameters()
    assert mac.difs == pytest.approx(34e-6)
    assert mac.frame_duration(92) == pytest.approx(20e-6 + (92 + 36) * 8 / 6e6)
    with pytest.raises(InvalidParameter):
        MacParameters(cw_min=31, cw_max=15)
    with pytest.raises(InvalidParameter):
        MacParameters(retry_limit=0)
    with pytest.raises(ValueError):
        _device(Simulator(), WifiChannel(), mac, 0, "mesh", AP_POSITION)
