import math

import pytest

from iotwifisim.launcher.simulator import Simulator


def test_events_run_in_time_then_insertion_order():
    sim = Simulator()
    order = []
    sim.schedule_at(2.0, order.append, "late")
    sim.schedule_at(1.0, order.append, "first")
    sim.schedule_at(1.0, order.append, "second")
    sim.run()
    assert order == ["first", "second", "late"]
    assert sim.now == 2.0
    assert sim.events_processed == 3


def test_stop_time_is_a_hard_ceiling():
    sim = Simulator()
    seen = []
    for t in (1.0, 2.0, 3.0):
        sim.schedule_at(t, lambda t=t: seen.append(sim.now))
    sim.run(2.0)
    assert seen == [1.0, 2.0]
    assert sim.now == 2.0
    assert sim.pending_events() == 1


def test_clock_advances_to_stop_time_when_queue_drains():
    sim = Simulator()
    sim.schedule(0.5, lambda: None)
    sim.run(10.0)
    assert sim.now == 10.0


def test_callbacks_may_schedule_follow_up_events():
    sim = Simulator()
    times = []

    def tick():
        times.append(sim.now)
        sim.schedule(0.1, tick)

    sim.schedule_now(tick)
    sim.run(1.0)
    assert len(times) == 11
    assert times[-1] == 1.0


def test_cancelled_events_are_skipped():
    sim = Simulator()
    fired = []
    event = sim.schedule(1.0, fired.append, "cancelled")
    sim.schedule(2.0, fired.append, "kept")
    event.cancel()
    assert sim.pending_events() == 1
    sim.run()
    assert fired == ["kept"]


def test_scheduling_in_the_past_is_rejected():
    sim = Simulator()
    sim.schedule_at(1.0, lambda: None)
    assert sim.step()
    with pytest.raises(ValueError):
        sim.schedule_at(0.5, lambda: None)
    with pytest.raises(ValueError):
        sim.schedule(-0.1, lambda: None)
    with pytest.raises(ValueError):
        sim.schedule_at(math.nan, lambda: None)


def test_stop_halts_the_loop():
    sim = Simulator()
    fired = []
    sim.schedule_at(1.0, sim.stop)
    sim.schedule_at(2.0, fired.append, 2.0)
    sim.run(5.0)
    assert fired == []
    assert sim.now == 1.0


def test_simulator_runs_only_once():
    sim = Simulator()
    sim.run(1.0)
    with pytest.raises(RuntimeError):
        sim.run(2.0)


def test_invalid_stop_time():
    with pytest.raises(ValueError):
        Simulator().run(math.inf)
    with pytest.raises(ValueError):
        Simulator(tick_ns=0)


def test_packet_identifiers_belong_to_each_simulation():
    first, second = Simulator(), Simulator()
    assert [first.next_packet_uid() for _ in range(3)] == [0, 1, 2]
    assert second.next_packet_uid() == 0
