"""Unit tests for Resource: slots, priority queueing and preemption."""

import pytest

from discretesim.core import PreemptionSignal, SimulationError, ValidationError
from discretesim.resources import Resource


def hold(sim, resource, duration, log, label, priority=0, preemptive=False):
    with resource.request(priority=priority, preemptive=preemptive) as req:
        yield req
        log.append((label, "granted", sim.now))
        yield sim.timeout(duration)
    log.append((label, "released", sim.now))


class TestResourceBasics:
    """Tests for construction and free-slot grants."""

    @pytest.mark.parametrize("capacity", [0, -1, 1.5, True, "2"])
    def test_invalid_capacity(self, sim, capacity):
        with pytest.raises(ValidationError):
            Resource(sim, capacity=capacity)

    def test_invalid_priority(self, sim):
        with pytest.raises(ValidationError):
            Resource(sim).request(priority=float("nan"))

    def test_free_slot_granted_without_waiting(self, sim):
        machine = Resource(sim, capacity=2)
        got = []

        def body():
            req = machine.request()
            got.append((yield req))
            got.append(sim.now)

        sim.process(body)
        sim.run()
        req = got[0]
        assert req.triggered
        assert req.wait_time == 0.0
        assert got[1] == 0.0
        assert machine.in_use == 1
        assert machine.available == 1

    def test_sequential_grants_capacity_one(self, sim):
        machine = Resource(sim, capacity=1)
        log = []
        for label in "abc":
            sim.process(hold(sim, machine, 5, log, label))
        sim.run()
        assert log == [
            ("a", "granted", 0.0),
            ("a", "released", 5.0),
            ("b", "granted", 5.0),
            ("b", "released", 10.0),
            ("c", "granted", 10.0),
            ("c", "released", 15.0),
        ]
        assert machine.in_use == 0

    def test_capacity_two_runs_in_parallel(self, sim):
        machine = Resource(sim, capacity=2)
        log = []
        for label in "abc":
            sim.process(hold(sim, machine, 4, log, label))
        sim.run()
        grants = {label: t for label, what, t in log if what == "granted"}
        assert grants == {"a": 0.0, "b": 0.0, "c": 4.0}

    def test_occupancy_never_exceeds_capacity(self, sim, rng):
        machine = Resource(sim, capacity=3)
        log = []
        for i in range(40):
            sim.process(hold(sim, machine, float(rng.uniform(0.5, 5)), log, i))
        observed = []
        for t in range(0, 60):
            sim.schedule(t + 0.5, lambda: observed.append(machine.in_use))
        sim.run()
        assert max(observed) <= 3
        assert machine.in_use == 0
        assert len(log) == 80


class TestPriority:
    """Tests for priority ordering of the wait queue."""

    def test_lower_value_served_first(self, sim):
        machine = Resource(sim)
        log = []
        sim.process(hold(sim, machine, 1, log, "first"))
        sim.process(hold(sim, machine, 1, log, "low", priority=5))
        sim.process(hold(sim, machine, 1, log, "high", priority=-2))
        sim.process(hold(sim, machine, 1, log, "mid", priority=1))
        sim.run()
        order = [label for label, what, _ in log if what == "granted"]
        assert order == ["first", "high", "mid", "low"]

    def test_fifo_within_priority(self, sim):
        machine = Resource(sim)
        log = []
        for label in ["a", "b", "c", "d"]:
            sim.process(hold(sim, machine, 1, log, label, priority=1))
        sim.run()
        order = [label for label, what, _ in log if what == "granted"]
        assert order == ["a", "b", "c", "d"]

    def test_queue_property_in_grant_order(self, sim):
        machine = Resource(sim)
        log = []
        sim.process(hold(sim, machine, 10, log, "holder"))
        sim.process(hold(sim, machine, 1, log, "p3", priority=3))
        sim.process(hold(sim, machine, 1, log, "p1", priority=1))
        sim.run(until=1)
        assert [req.priority for req in machine.queue] == [1, 3]
        assert machine.queue_length == 2


class TestRelease:
    """Tests for Resource.release."""

    def test_release_without_argument_uses_active_process(self, sim):
        machine = Resource(sim)
        done = []

        def body():
            yield machine.request()
            yield sim.timeout(2)
            machine.release()
            done.append(sim.now)

        sim.process(body)
        sim.run()
        assert done == [2.0]
        assert machine.in_use == 0

    def test_release_nothing_held_raises(self, sim):
        machine = Resource(sim)
        with pytest.raises(SimulationError):
            machine.release()

    def test_release_waiting_request_withdraws_it(self, sim):
        machine = Resource(sim)
        log = []
        sim.process(hold(sim, machine, 5, log, "holder"))
        pending = []

        def impatient():
            req = machine.request()
            pending.append(req)
            yield req

        sim.process(impatient)
        sim.run(until=1)
        assert machine.queue_length == 1
        machine.release(pending[0])
        assert machine.queue_length == 0

    def test_release_twice_is_noop(self, sim):
        machine = Resource(sim)
        reqs = []

        def body():
            req = machine.request()
            yield req
            reqs.append(req)
            machine.release(req)
            machine.release(req)

        sim.process(body)
        sim.run()
        assert reqs[0].released
        assert machine.in_use == 0

    def test_release_foreign_request_rejected(self, sim):
        a, b = Resource(sim), Resource(sim)
        with pytest.raises(ValidationError):
            a.release(b.request())

    def test_request_from_other_simulation_rejected(self, sim):
        from discretesim.core import Simulation

        other = Simulation()
        machine = Resource(other)
        caught = []

        def body():
            try:
                yield machine.request()
            except ValidationError as exc:
                caught.append(exc)

        sim.process(body)
        sim.run()
        assert len(caught) == 1


class TestPreemption:
    """Tests for preemptive requests."""

    def test_preemption_scenario(self, sim):
        machine = Resource(sim, capacity=1, name="machine")
        log = []

        def low():
            remaining = 10.0
            while remaining > 0:
                with machine.request(priority=2) as req:
                    yield req
                    log.append(("low", "granted", sim.now))
                    start = sim.now
                    try:
                        yield sim.timeout(remaining)
                        remaining = 0.0
                    except PreemptionSignal as signal:
                        log.append(("low", "preempted", sim.now))
                        remaining -= sim.now - signal.usage_since
                        assert signal.usage_since == start
            log.append(("low", "done", sim.now))

        def high():
            yield sim.timeout(3)
            with machine.request(priority=0, preemptive=True) as req:
                yield req
                log.append(("high", "granted", sim.now))
                yield sim.timeout(3)
            log.append(("high", "done", sim.now))

        sim.process(low)
        sim.process(high)
        sim.run()
        assert log == [
            ("low", "granted", 0.0),
            ("high", "granted", 3.0),
            ("low", "preempted", 3.0),
            ("high", "done", 6.0),
            ("low", "granted", 6.0),
            ("low", "done", 13.0),
        ]
        assert sim.statistics.counter("machine.preemptions") == 1

    def test_equal_priority_never_preempted(self, sim):
        machine = Resource(sim)
        log = []
        sim.process(hold(sim, machine, 5, log, "holder", priority=1))

        def challenger():
            yield sim.timeout(1)
            yield from hold(sim, machine, 1, log, "challenger", priority=1, preemptive=True)

        sim.process(challenger)
        sim.run()
        assert log == [
            ("holder", "granted", 0.0),
            ("holder", "released", 5.0),
            ("challenger", "granted", 5.0),
            ("challenger", "released", 6.0),
        ]

    def test_non_preemptive_request_waits(self, sim):
        machine = Resource(sim)
        log = []
        sim.process(hold(sim, machine, 5, log, "holder", priority=9))

        def urgent():
            yield sim.timeout(1)
            yield from hold(sim, machine, 1, log, "urgent", priority=0)

        sim.process(urgent)
        sim.run()
        assert ("urgent", "granted", 5.0) in log

    def test_victim_is_lowest_precedence_holder(self, sim):
        machine = Resource(sim, capacity=2)
        evicted = []

        def holder(label, priority):
            try:
                yield machine.request(priority=priority)
                yield sim.timeout(10)
            except PreemptionSignal:
                evicted.append(label)

        def urgent():
            yield sim.timeout(1)
            yield machine.request(priority=0, preemptive=True)

        sim.process(holder("p3", 3))
        sim.process(holder("p5", 5))
        sim.process(urgent)
        sim.run()
        assert evicted == ["p5"]

    def test_preempted_holder_returns_to_front_of_its_class(self, sim):
        machine = Resource(sim)
        log = []

        def victim():
            try:
                with machine.request(priority=2) as req:
                    yield req
                    yield sim.timeout(10)
            except PreemptionSignal:
                pass
            yield from hold(sim, machine, 1, log, "victim", priority=2)

        def rival():
            yield sim.timeout(1)
            yield from hold(sim, machine, 1, log, "rival", priority=2)

        def urgent():
            yield sim.timeout(2)
            yield from hold(sim, machine, 1, log, "urgent", priority=0, preemptive=True)

        sim.process(victim)
        sim.process(rival)
        sim.process(urgent)
        sim.run()
        order = [label for label, what, _ in log if what == "granted"]
        assert order == ["urgent", "victim", "rival"]

    def test_later_request_after_preemption_queues_as_new_arrival(self, sim):
        machine = Resource(sim)
        log = []

        def victim():
            try:
                with machine.request(priority=2) as req:
                    yield req
                    yield sim.timeout(1000)
            except PreemptionSignal:
                yield sim.timeout(100)
            yield from hold(sim, machine, 1, log, "victim", priority=2)

        def rival():
            yield sim.timeout(60)
            yield from hold(sim, machine, 1, log, "rival", priority=2)

        def urgent():
            yield sim.timeout(1)
            yield from hold(sim, machine, 149, log, "urgent", priority=0, preemptive=True)

        sim.process(victim)
        sim.process(rival)
        sim.process(urgent)
        sim.run()
        grants = [(label, t) for label, what, t in log if what == "granted"]
        assert grants == [("urgent", 1.0), ("rival", 150.0), ("victim", 151.0)]

    def test_finished_victim_leaves_no_queue_claim(self, sim):
        machine = Resource(sim)

        def victim():
            try:
                with machine.request(priority=2) as req:
                    yield req
                    yield sim.timeout(10)
            except PreemptionSignal:
                return

        def urgent():
            yield sim.timeout(1)
            with machine.request(preemptive=True) as req:
                yield req
                yield sim.timeout(1)

        sim.process(victim)
        sim.process(urgent)
        sim.run()
        assert sim.statistics.counter("resource-1.preemptions") == 1
        assert machine._lost_sequence == {}

    def test_release_after_preemption_is_noop(self, sim):
        machine = Resource(sim)
        requests = []

        def victim():
            req = machine.request(priority=1)
            requests.append(req)
            yield req
            try:
                yield sim.timeout(10)
            except PreemptionSignal:
                machine.release(req)
                machine.release()

        def urgent():
            yield sim.timeout(1)
            with machine.request(preemptive=True) as req:
                yield req
                yield sim.timeout(1)

        sim.process(victim)
        sim.process(urgent)
        sim.run()
        assert requests[0].preempted
        assert not requests[0].held
        assert machine.in_use == 0


class TestResourceStatistics:
    """Tests for observations reported to the simulation."""

    def test_wait_times_and_counters(self, sim):
        machine = Resource(sim, name="m")
        log = []
        for label in "abc":
            sim.process(hold(sim, machine, 5, log, label))
        sim.run()
        waits = sim.statistics.samples("m.wait_time")
        assert waits.values == [0.0, 5.0, 10.0]
        assert sim.statistics.counter("m.requests") == 3
        assert sim.statistics.counter("m.grants") == 3
        assert sim.statistics.counter("m.releases") == 3

    def test_time_weighted_utilisation(self, sim):
        machine = Resource(sim, capacity=2, name="m")
        log = []
        sim.process(hold(sim, machine, 10, log, "a"))
        sim.run(until=20)
        # One of two slots busy for half the time
        assert sim.statistics.time_weighted_average("m.in_use") == pytest.approx(0.5)
