"""
Unit tests for the models module.
Tests RingQueue, Vehicle, Link, Node, Route and RoadNetwork.
"""

import pytest
import sys
import os

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from braess.data.topology import (
    BRAESS_TOPOLOGY, NetworkTopology, NodeSpec, LinkSpec, RouteSpec
)
from braess.models.ring_queue import RingQueue
from braess.models.vehicle import Vehicle
from braess.models.link import Link, LinkKind, MIN_SPEED
from braess.models.node import NodeType
from braess.models.network import TopologyError, build_network, default_fleet_size
from braess.simulation.engine import Simulation, SimulationConfig


@pytest.fixture
def sim():
    """A stopped simulation used as the context for model operations."""
    return Simulation(SimulationConfig(seed=42))


class TestRingQueue:
    """Tests for the circular buffer."""

    def test_fifo_order(self):
        """Items leave in the order they were added."""
        queue = RingQueue(4)
        for item in "abc":
            queue.enqueue(item)
        assert queue.dequeue() == "a"
        assert queue.dequeue() == "b"
        assert len(queue) == 1

    def test_wraps_around(self):
        """Items stay in order after the head passes the end of the buffer."""
        queue = RingQueue(3)
        queue.enqueue(1)
        queue.enqueue(2)
        queue.enqueue(3)
        assert queue.is_full()
        assert queue.dequeue() == 1
        queue.enqueue(4)

        assert list(queue) == [2, 3, 4]
        assert queue.first() == 2
        assert queue.last() == 4
        assert queue.peek(1) == 3

    def test_empty_queue_is_falsy(self):
        """An empty queue is falsy and has length zero."""
        queue = RingQueue(2)
        assert not queue
        assert queue.length() == 0
        queue.enqueue("x")
        assert queue

    def test_overflow_asserts(self):
        """Enqueue on a full queue fails loudly."""
        queue = RingQueue(1)
        queue.enqueue(1)
        with pytest.raises(AssertionError):
            queue.enqueue(2)

    def test_underflow_asserts(self):
        """Dequeue on an empty queue fails loudly."""
        with pytest.raises(AssertionError):
            RingQueue(2).dequeue()

    def test_peek_out_of_range_asserts(self):
        """Peek past the tail fails loudly."""
        queue = RingQueue(2)
        queue.enqueue(1)
        with pytest.raises(AssertionError):
            queue.peek(1)

    def test_invalid_capacity(self):
        """Capacity must be positive."""
        with pytest.raises(ValueError):
            RingQueue(0)


class TestVehicle:
    """Tests for the Vehicle record."""

    def test_idle_vehicle_is_not_dispatched(self):
        """A vehicle without a route is hidden and has no color."""
        vehicle = Vehicle(serial=1)
        assert not vehicle.is_dispatched
        assert vehicle.color is None

    def test_move_updates_odometer(self):
        """Moving along a link accumulates distance on the odometer."""
        vehicle = Vehicle(serial=1)
        vehicle.move_to(3.0)
        vehicle.move_to(5.5)
        assert vehicle.past_progress == 3.0
        assert vehicle.progress == 5.5
        assert vehicle.odometer == pytest.approx(5.5)

    def test_park_resets_trip_state(self, sim):
        """Parking clears the route, progress and odometer."""
        vehicle = Vehicle(serial=1, route=sim.network.get_route("Ab"))
        vehicle.move_to(10.0)
        vehicle.park()
        assert vehicle.route is None
        assert vehicle.progress == 0.0
        assert vehicle.odometer == 0.0


class TestLink:
    """Tests for link speed and driving."""

    def test_constant_link_runs_at_speed_limit(self, sim):
        """Wide roads always run at the speed limit."""
        link = sim.network.get_link("A")
        assert link.kind == LinkKind.CONSTANT
        assert link.speed == 3
        assert link.travel_time == pytest.approx(499 / 3)

    def test_congestible_speed_drops_with_occupancy(self, sim):
        """Each car on a narrow road lowers its speed."""
        link = sim.network.get_link("a")
        assert link.congestible
        link.enter(sim.idle_pool.dequeue(), sim)
        # 3 - 1 * 6 * 3 * 0.55 / 271
        expected = 3 - 9.9 / 271
        assert link.speed == pytest.approx(expected)
        assert link.travel_time == pytest.approx(271 / expected)

    def test_congestible_speed_is_floored(self, sim):
        """A packed narrow road slows to the floor speed, never below."""
        sim.set_congestion_coefficient(1.0)
        link = sim.network.get_link("a")
        for _ in range(46):
            link.queue.enqueue(sim.idle_pool.dequeue())
        link.update_speed(sim)
        assert link.speed == MIN_SPEED

    def test_entrance_blocked_until_gap(self, sim):
        """A link accepts a new car only once the last car is one length in."""
        link = sim.network.get_link("A")
        link.enter(sim.idle_pool.dequeue(), sim)
        assert link.can_enter(6) is False
        link.drive(sim)
        assert link.can_enter(6) is False
        link.drive(sim)
        assert link.can_enter(6) is True

    def test_followers_keep_one_vehicle_length(self, sim):
        """A follower never closes within one car length of its leader."""
        link = sim.network.get_link("A")
        first = sim.idle_pool.dequeue()
        second = sim.idle_pool.dequeue()
        link.enter(first, sim)
        link.drive(sim)
        link.drive(sim)
        link.enter(second, sim)
        for _ in range(20):
            link.drive(sim)
            assert first.progress - second.progress >= 6 - 1e-9

    def test_front_vehicle_handed_to_node(self, sim):
        """The front car moves into an empty node at the end of the link."""
        link = sim.network.get_link("A")
        vehicle = sim.idle_pool.dequeue()
        link.enter(vehicle, sim)
        vehicle.progress = 498.0

        assert link.drive(sim) is vehicle
        assert link.destination.car is vehicle
        assert link.occupancy == 0

    def test_front_vehicle_waits_when_node_full(self, sim):
        """The front car holds at the end while the next node is occupied."""
        link = sim.network.get_link("A")
        blocker = sim.idle_pool.dequeue()
        link.destination.accept(blocker)
        vehicle = sim.idle_pool.dequeue()
        link.enter(vehicle, sim)
        vehicle.progress = 498.0

        assert link.drive(sim) is None
        assert vehicle.progress == 499
        assert link.occupancy == 1

    def test_invalid_length(self, sim):
        """Links must have a positive length."""
        link = sim.network.get_link("A")
        with pytest.raises(ValueError):
            Link(id="bad", length=0, origin=link.origin,
                 destination=link.destination, capacity=4)


class TestNode:
    """Tests for single-capacity nodes."""

    def test_node_holds_one_vehicle(self, sim):
        """A second car cannot enter an occupied node."""
        node = sim.network.get_node("north")
        node.accept(sim.idle_pool.dequeue())
        assert not node.has_room()
        with pytest.raises(AssertionError):
            node.accept(sim.idle_pool.dequeue())

    def test_dispatch_follows_route(self, sim):
        """A resident car moves onto the link its route names for the node."""
        origin = sim.network.origin
        vehicle = sim.idle_pool.dequeue()
        vehicle.route = sim.network.get_route("aB")
        origin.accept(vehicle)

        assert origin.dispatch(sim) is True
        assert origin.has_room()
        assert sim.network.get_link("a").queue.last() is vehicle

    def test_dispatch_waits_for_room(self, sim):
        """A car stays in the node while the next link's entrance is blocked."""
        link = sim.network.get_link("a")
        link.enter(sim.idle_pool.dequeue(), sim)

        origin = sim.network.origin
        vehicle = sim.idle_pool.dequeue()
        vehicle.route = sim.network.get_route("aB")
        origin.accept(vehicle)

        assert origin.dispatch(sim) is False
        assert origin.car is vehicle

    def test_destination_records_and_parks(self, sim):
        """The destination records the trip and returns the car to the pool."""
        dest = sim.network.destination
        vehicle = sim.idle_pool.dequeue()
        vehicle.route = sim.network.get_route("Ab")
        vehicle.depart_time = 0.0
        dest.accept(vehicle)
        sim.clock = 660.0

        assert dest.dispatch(sim) is True
        assert dest.has_room()
        assert sim.dashboard.counts["Ab"] == 1
        assert sim.dashboard.average_time("Ab") == pytest.approx(220.0)
        assert vehicle.route is None
        assert len(sim.idle_pool) == sim.fleet_size


class TestTopology:
    """Tests for the reference topology and network building."""

    def test_link_lengths(self):
        """Narrow roads are 271, wide roads 499 and bridge links 40."""
        lengths = {spec.id: BRAESS_TOPOLOGY.link_length(spec) for spec in BRAESS_TOPOLOGY.links}
        assert lengths == {
            "a": 271, "b": 271, "A": 499, "B": 499,
            "sn-bridge": 40, "ns-bridge": 40,
        }
        assert BRAESS_TOPOLOGY.total_length() == 1620

    def test_default_fleet_size(self):
        """The fleet covers every car the network can physically hold."""
        # ceil(1620 / 6) + 6 links + 4 nodes
        assert default_fleet_size(BRAESS_TOPOLOGY, 6) == 280

    def test_build_reference_network(self):
        """The builder creates all four routes with their lengths."""
        network = build_network(BRAESS_TOPOLOGY, 280)
        assert network.origin.node_type == NodeType.ORIGIN
        assert network.destination.id == "dest"
        assert [r.label for r in network.get_routes()] == ["Ab", "aB", "AB", "ab"]
        assert network.get_route("Ab").route_length == 770
        assert network.get_route("ab").route_length == 582
        assert network.get_route("AB").route_length == 1038
        assert network.quickest_route_length() == 582

    def test_bridge_starts_closed(self):
        """Only the two bridge-free routes are available until the bridge opens."""
        network = build_network(BRAESS_TOPOLOGY, 280)
        assert not network.bridge_open
        assert [r.label for r in network.available_routes()] == ["Ab", "aB"]

        network.set_bridge_open(True)
        assert network.bridge_open
        assert len(network.available_routes()) == 4

    def test_directions_cover_every_node(self):
        """Directions map every node, with None where the route does not pass."""
        network = build_network(BRAESS_TOPOLOGY, 280)
        route = network.get_route("Ab")
        assert set(route.directions) == {"orig", "south", "north", "dest"}
        assert route.directions["orig"].id == "A"
        assert route.directions["north"].id == "b"
        assert route.directions["south"] is None
        assert route.directions["dest"] is None

    def test_routes_enumerated_when_not_listed(self):
        """Without named routes every simple path becomes a route."""
        topology = NetworkTopology(nodes=BRAESS_TOPOLOGY.nodes, links=BRAESS_TOPOLOGY.links)
        network = build_network(topology, 280)
        labels = {r.label for r in network.get_routes()}
        assert labels == {"a-B", "A-b", "a-sn-bridge-b", "A-ns-bridge-B"}
        assert network.service_order[0].id == "dest"
        assert {n.id for n in network.service_order} == {"dest", "north", "south"}

    def test_two_origins_rejected(self):
        """A network needs exactly one origin."""
        topology = NetworkTopology(
            nodes=[
                NodeSpec("o1", 0, 0, role="origin"),
                NodeSpec("o2", 0, 10, role="origin"),
                NodeSpec("d", 10, 0, role="destination"),
            ],
            links=[LinkSpec("x", "o1", "d")],
        )
        with pytest.raises(TopologyError):
            build_network(topology, 10)

    def test_route_with_unknown_link_rejected(self):
        """Routes may only use declared links."""
        topology = NetworkTopology(
            nodes=[NodeSpec("o", 0, 0, role="origin"), NodeSpec("d", 10, 0, role="destination")],
            links=[LinkSpec("x", "o", "d")],
            routes=[RouteSpec("bad", ["x", "y"])],
        )
        with pytest.raises(TopologyError):
            build_network(topology, 10)

    def test_route_not_reaching_destination_rejected(self):
        """A route must end at the destination."""
        topology = NetworkTopology(
            nodes=[
                NodeSpec("o", 0, 0, role="origin"),
                NodeSpec("m", 5, 0),
                NodeSpec("d", 10, 0, role="destination"),
            ],
            links=[LinkSpec("x", "o", "m"), LinkSpec("y", "m", "d")],
            routes=[RouteSpec("short", ["x"])],
        )
        with pytest.raises(TopologyError):
            build_network(topology, 10)

    def test_unknown_role_rejected(self):
        """Node roles are limited to origin, junction and destination."""
        topology = NetworkTopology(
            nodes=[NodeSpec("o", 0, 0, role="depot")],
            links=[],
        )
        with pytest.raises(TopologyError):
            build_network(topology, 10)

    def test_network_stats(self):
        """Stats count nodes, links, kinds and total length."""
        stats = build_network(BRAESS_TOPOLOGY, 280).get_stats()
        assert stats.total_nodes == 4
        assert stats.total_links == 6
        assert stats.congestible_links == 2
        assert stats.bridge_links == 2
        assert stats.open_links == 4
        assert stats.total_length == 1620
