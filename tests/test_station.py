#!/usr/bin/env python3
"""
Tests for station platforms, waiting queues and passenger generation.
"""

import unittest
from types import SimpleNamespace

from helpers import make_context, make_line, make_stations, stub_context

from metro_sim.components.passenger_generator import PassengerGenerator
from metro_sim.components.station import Station, make_active_station, make_cargo_station
from metro_sim.components.train import Train, make_cargo_train
from metro_sim.core.data_models import CARGO_STATION_POLICY, Passenger, TrainKind
from metro_sim.core.errors import StationFullError, StationInvalidActionError


def dummy_train(name='T1', kind=TrainKind.PASSENGER):
    return SimpleNamespace(name=name, kind=kind, forward=True)


class TestStationPlatforms(unittest.TestCase):
    """Trains entering and leaving platforms."""

    def test_default_platform_count(self):
        station = Station('S1')
        self.assertEqual(station.platforms, Station.PLATFORMS)
        self.assertEqual(Station.PLATFORMS, 2)

    def test_platform_capacity_is_enforced(self):
        station = Station('S1', platforms=1)
        station.enter(dummy_train('T1'))
        self.assertFalse(station.can_enter(dummy_train('T2')))
        with self.assertRaises(StationFullError):
            station.enter(dummy_train('T2'))
        self.assertEqual(len(station.present_trains), 1)

    def test_unlimited_platforms(self):
        station = Station('S1', platforms=None)
        for i in range(10):
            station.enter(dummy_train(f'T{i}'))
        self.assertEqual(len(station.present_trains), 10)

    def test_invalid_platform_count(self):
        with self.assertRaises(ValueError):
            Station('S1', platforms=0)

    def test_leave_frees_platform(self):
        station = Station('S1', platforms=1)
        first = dummy_train('T1')
        station.enter(first)
        station.leave(first)
        self.assertFalse(station.is_present(first))
        self.assertTrue(station.can_enter(dummy_train('T2')))

    def test_leave_when_absent_is_invalid(self):
        station = Station('S1')
        with self.assertRaises(StationInvalidActionError):
            station.leave(dummy_train())

    def test_cargo_trains_cannot_stop_at_plain_stations(self):
        station = Station('S1')
        cargo = dummy_train('F1', kind=TrainKind.CARGO)
        self.assertFalse(station.can_stop(cargo))
        self.assertTrue(station.can_enter(cargo))
        with self.assertRaises(StationInvalidActionError):
            station.stop(cargo, make_context())

    def test_any_train_may_stop_at_cargo_stations(self):
        station = Station('S1', policy=CARGO_STATION_POLICY)
        self.assertTrue(station.can_stop(dummy_train('T1')))
        self.assertTrue(station.can_stop(dummy_train('F1', kind=TrainKind.CARGO)))

    def test_full_station_cannot_be_stopped_at(self):
        station = Station('S1', platforms=1)
        station.enter(dummy_train('T1'))
        self.assertFalse(station.can_stop(dummy_train('T2')))

    def test_passive_stop_does_not_generate(self):
        s1, s2 = make_stations(['S1', 'S2'], max_passengers=5)
        line = make_line('L1', [s1, s2])
        train = Train('T1', line, s1)
        context = make_context()

        s1.stop(train, context)

        self.assertTrue(s1.is_present(train))
        self.assertEqual(s1.waiting_count, 0)
        self.assertEqual(context.passenger_ids.last_id, 0)

    def test_snapshot(self):
        station = make_cargo_station('Depot', (3.0, 4.0), max_passengers=6)
        snap = station.snapshot()
        self.assertEqual(snap.name, 'Depot')
        self.assertEqual(snap.policy, 'cargo')
        self.assertTrue(snap.active)
        self.assertEqual((snap.x, snap.y), (3.0, 4.0))
        self.assertEqual(snap.waiting, 0)


class TestWaitingQueue(unittest.TestCase):
    """The station owns its waiting queue."""

    def setUp(self):
        self.s1, self.s2 = make_stations(['S1', 'S2'], max_passengers=2)
        make_line('L1', [self.s1, self.s2])

    def passenger(self, passenger_id):
        return Passenger(passenger_id, self.s1, self.s2)

    def test_queue_capacity(self):
        self.s1.add_waiting(self.passenger(1))
        self.s1.add_waiting(self.passenger(2))
        with self.assertRaises(StationFullError):
            self.s1.add_waiting(self.passenger(3))
        self.assertEqual(self.s1.waiting_count, 2)

    def test_release_keeps_fifo_order(self):
        station = Station('S1', max_passengers=5)
        passengers = [Passenger(i, station, self.s2) for i in range(1, 6)]
        for passenger in passengers:
            station.add_waiting(passenger)

        released = station.release_waiting(lambda p: p.passenger_id % 2 == 1)

        self.assertEqual([p.passenger_id for p in released], [1, 3, 5])
        self.assertEqual([p.passenger_id for p in station.waiting_passengers], [2, 4])


class TestPassengerGenerator(unittest.TestCase):
    """Generation when trains stop at active stations."""

    def test_generation_is_clamped_to_queue_room(self):
        s1, s2, s3 = make_stations(['S1', 'S2', 'S3'], max_passengers=2, active=True)
        make_line('L1', [s1, s2, s3])
        context = stub_context([4, 0, 0])

        generated = PassengerGenerator().generate_passengers(s1, context)

        self.assertEqual(len(generated), 2)
        self.assertEqual(s1.waiting_count, 2)
        self.assertEqual([p.passenger_id for p in generated], [1, 2])
        self.assertEqual(context.rng.calls[0], (1, PassengerGenerator.MAX_GENERATED + 1))
        for passenger in generated:
            self.assertIs(passenger.origin, s1)
            self.assertIs(passenger.destination, s2)

    def test_full_queue_generates_nothing(self):
        s1, s2 = make_stations(['S1', 'S2'], max_passengers=1, active=True)
        make_line('L1', [s1, s2])
        s1.add_waiting(Passenger(99, s1, s2))

        generated = PassengerGenerator().generate_passengers(s1, stub_context([3]))

        self.assertEqual(generated, [])
        self.assertEqual(s1.waiting_count, 1)

    def test_destinations_are_deduplicated_across_lines(self):
        a, b, c, d = make_stations(['A', 'B', 'C', 'D'])
        make_line('L1', [a, b, c])
        make_line('L2', [d, b, a])

        destinations = PassengerGenerator().valid_destinations(b)

        self.assertEqual([s.name for s in destinations], ['A', 'C', 'D'])

    def test_cargo_station_only_sends_to_cargo_stations(self):
        hub = make_cargo_station('Hub', (0.0, 0.0), max_passengers=10)
        plain = make_active_station('Plain', (100.0, 0.0), max_passengers=10)
        other_hub = make_cargo_station('Yard', (200.0, 0.0), max_passengers=10)
        make_line('L1', [hub, plain, other_hub])

        destinations = PassengerGenerator().valid_destinations(hub)
        self.assertEqual(destinations, [other_hub])

        generated = PassengerGenerator().generate_passengers(hub, stub_context([2, 0, 17, 0, 50]))
        self.assertEqual([p.cargo_weight for p in generated], [17, 50])
        self.assertTrue(all(p.destination is other_hub for p in generated))

    def test_no_destination_stops_generation(self):
        hub = make_cargo_station('Hub', (0.0, 0.0), max_passengers=10)
        plain = make_active_station('Plain', (100.0, 0.0), max_passengers=10)
        make_line('L1', [hub, plain])

        generated = PassengerGenerator().generate_passengers(hub, stub_context([3]))

        self.assertEqual(generated, [])

    def test_seeded_generation_respects_bounds(self):
        stations = make_stations(['S1', 'S2', 'S3', 'S4'], max_passengers=20, active=True)
        make_line('L1', stations)
        context = make_context(seed=7)
        generator = PassengerGenerator()

        for _ in range(5):
            generated = generator.generate_passengers(stations[0], context)
            self.assertGreaterEqual(len(generated), 1)
            self.assertLessEqual(len(generated), generator.MAX_GENERATED)
            for passenger in generated:
                self.assertIsNot(passenger.destination, stations[0])
                self.assertEqual(passenger.cargo_weight, 0)

    def test_active_stop_boards_generated_passengers(self):
        s1, s2, s3 = make_stations(['S1', 'S2', 'S3'], max_passengers=4, active=True)
        line = make_line('L1', [s1, s2, s3])
        train = Train('T1', line, s1, forward=True)
        context = stub_context([3, 0, 1, 0])

        s1.stop(train, context)

        self.assertEqual(len(train.passengers), 3)
        self.assertEqual(s1.waiting_count, 0)
        self.assertEqual(len(context.events.passenger_events('embark')), 3)

    def test_cargo_train_stops_at_cargo_station(self):
        hub = make_cargo_station('Hub', (0.0, 0.0), max_passengers=4)
        yard = make_cargo_station('Yard', (100.0, 0.0), max_passengers=4)
        line = make_line('Freight', [hub, yard])
        train = make_cargo_train('F1', line, hub, max_cargo=60)
        context = stub_context([2, 0, 40, 0, 30])

        hub.stop(train, context)

        # Second parcel would exceed the cargo limit and keeps waiting
        self.assertEqual(train.current_cargo, 40)
        self.assertEqual(len(train.passengers), 1)
        self.assertEqual(hub.waiting_count, 1)


if __name__ == '__main__':
    unittest.main()
