import os
import unittest
from dataclasses import FrozenInstanceError
from datetime import timedelta
from unittest.mock import patch

from parkit.config import FareConfig, load_fare_config
from parkit.constants import ParkingType
from parkit.domain import ParkingSpot
from parkit.errors import InvalidInterval, NonPositiveDuration, UnknownCategory
from parkit.fare import FareCalculator, duration_in_hours

from tests.helpers import IN_TIME, make_ticket

CAR_RATE = 1.5
BIKE_RATE = 1.0


class TestFareCalculator(unittest.TestCase):

    def setUp(self):
        self.calculator = FareCalculator(FareConfig())

    def test_calculate_fare_car(self):
        ticket = make_ticket(hours=1)
        self.calculator.calculate_fare(ticket)
        self.assertEqual(ticket.price, CAR_RATE)

    def test_calculate_fare_bike(self):
        ticket = make_ticket(hours=1, parking_type=ParkingType.BIKE)
        self.calculator.calculate_fare(ticket)
        self.assertEqual(ticket.price, BIKE_RATE)

    def test_calculate_fare_car_with_less_than_one_hour_parking_time(self):
        ticket = make_ticket(minutes=45)
        self.assertAlmostEqual(self.calculator.calculate_fare(ticket), 0.75 * CAR_RATE)

    def test_calculate_fare_bike_with_less_than_one_hour_parking_time(self):
        ticket = make_ticket(minutes=45, parking_type=ParkingType.BIKE)
        self.assertAlmostEqual(self.calculator.calculate_fare(ticket), 0.75 * BIKE_RATE)

    def test_calculate_fare_car_with_more_than_a_day_parking_time(self):
        ticket = make_ticket(hours=24)
        self.assertAlmostEqual(self.calculator.calculate_fare(ticket), 24 * CAR_RATE)

    def test_stays_up_to_half_an_hour_are_free(self):
        for parking_type in ParkingType:
            for minutes in (1, 20, 30):
                for discount in (False, True):
                    with self.subTest(parking_type=parking_type, minutes=minutes, discount=discount):
                        ticket = make_ticket(minutes=minutes, parking_type=parking_type)
                        self.calculator.calculate_fare(ticket, discount)
                        self.assertEqual(ticket.price, 0)

    def test_just_over_half_an_hour_is_billed(self):
        ticket = make_ticket(minutes=31)
        self.calculator.calculate_fare(ticket)
        self.assertAlmostEqual(ticket.price, 31 / 60 * CAR_RATE)

    def test_recurring_user_gets_five_percent_discount(self):
        for parking_type, rate in ((ParkingType.CAR, CAR_RATE), (ParkingType.BIKE, BIKE_RATE)):
            with self.subTest(parking_type=parking_type):
                ticket = make_ticket(hours=2, parking_type=parking_type)
                self.calculator.calculate_fare(ticket, discount=True)
                self.assertAlmostEqual(ticket.price, 2 * rate * 0.95)

    def test_missing_out_time_is_invalid(self):
        ticket = make_ticket()
        with self.assertRaises(InvalidInterval):
            self.calculator.calculate_fare(ticket)
        self.assertIsNone(ticket.price)

    def test_out_time_before_in_time_is_invalid(self):
        ticket = make_ticket(hours=-1)
        with self.assertRaises(InvalidInterval):
            self.calculator.calculate_fare(ticket)

    def test_equal_timestamps_are_rejected(self):
        ticket = make_ticket(hours=0)
        with self.assertRaises(NonPositiveDuration):
            self.calculator.calculate_fare(ticket)

    def test_category_without_rate_is_unknown(self):
        calculator = FareCalculator(FareConfig(rates={ParkingType.CAR: CAR_RATE}))
        ticket = make_ticket(hours=1, parking_type=ParkingType.BIKE)
        with self.assertRaises(UnknownCategory):
            calculator.calculate_fare(ticket)

    def test_unsupported_category_is_unknown(self):
        ticket = make_ticket(hours=1)
        ticket.parking_spot = ParkingSpot(1, "TRUCK", False)
        with self.assertRaises(UnknownCategory):
            self.calculator.calculate_fare(ticket)

    def test_times_are_left_untouched(self):
        ticket = make_ticket(hours=3)
        out_time = ticket.out_time
        self.calculator.calculate_fare(ticket, discount=True)
        self.assertEqual(ticket.in_time, IN_TIME)
        self.assertEqual(ticket.out_time, out_time)

    def test_custom_rate_provider(self):
        class FlatRate:
            def rate_for(self, parking_type):
                return 4.0

        calculator = FareCalculator(FareConfig(), rate_provider=FlatRate())
        self.assertEqual(calculator.calculate_fare(make_ticket(hours=2)), 8.0)


class TestDuration(unittest.TestCase):

    def test_duration_is_measured_in_hours(self):
        self.assertEqual(duration_in_hours(IN_TIME, IN_TIME + timedelta(minutes=90)), 1.5)

    def test_one_millisecond(self):
        duration = duration_in_hours(IN_TIME, IN_TIME + timedelta(milliseconds=1))
        self.assertAlmostEqual(duration, 1 / 3600000)


class TestFareConfig(unittest.TestCase):

    def test_defaults(self):
        config = FareConfig()
        self.assertEqual(config.rates[ParkingType.CAR], CAR_RATE)
        self.assertEqual(config.rates[ParkingType.BIKE], BIKE_RATE)
        self.assertEqual(config.free_hours, 0.5)
        self.assertEqual(config.recurring_discount, 0.05)

    def test_is_immutable(self):
        config = FareConfig()
        with self.assertRaises(FrozenInstanceError):
            config.free_minutes = 0
        with self.assertRaises(TypeError):
            config.rates[ParkingType.CAR] = 10.0

    def test_rejects_negative_rate(self):
        with self.assertRaises(ValueError):
            FareConfig(rates={ParkingType.CAR: -1.0})

    def test_rejects_full_discount(self):
        with self.assertRaises(ValueError):
            FareConfig(recurring_discount=1)

    @patch.dict(os.environ, {"CAR_RATE_PER_HOUR": "2.5", "FREE_PARKING_MINUTES": "15"})
    def test_load_from_environment(self):
        config = load_fare_config()
        self.assertEqual(config.rates[ParkingType.CAR], 2.5)
        self.assertEqual(config.rates[ParkingType.BIKE], BIKE_RATE)
        self.assertEqual(config.free_minutes, 15)


class TestParkingSpot(unittest.TestCase):

    def test_id_must_be_positive(self):
        with self.assertRaises(ValueError):
            ParkingSpot(0, ParkingType.CAR)


if __name__ == "__main__":
    unittest.main()
