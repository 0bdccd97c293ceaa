import logging
from datetime import datetime
from typing import Protocol

from parkit.config import FareConfig
from parkit.constants import MILLIS_PER_HOUR, ParkingType
from parkit.domain import Ticket
from parkit.errors import InvalidInterval, NonPositiveDuration, UnknownCategory

logger = logging.getLogger(__name__)


class RateProvider(Protocol):
    def rate_for(self, parking_type: ParkingType) -> float:
        ...


class TableRateProvider:
    """Looks hourly rates up in a fixed category -> rate table."""

    def __init__(self, rates):
        self.rates = rates

    def rate_for(self, parking_type):
        try:
            return self.rates[parking_type]
        except (KeyError, TypeError):
            raise UnknownCategory(f"Unknown parking type: {parking_type}") from None


def duration_in_hours(in_time: datetime, out_time: datetime) -> float:
    """Elapsed time between two timestamps, in hours.

    The difference is taken in milliseconds and divided by 3,600,000 so
    that a one hour stay is exactly 1.0.
    """
    millis = (out_time - in_time).total_seconds() * 1000
    return millis / MILLIS_PER_HOUR


class FareCalculator:
    def __init__(self, config: FareConfig, rate_provider: RateProvider = None):
        self.config = config
        self.rate_provider = rate_provider or TableRateProvider(config.rates)

    def calculate_fare(self, ticket: Ticket, discount: bool = False) -> float:
        """Price a closed ticket and store the result on ``ticket.price``.

        Stays up to the free period cost nothing, whatever the category
        or recurring status. Longer stays are billed per hour at the
        spot's category rate, and recurring users get the configured
        discount on top.
        """
        if ticket.out_time is None or ticket.out_time < ticket.in_time:
            raise InvalidInterval(f"Out time provided is incorrect: {ticket.out_time}")

        duration = duration_in_hours(ticket.in_time, ticket.out_time)
        if duration <= 0:
            raise NonPositiveDuration(f"Duration must be positive: {duration}")

        if duration <= self.config.free_hours:
            ticket.price = 0.0
            logger.info(f"Free parking for {ticket.vehicle_reg_number}: {duration:.2f}h")
            return ticket.price

        parking_type = ticket.parking_spot.parking_type
        price = duration * self.rate_provider.rate_for(parking_type)
        if discount:
            price *= 1 - self.config.recurring_discount

        ticket.price = price
        logger.info(f"Price calculated for {getattr(parking_type, 'name', parking_type)}: {price}")
        return price
