import asyncio
import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass

from parkit.constants import ParkingType
from parkit.crud import LookupStatus
from parkit.domain import ParkingSpot, Ticket, to_naive_utc, utcnow
from parkit.errors import (
    InvalidSelection,
    NoAvailableSpot,
    ParkingFull,
    TicketNotFound,
    TicketSaveFailed,
    TicketUpdateFailed,
    VehicleAlreadyParked,
)

logger = logging.getLogger(__name__)

CLAIM_ATTEMPTS = 3


class VehicleLocks:
    """One lock per registration number, kept only while someone holds or awaits it."""

    def __init__(self):
        self._locks = {}
        self._users = {}

    def __len__(self):
        return len(self._locks)

    def locked(self, key):
        lock = self._locks.get(key)
        return lock is not None and lock.locked()

    @asynccontextmanager
    async def hold(self, key):
        lock = self._locks.setdefault(key, asyncio.Lock())
        self._users[key] = self._users.get(key, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._users[key] -= 1
            if not self._users[key]:
                del self._users[key]
                del self._locks[key]


@dataclass
class ParkingReceipt:
    ticket: Ticket
    recurring: bool
    message: str


class ParkingService:
    """Runs a vehicle through the gate: spot allocation on entry, billing on exit.

    ``locks`` serializes exits per registration number; share one
    ``VehicleLocks`` between every service instance that talks to the same
    facility. ``commit`` is awaited before an exit releases its lock, so the
    next exit of the same vehicle sees the closed ticket. Without it the
    store's conditional ticket update is what stops a double close.
    """

    def __init__(self, input_reader, spot_store, ticket_store, fare_calculator, notify=None, locks=None, commit=None):
        self.input_reader = input_reader
        self.spot_store = spot_store
        self.ticket_store = ticket_store
        self.fare_calculator = fare_calculator
        self.notify = notify or logger.info
        self.locks = locks if locks is not None else VehicleLocks()
        self.commit = commit

    def get_vehicle_type(self) -> ParkingType:
        selection = self.input_reader.read_selection()
        parking_type = ParkingType.from_selection(selection)
        if parking_type is None:
            logger.error(f"Incorrect input provided: {selection}")
            raise InvalidSelection("Entered input is invalid")
        return parking_type

    async def get_next_parking_number_if_available(self) -> ParkingSpot:
        return await self._find_parking_spot(self.get_vehicle_type())

    async def _find_parking_spot(self, parking_type):
        lookup = await self.spot_store.get_next_available_slot(parking_type)
        if lookup.status is LookupStatus.OK:
            return ParkingSpot(lookup.spot_id, parking_type, True)

        if lookup.status is LookupStatus.NOT_FOUND:
            error = NoAvailableSpot("Unexpected error while fetching parking slot", full=True)
            raise error from ParkingFull("Error fetching parking number from DB. Parking slots might be full")

        raise NoAvailableSpot("Unexpected error while fetching parking slot") from lookup.cause

    async def _claim_parking_spot(self):
        parking_type = self.get_vehicle_type()
        for _ in range(CLAIM_ATTEMPTS):
            parking_spot = await self._find_parking_spot(parking_type)
            parking_spot.available = False
            if await self.spot_store.update_parking(parking_spot, expected_available=True):
                return parking_spot
            logger.warning(f"Parking spot {parking_spot.id} was taken before it could be claimed")
        raise NoAvailableSpot(f"Unable to claim a {parking_type.name} parking spot")

    async def _release(self, parking_spot):
        parking_spot.available = True
        if not await self.spot_store.update_parking(parking_spot):
            logger.error(f"Unable to release parking spot {parking_spot.id}")

    async def process_incoming_vehicle(self) -> ParkingReceipt:
        parking_spot = await self._claim_parking_spot()
        vehicle_reg_number = self.input_reader.read_vehicle_registration_number()

        if await self.ticket_store.get_ticket(vehicle_reg_number) is not None:
            await self._release(parking_spot)
            raise VehicleAlreadyParked(f"Vehicle {vehicle_reg_number} is already inside")

        recurring = await self.ticket_store.get_nb_ticket(vehicle_reg_number) > 0

        ticket = Ticket(vehicle_reg_number, parking_spot, in_time=utcnow())
        if not await self.ticket_store.save_ticket(ticket):
            await self._release(parking_spot)
            raise TicketSaveFailed(f"Unable to save ticket for vehicle {vehicle_reg_number}")

        if recurring:
            discount = self.fare_calculator.config.recurring_discount * 100
            message = (f"Welcome back! As a recurring user of our parking lot, "
                       f"you'll benefit from a {discount:g}% discount.")
        else:
            message = f"Welcome! Vehicle {vehicle_reg_number} is new to our parking lot."
        self.notify(message)
        self.notify(f"Please park your vehicle in spot number: {parking_spot.id}")

        logger.info(f"Recorded in-time for vehicle {vehicle_reg_number}: {ticket.in_time}")
        return ParkingReceipt(ticket, recurring, message)

    async def process_exiting_vehicle(self, out_time=None) -> ParkingReceipt:
        vehicle_reg_number = self.input_reader.read_vehicle_registration_number()

        async with self.locks.hold(vehicle_reg_number):
            ticket = await self.ticket_store.get_ticket(vehicle_reg_number)
            if ticket is None:
                raise TicketNotFound(f"No open ticket found for vehicle {vehicle_reg_number}")

            ticket.out_time = to_naive_utc(out_time) if out_time else utcnow()
            recurring = await self.ticket_store.get_nb_ticket(vehicle_reg_number) > 1
            self.fare_calculator.calculate_fare(ticket, recurring)

            if not await self.ticket_store.update_ticket(ticket):
                logger.error(f"Unable to update ticket {ticket.id}, spot {ticket.parking_spot.id} stays occupied")
                raise TicketUpdateFailed("Unable to update ticket information. Error occurred")

            await self._release(ticket.parking_spot)
            if self.commit is not None:
                await self.commit()

        message = f"Please pay the parking fare: {ticket.price:.2f}"
        self.notify(message)
        logger.info(f"Recorded out-time for vehicle {vehicle_reg_number}: {ticket.out_time}")
        return ParkingReceipt(ticket, recurring, message)
