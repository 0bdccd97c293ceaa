import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from sqlalchemy import func, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from parkit.constants import ParkingType
from parkit.domain import ParkingSpot, Ticket
from parkit.errors import StoreError
from parkit.models import ParkingSpotRecord, TicketRecord

logger = logging.getLogger(__name__)


class LookupStatus(Enum):
    OK = "ok"
    NOT_FOUND = "not_found"
    TECHNICAL_ERROR = "technical_error"


@dataclass(frozen=True)
class SlotLookup:
    """Outcome of a free spot lookup: a spot id, nothing free, or a store failure."""

    status: LookupStatus
    spot_id: Optional[int] = None
    cause: Optional[BaseException] = None

    @classmethod
    def ok(cls, spot_id):
        return cls(LookupStatus.OK, spot_id=spot_id)

    @classmethod
    def not_found(cls):
        return cls(LookupStatus.NOT_FOUND)

    @classmethod
    def technical_error(cls, cause):
        return cls(LookupStatus.TECHNICAL_ERROR, cause=cause)


def build_spots(car_count, bike_count):
    """Number car spots first, then bike spots, starting at 1."""
    spots = [ParkingSpot(i, ParkingType.CAR) for i in range(1, car_count + 1)]
    spots += [ParkingSpot(car_count + i, ParkingType.BIKE) for i in range(1, bike_count + 1)]
    return spots


async def _query(db, stmt, action):
    try:
        return await db.execute(stmt)
    except SQLAlchemyError as e:
        logger.error(f"Error {action}: {e}")
        raise StoreError(f"Error {action}") from e


def _to_spot(record: ParkingSpotRecord) -> ParkingSpot:
    return ParkingSpot(record.id, record.parking_type, record.available)


def _to_ticket(record: TicketRecord) -> Ticket:
    return Ticket(
        vehicle_reg_number=record.vehicle_reg_number,
        parking_spot=_to_spot(record.parking_spot),
        in_time=record.in_time,
        out_time=record.out_time,
        price=record.price,
        id=record.id,
    )


class ParkingSpotStore:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_next_available_slot(self, parking_type: ParkingType) -> SlotLookup:
        try:
            result = await self.db.execute(
                select(func.min(ParkingSpotRecord.id)).where(
                    ParkingSpotRecord.parking_type == parking_type,
                    ParkingSpotRecord.available == True
                )
            )
            spot_id = result.scalar()
        except SQLAlchemyError as e:
            logger.error(f"Error fetching next available slot: {e}")
            return SlotLookup.technical_error(e)

        if spot_id is None:
            return SlotLookup.not_found()
        return SlotLookup.ok(spot_id)

    async def update_parking(self, spot: ParkingSpot, expected_available: Optional[bool] = None) -> bool:
        """Persist ``spot.available``.

        With ``expected_available`` the row is only written when its current
        flag still matches, so two callers cannot claim the same spot.
        """
        stmt = update(ParkingSpotRecord).where(ParkingSpotRecord.id == spot.id)
        if expected_available is not None:
            stmt = stmt.where(ParkingSpotRecord.available == expected_available)
        try:
            result = await self.db.execute(stmt.values(available=spot.available))
            await self.db.flush()
        except SQLAlchemyError as e:
            logger.error(f"Error updating parking spot {spot.id}: {e}")
            return False
        return result.rowcount == 1

    async def count_available(self, parking_type: ParkingType) -> int:
        stmt = select(func.count(ParkingSpotRecord.id)).where(
            ParkingSpotRecord.parking_type == parking_type,
            ParkingSpotRecord.available == True
        )
        result = await _query(self.db, stmt, f"counting available {parking_type.name} spots")
        return result.scalar_one()

    async def seed(self, spots):
        added = 0
        try:
            for spot in spots:
                if await self.db.get(ParkingSpotRecord, spot.id) is None:
                    self.db.add(ParkingSpotRecord(
                        id=spot.id,
                        parking_type=spot.parking_type,
                        available=spot.available
                    ))
                    added += 1
            await self.db.flush()
        except SQLAlchemyError as e:
            logger.error(f"Error provisioning parking spots: {e}")
            raise StoreError("Error provisioning parking spots") from e
        return added


class TicketStore:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_ticket(self, vehicle_reg_number: str) -> Optional[Ticket]:
        """Open ticket of the vehicle, or None if it is not inside.

        A failing query raises ``StoreError`` so that callers can tell a
        broken store from a vehicle that never came in.
        """
        stmt = select(TicketRecord).where(
            TicketRecord.vehicle_reg_number == vehicle_reg_number,
            TicketRecord.out_time.is_(None)
        ).order_by(TicketRecord.in_time.desc()).limit(1)
        result = await _query(self.db, stmt, f"fetching ticket for {vehicle_reg_number}")
        record = result.scalars().first()
        return _to_ticket(record) if record else None

    async def get_last_ticket(self, vehicle_reg_number: str) -> Optional[Ticket]:
        stmt = (
            select(TicketRecord)
            .where(TicketRecord.vehicle_reg_number == vehicle_reg_number)
            .order_by(TicketRecord.in_time.desc(), TicketRecord.id.desc())
            .limit(1)
        )
        result = await _query(self.db, stmt, f"fetching last ticket for {vehicle_reg_number}")
        record = result.scalars().first()
        return _to_ticket(record) if record else None

    async def save_ticket(self, ticket: Ticket) -> bool:
        record = TicketRecord(
            parking_number=ticket.parking_spot.id,
            vehicle_reg_number=ticket.vehicle_reg_number,
            price=ticket.price,
            in_time=ticket.in_time,
            out_time=ticket.out_time
        )
        try:
            self.db.add(record)
            await self.db.flush()
        except SQLAlchemyError as e:
            logger.error(f"Error saving ticket for {ticket.vehicle_reg_number}: {e}")
            return False
        ticket.id = record.id
        return True

    async def update_ticket(self, ticket: Ticket) -> bool:
        """Close an open ticket; a ticket that is already closed is left alone."""
        try:
            result = await self.db.execute(
                update(TicketRecord)
                .where(TicketRecord.id == ticket.id, TicketRecord.out_time.is_(None))
                .values(price=ticket.price, out_time=ticket.out_time)
            )
            await self.db.flush()
        except SQLAlchemyError as e:
            logger.error(f"Error updating ticket {ticket.id}: {e}")
            return False
        return result.rowcount == 1

    async def get_nb_ticket(self, vehicle_reg_number: str) -> int:
        stmt = select(func.count(TicketRecord.id)).where(
            TicketRecord.vehicle_reg_number == vehicle_reg_number
        )
        result = await _query(self.db, stmt, f"counting tickets for {vehicle_reg_number}")
        return result.scalar_one()
