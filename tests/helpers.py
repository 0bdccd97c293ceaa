import unittest
from datetime import datetime, timedelta

from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from parkit.constants import ParkingType
from parkit.crud import ParkingSpotStore, build_spots
from parkit.database import init_db
from parkit.domain import ParkingSpot, Ticket

IN_TIME = datetime(2024, 3, 1, 9, 0, 0)


def make_ticket(hours=None, parking_type=ParkingType.CAR, spot_id=1, reg="ABCDEF", minutes=None):
    ticket = Ticket(reg, ParkingSpot(spot_id, parking_type, False), in_time=IN_TIME)
    if hours is not None or minutes is not None:
        ticket.out_time = IN_TIME + timedelta(hours=hours or 0, minutes=minutes or 0)
    return ticket


class DatabaseTestCase(unittest.IsolatedAsyncioTestCase):
    """Fresh in-memory database with 3 car spots (1-3) and 2 bike spots (4-5)."""

    async def asyncSetUp(self):
        self.engine = create_async_engine("sqlite+aiosqlite://", poolclass=StaticPool)
        await init_db(self.engine)
        self.session_factory = async_sessionmaker(self.engine, expire_on_commit=False)
        async with self.session_factory() as db, db.begin():
            await ParkingSpotStore(db).seed(build_spots(3, 2))

    async def asyncTearDown(self):
        await self.engine.dispose()
