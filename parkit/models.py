from sqlalchemy import Boolean, Column, Enum, Float, ForeignKey, Index, Integer, String, TIMESTAMP
from sqlalchemy.orm import relationship

from parkit.constants import ParkingType
from parkit.database import Base


class ParkingSpotRecord(Base):
    __tablename__ = "parking"

    id = Column(Integer, primary_key=True, autoincrement=False)
    parking_type = Column(Enum(ParkingType), nullable=False)
    available = Column(Boolean, nullable=False, default=True)


class TicketRecord(Base):
    __tablename__ = "ticket"

    id = Column(Integer, primary_key=True, autoincrement=True)
    parking_number = Column(Integer, ForeignKey("parking.id"), nullable=False)
    vehicle_reg_number = Column(String(10), nullable=False, index=True)
    price = Column(Float, nullable=True)
    in_time = Column(TIMESTAMP, nullable=False)
    out_time = Column(TIMESTAMP, nullable=True)

    parking_spot = relationship(ParkingSpotRecord, lazy="joined")


# one open ticket per vehicle
Index(
    "uq_ticket_open_vehicle",
    TicketRecord.vehicle_reg_number,
    unique=True,
    sqlite_where=TicketRecord.out_time.is_(None),
    postgresql_where=TicketRecord.out_time.is_(None),
)
