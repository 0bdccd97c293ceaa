from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from parkit.constants import ParkingType


def utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_naive_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


@dataclass
class ParkingSpot:
    id: int
    parking_type: ParkingType
    available: bool = True

    def __post_init__(self):
        if self.id <= 0:
            raise ValueError(f"Parking spot id must be positive, got: {self.id}")


@dataclass
class Ticket:
    vehicle_reg_number: str
    parking_spot: ParkingSpot
    in_time: datetime
    out_time: Optional[datetime] = None
    price: Optional[float] = None
    id: Optional[int] = None

    @property
    def is_open(self) -> bool:
        return self.out_time is None
