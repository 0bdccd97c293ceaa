from datetime import datetime
from typing import Dict, Optional

from pydantic import BaseModel, Field

from parkit.constants import ParkingType


class VehicleEntryCreate(BaseModel):
    plate_number: str = Field(min_length=1, max_length=10)
    vehicle_type: int = ParkingType.CAR.value


class VehicleEntryResponse(BaseModel):
    message: str
    plate_number: str
    parking_spot: int
    entry_timestamp: datetime
    recurring: bool


class VehicleExitCreate(BaseModel):
    plate_number: str = Field(min_length=1, max_length=10)
    exit_timestamp: Optional[datetime] = None


class VehicleExitResponse(BaseModel):
    message: str
    plate_number: str
    parking_spot: int
    exit_timestamp: datetime
    fee: float
    recurring: bool


class TicketOut(BaseModel):
    plate_number: str
    parking_spot: int
    vehicle_type: str
    entry_timestamp: datetime
    exit_timestamp: Optional[datetime] = None
    fee: Optional[float] = None


class AvailabilityResponse(BaseModel):
    available: Dict[str, int]
