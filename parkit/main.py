import asyncio
import logging

import uvicorn
from fastapi import Depends, FastAPI, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.status import (
    HTTP_400_BAD_REQUEST,
    HTTP_404_NOT_FOUND,
    HTTP_409_CONFLICT,
    HTTP_422_UNPROCESSABLE_ENTITY,
    HTTP_500_INTERNAL_SERVER_ERROR,
    HTTP_503_SERVICE_UNAVAILABLE,
)

from parkit import config
from parkit.config import load_fare_config
from parkit.constants import ParkingType
from parkit.crud import ParkingSpotStore, TicketStore, build_spots
from parkit.database import SessionLocal, get_db, init_db
from parkit.errors import (
    FareCalculationError,
    InvalidSelection,
    NoAvailableSpot,
    StoreError,
    TicketNotFound,
    TicketSaveFailed,
    TicketUpdateFailed,
    VehicleAlreadyParked,
)
from parkit.fare import FareCalculator
from parkit.gate import open_gate
from parkit.input import RequestInputReader
from parkit.schemas import (
    AvailabilityResponse,
    TicketOut,
    VehicleEntryCreate,
    VehicleEntryResponse,
    VehicleExitCreate,
    VehicleExitResponse,
)
from parkit.service import ParkingService, VehicleLocks

logging.basicConfig(level=config.LOG_LEVEL)

app = FastAPI(
    title="Parking Service",
    version="1.0.0"
)

fare_calculator = FareCalculator(load_fare_config())
exit_locks = VehicleLocks()


def build_service(db: AsyncSession, input_reader, messages=None, commit=None):
    return ParkingService(
        input_reader,
        ParkingSpotStore(db),
        TicketStore(db),
        fare_calculator,
        notify=messages.append if messages is not None else None,
        locks=exit_locks,
        commit=commit
    )


@app.on_event("startup")
async def on_startup():
    await init_db()
    async with SessionLocal() as db:
        added = await ParkingSpotStore(db).seed(build_spots(config.CAR_SPOTS, config.BIKE_SPOTS))
        await db.commit()
    logging.info(f"Database ready, {added} parking spots provisioned")


@app.post("/api/v1/sessions/entry/", response_model=VehicleEntryResponse)
async def vehicle_entry(entry: VehicleEntryCreate, db: AsyncSession = Depends(get_db)):
    messages = []
    service = build_service(db, RequestInputReader(entry.plate_number, entry.vehicle_type), messages)
    try:
        receipt = await service.process_incoming_vehicle()
    except (InvalidSelection, VehicleAlreadyParked) as e:
        raise HTTPException(status_code=HTTP_400_BAD_REQUEST, detail=str(e))
    except NoAvailableSpot as e:
        if e.full:
            raise HTTPException(status_code=HTTP_409_CONFLICT, detail="Parking slots might be full")
        raise HTTPException(status_code=HTTP_500_INTERNAL_SERVER_ERROR, detail=str(e))
    except TicketSaveFailed as e:
        raise HTTPException(status_code=HTTP_500_INTERNAL_SERVER_ERROR, detail=str(e))
    except StoreError as e:
        raise HTTPException(status_code=HTTP_503_SERVICE_UNAVAILABLE, detail=str(e))

    asyncio.create_task(open_gate(config.MQTT_ENTRY_TOPIC))

    ticket = receipt.ticket
    return VehicleEntryResponse(
        message=receipt.message,
        plate_number=ticket.vehicle_reg_number,
        parking_spot=ticket.parking_spot.id,
        entry_timestamp=ticket.in_time,
        recurring=receipt.recurring
    )


@app.put("/api/v1/sessions/exit/", response_model=VehicleExitResponse)
async def vehicle_exit(entry: VehicleExitCreate, db: AsyncSession = Depends(get_db)):
    # the closed ticket is committed while the vehicle lock is held
    service = build_service(db, RequestInputReader(entry.plate_number), commit=db.commit)
    try:
        receipt = await service.process_exiting_vehicle(entry.exit_timestamp)
    except TicketNotFound as e:
        raise HTTPException(status_code=HTTP_404_NOT_FOUND, detail=str(e))
    except FareCalculationError as e:
        raise HTTPException(status_code=HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e))
    except TicketUpdateFailed as e:
        raise HTTPException(status_code=HTTP_500_INTERNAL_SERVER_ERROR, detail=str(e))
    except StoreError as e:
        raise HTTPException(status_code=HTTP_503_SERVICE_UNAVAILABLE, detail=str(e))

    asyncio.create_task(open_gate(config.MQTT_EXIT_TOPIC))

    ticket = receipt.ticket
    return VehicleExitResponse(
        message=receipt.message,
        plate_number=ticket.vehicle_reg_number,
        parking_spot=ticket.parking_spot.id,
        exit_timestamp=ticket.out_time,
        fee=ticket.price,
        recurring=receipt.recurring
    )


@app.get("/api/v1/tickets/{plate_number}", response_model=TicketOut)
async def latest_ticket(plate_number: str, db: AsyncSession = Depends(get_db)):
    ticket = await TicketStore(db).get_last_ticket(plate_number)
    if not ticket:
        raise HTTPException(status_code=HTTP_404_NOT_FOUND, detail="No ticket found")

    return TicketOut(
        plate_number=ticket.vehicle_reg_number,
        parking_spot=ticket.parking_spot.id,
        vehicle_type=ticket.parking_spot.parking_type.name,
        entry_timestamp=ticket.in_time,
        exit_timestamp=ticket.out_time,
        fee=ticket.price
    )


@app.get("/api/v1/parking/availability", response_model=AvailabilityResponse)
async def availability(db: AsyncSession = Depends(get_db)):
    store = ParkingSpotStore(db)
    return AvailabilityResponse(
        available={parking_type.name: await store.count_available(parking_type) for parking_type in ParkingType}
    )


if __name__ == "__main__":
    uvicorn.run("parkit.main:app", host="0.0.0.0", port=8000, reload=True)
