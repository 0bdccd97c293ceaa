import asyncio
import logging

from sqlalchemy.exc import SQLAlchemyError

from parkit import config
from parkit.config import load_fare_config
from parkit.crud import ParkingSpotStore, TicketStore, build_spots
from parkit.database import SessionLocal, init_db
from parkit.errors import ParkingError
from parkit.fare import FareCalculator
from parkit.input import ConsoleInputReader
from parkit.service import ParkingService, VehicleLocks

logger = logging.getLogger(__name__)

MENU = """Please select an option. Simply enter the number to choose an action
1 New Vehicle Entering - Allocate Parking Space
2 Vehicle Exiting - Generate Ticket Price
3 Shutdown System"""


class PromptingInputReader(ConsoleInputReader):
    def read_selection(self):
        self.write("Please select vehicle type from menu\n1 CAR\n2 BIKE")
        return super().read_selection()

    def read_vehicle_registration_number(self):
        self.write("Please type the vehicle registration number and press enter key")
        return super().read_vehicle_registration_number()


async def run_shell(session_factory=SessionLocal, fare_calculator=None, read=input, write=print):
    """Menu loop of the gate terminal.

    Each vehicle is handled in its own transaction; a failed operation is
    logged and rolled back and the loop carries on.
    """
    fare_calculator = fare_calculator or FareCalculator(load_fare_config())
    menu_reader = ConsoleInputReader(read, write)
    vehicle_reader = PromptingInputReader(read, write)
    locks = VehicleLocks()

    write("Welcome to Parking System!")
    while True:
        write(MENU)
        option = menu_reader.read_selection()
        if option == 3:
            write("Exiting from the system!")
            return
        if option not in (1, 2):
            write("Unsupported option. Please enter a number corresponding to the provided menu")
            continue

        try:
            async with session_factory() as db, db.begin():
                service = ParkingService(
                    vehicle_reader,
                    ParkingSpotStore(db),
                    TicketStore(db),
                    fare_calculator,
                    notify=write,
                    locks=locks
                )
                if option == 1:
                    await service.process_incoming_vehicle()
                else:
                    await service.process_exiting_vehicle()
        except (ParkingError, ValueError, SQLAlchemyError) as e:
            logger.error(f"Unable to process vehicle: {e}")
            write(f"Unable to process vehicle: {e}")


async def _main():
    await init_db()
    async with SessionLocal() as db, db.begin():
        await ParkingSpotStore(db).seed(build_spots(config.CAR_SPOTS, config.BIKE_SPOTS))
    await run_shell()


def main():
    logging.basicConfig(level=config.LOG_LEVEL)
    asyncio.run(_main())


if __name__ == "__main__":
    main()
