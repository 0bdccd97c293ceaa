import logging
from typing import Protocol

logger = logging.getLogger(__name__)


class InputReader(Protocol):
    def read_selection(self) -> int:
        ...

    def read_vehicle_registration_number(self) -> str:
        ...


class ConsoleInputReader:
    def __init__(self, read=input, write=print):
        self.read = read
        self.write = write

    def read_selection(self):
        try:
            return int(self.read().strip())
        except ValueError:
            logger.error("Error while reading user input from shell")
            self.write("Error reading input. Please enter valid number for proceeding further")
            return -1

    def read_vehicle_registration_number(self):
        vehicle_reg_number = self.read().strip()
        if not vehicle_reg_number:
            raise ValueError("Invalid input provided")
        return vehicle_reg_number


class RequestInputReader:
    """Answers the service's questions from an already parsed API request."""

    def __init__(self, plate_number, selection=-1):
        self.plate_number = plate_number
        self.selection = selection

    def read_selection(self):
        return self.selection

    def read_vehicle_registration_number(self):
        return self.plate_number
