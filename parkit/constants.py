from enum import Enum

MILLIS_PER_HOUR = 60 * 60 * 1000


class ParkingType(Enum):
    # values double as the selection codes typed at the gate
    CAR = 1
    BIKE = 2

    @classmethod
    def from_selection(cls, selection):
        try:
            return cls(selection)
        except ValueError:
            return None
