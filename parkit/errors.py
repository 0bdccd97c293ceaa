class ParkingError(Exception):
    """Base class for every failure surfaced by the parking core."""


class FareCalculationError(ParkingError):
    pass


class InvalidInterval(FareCalculationError):
    pass


class NonPositiveDuration(FareCalculationError):
    pass


class UnknownCategory(FareCalculationError):
    pass


class InvalidSelection(ParkingError):
    pass


class ParkingFull(ParkingError):
    pass


class NoAvailableSpot(ParkingError):
    """No spot could be handed out.

    ``full`` is True when the store legitimately found no free spot and
    False when the lookup itself failed; the original problem is kept as
    ``__cause__``.
    """

    def __init__(self, message, full=False):
        super().__init__(message)
        self.full = full


class TicketNotFound(ParkingError):
    pass


class VehicleAlreadyParked(ParkingError):
    pass


class TicketSaveFailed(ParkingError):
    pass


class TicketUpdateFailed(ParkingError):
    pass


class StoreError(ParkingError):
    """The ticket or spot store could not answer; the driver error is the cause."""
