import os
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Mapping

from parkit.constants import ParkingType

BASE_DIR = os.path.dirname(os.path.abspath(__file__))

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite+aiosqlite:///./parkit.db")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

CAR_SPOTS = int(os.getenv("CAR_SPOTS", "3"))
BIKE_SPOTS = int(os.getenv("BIKE_SPOTS", "2"))

# Gate barrier broker
CA_CERT = os.getenv("MQTT_CA_CERT", os.path.join(BASE_DIR, "mqtt", "iot_mqtt_ca.crt"))
CLIENT_CERT = os.getenv("MQTT_CLIENT_CERT", os.path.join(BASE_DIR, "mqtt", "iot_mqtt_client.crt"))
CLIENT_KEY = os.getenv("MQTT_CLIENT_KEY", os.path.join(BASE_DIR, "mqtt", "iot_mqtt_client.key"))
MQTT_HOST = os.getenv("MQTT_HOST")
MQTT_PORT = int(os.getenv("MQTT_PORT", "1883"))
MQTT_TLS_PORT = int(os.getenv("MQTT_TLS_PORT", "8883"))
MQTT_USERNAME = os.getenv("MQTT_USERNAME")
MQTT_PASSWORD = os.getenv("MQTT_PASSWORD")
MQTT_ENTRY_TOPIC = os.getenv("MQTT_ENTRY_TOPIC", "parking/gate/entry")
MQTT_EXIT_TOPIC = os.getenv("MQTT_EXIT_TOPIC", "parking/gate/exit")
MQTT_TLS_ENABLED = os.getenv("MQTT_TLS_ENABLED", "true").lower() == "true"

DEFAULT_RATES = {
    ParkingType.CAR: 1.5,
    ParkingType.BIKE: 1.0,
}


@dataclass(frozen=True)
class FareConfig:
    """Hourly rates and fare rules handed to the fare calculator."""

    rates: Mapping[ParkingType, float] = field(default_factory=lambda: dict(DEFAULT_RATES))
    free_minutes: float = 30
    recurring_discount: float = 0.05

    def __post_init__(self):
        if self.free_minutes < 0:
            raise ValueError("free_minutes cannot be negative")
        if not 0 <= self.recurring_discount < 1:
            raise ValueError("recurring_discount must be in [0, 1)")
        for parking_type, rate in self.rates.items():
            if rate < 0:
                raise ValueError(f"Rate for {parking_type} cannot be negative")
        object.__setattr__(self, "rates", MappingProxyType(dict(self.rates)))

    @property
    def free_hours(self) -> float:
        return self.free_minutes / 60


def load_fare_config() -> FareConfig:
    return FareConfig(
        rates={
            ParkingType.CAR: float(os.getenv("CAR_RATE_PER_HOUR", DEFAULT_RATES[ParkingType.CAR])),
            ParkingType.BIKE: float(os.getenv("BIKE_RATE_PER_HOUR", DEFAULT_RATES[ParkingType.BIKE])),
        },
        free_minutes=float(os.getenv("FREE_PARKING_MINUTES", "30")),
        recurring_discount=float(os.getenv("RECURRING_DISCOUNT", "0.05")),
    )
