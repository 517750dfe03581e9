"""Location requests and their configuration."""
from __future__ import annotations

import dataclasses
import enum
from dataclasses import dataclass
from typing import Any

from .ipc import Parcel

GNSS_ABILITY = "gps"
NETWORK_ABILITY = "network"
PASSIVE_ABILITY = "passive"


class Scenario(enum.IntEnum):
    UNSET = 0x0300
    NAVIGATION = 0x0301
    TRAJECTORY_TRACKING = 0x0302
    CAR_HAILING = 0x0303
    DAILY_LIFE_SERVICE = 0x0304
    NO_POWER = 0x0305


class Priority(enum.IntEnum):
    UNSET = 0x0200
    ACCURACY = 0x0201
    LOW_POWER = 0x0202
    FAST_FIRST_FIX = 0x0203


@dataclass
class Location:
    """A position fix."""

    latitude: float = 0.0
    longitude: float = 0.0
    altitude: float = 0.0
    accuracy: float = 0.0
    speed: float = 0.0
    direction: float = 0.0
    time_stamp: int = 0
    time_since_boot: int = 0

    def marshal(self, parcel: Parcel) -> None:
        for value in (self.latitude, self.longitude, self.altitude,
                      self.accuracy, self.speed, self.direction):
            parcel.write_double(value)
        parcel.write_int64(self.time_stamp)
        parcel.write_int64(self.time_since_boot)

    @classmethod
    def unmarshal(cls, parcel: Parcel) -> Location:
        doubles = [parcel.read_double() for _ in range(6)]
        return cls(*doubles, parcel.read_int64(), parcel.read_int64())


@dataclass
class RequestConfig:
    """How often and how precisely locations are wanted."""

    scenario: int = Scenario.UNSET
    priority: int = Priority.FAST_FIRST_FIX
    time_interval: int = 1
    distance_interval: float = 0.0
    max_accuracy: float = 0.0
    fix_number: int = 0

    def is_same(self, other: RequestConfig) -> bool:
        """Whether both configs ask for the same kind of location."""
        if self.scenario != other.scenario:
            return False
        if self.scenario != Scenario.UNSET:
            return True
        return self.priority == other.priority

    def update(self, other: RequestConfig) -> None:
        for field in dataclasses.fields(self):
            setattr(self, field.name, getattr(other, field.name))

    def __str__(self) -> str:
        return (f"scenario:{int(self.scenario)}, priority:{int(self.priority)}, "
                f"timeInterval:{self.time_interval}, distanceInterval:{self.distance_interval}, "
                f"maxAccuracy:{self.max_accuracy}, fixNumber:{self.fix_number}")


_SCENARIO_PROXIES = {
    Scenario.NAVIGATION: [GNSS_ABILITY],
    Scenario.TRAJECTORY_TRACKING: [GNSS_ABILITY],
    Scenario.CAR_HAILING: [GNSS_ABILITY],
    Scenario.DAILY_LIFE_SERVICE: [NETWORK_ABILITY],
    Scenario.NO_POWER: [PASSIVE_ABILITY],
}

_PRIORITY_PROXIES = {
    Priority.ACCURACY: [GNSS_ABILITY],
    Priority.LOW_POWER: [NETWORK_ABILITY],
    Priority.FAST_FIRST_FIX: [GNSS_ABILITY, NETWORK_ABILITY],
}


class Request:
    """One client's location request. Requests compare by identity."""

    def __init__(self, uid: int = -1, pid: int = -1, package_name: str = "",
                 locator_callback: Any = None) -> None:
        self.uid = uid
        self.pid = pid
        self.package_name = package_name
        self.is_requesting = False
        self.request_config = RequestConfig()
        self.last_location = Location()
        self.locator_callback = locator_callback

    def set_request_config(self, config: RequestConfig) -> None:
        self.request_config.update(config)

    def set_last_location(self, location: Location) -> None:
        last = self.last_location
        last.longitude = location.longitude
        last.altitude = location.altitude
        last.accuracy = location.accuracy
        last.direction = location.speed
        last.latitude = location.direction
        last.time_stamp = location.time_stamp
        last.time_since_boot = location.time_since_boot

    def proxy_names(self) -> list[str]:
        """Names of the abilities that can serve this request."""
        scenario = self.request_config.scenario
        if scenario == Scenario.UNSET:
            return list(_PRIORITY_PROXIES.get(self.request_config.priority, []))
        return list(_SCENARIO_PROXIES.get(scenario, []))

    def __str__(self) -> str:
        return (f"[request config: {self.request_config}] from pid:{self.pid}, "
                f"uid:{self.uid}, {self.package_name}")