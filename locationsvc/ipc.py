"""In-process message passing between location services.

A :class:`Parcel` is an ordered sequence of typed values. Readers must take
values out in the same order and with the same types as they were written;
anything else raises :class:`ParcelError`.
"""
from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from typing import Any, Callable, ClassVar, Iterator

logger = logging.getLogger(__name__)

INT32_MIN, INT32_MAX = -(2**31), 2**31 - 1
INT64_MIN, INT64_MAX = -(2**63), 2**63 - 1

NO_ERROR = 0

LOCATION_GEO_CONVERT_SA_ID = 2801
LOCATION_LOCATOR_SA_ID = 2802
LOCATION_GNSS_SA_ID = 2803
LOCATION_NETWORK_LOCATING_SA_ID = 2804
LOCATION_NOPOWER_LOCATING_SA_ID = 2805

GEO_CONVERT_DESCRIPTOR = "location.IGeoConvert"
GNSS_ABILITY_DESCRIPTOR = "location.IGnssAbility"
NETWORK_ABILITY_DESCRIPTOR = "location.INetworkAbility"
PASSIVE_ABILITY_DESCRIPTOR = "location.IPassiveAbility"


class ParcelError(Exception):
    """Raised when a parcel is written or read inconsistently."""


@dataclass
class MessageOption:
    """Delivery options of a request."""

    TF_SYNC: ClassVar[int] = 0
    TF_ASYNC: ClassVar[int] = 1

    flags: int = 0


def _checked_int(value: Any, low: int, high: int, kind: str) -> int:
    if not isinstance(value, int):
        raise ParcelError(f"{kind} needs an integer, got {type(value).__name__}")
    if not low <= value <= high:
        raise ParcelError(f"{value} does not fit in {kind}")
    return int(value)


class Parcel:
    """An ordered container of typed values."""

    def __init__(self) -> None:
        self._items: list[tuple[str, Any]] = []
        self._pos = 0

    def __len__(self) -> int:
        """Number of values not read yet."""
        return len(self._items) - self._pos

    def __iter__(self) -> Iterator[tuple[str, Any]]:
        return iter(self._items[self._pos:])

    def _write(self, kind: str, value: Any) -> None:
        self._items.append((kind, value))

    def _read(self, kind: str) -> Any:
        if self._pos >= len(self._items):
            raise ParcelError(f"no {kind} value left to read")
        found, value = self._items[self._pos]
        if found != kind:
            raise ParcelError(f"expected {kind}, found {found}")
        self._pos += 1
        return value

    def write_interface_token(self, token: str) -> None:
        self._write("token", str(token))

    def read_interface_token(self) -> str:
        return self._read("token")

    def write_int32(self, value: int) -> None:
        self._write("int32", _checked_int(value, INT32_MIN, INT32_MAX, "int32"))

    def read_int32(self) -> int:
        return self._read("int32")

    def write_int64(self, value: int) -> None:
        self._write("int64", _checked_int(value, INT64_MIN, INT64_MAX, "int64"))

    def read_int64(self) -> int:
        return self._read("int64")

    def write_bool(self, value: bool) -> None:
        self._write("bool", bool(value))

    def read_bool(self) -> bool:
        return self._read("bool")

    def write_double(self, value: float) -> None:
        self._write("double", float(value))

    def read_double(self) -> float:
        return self._read("double")

    def write_string(self, value: str) -> None:
        if not isinstance(value, str):
            raise ParcelError("string needs a str value")
        self._write("string", value)

    def read_string(self) -> str:
        return self._read("string")

    def write_string16(self, value: str) -> None:
        if not isinstance(value, str):
            raise ParcelError("string16 needs a str value")
        self._write("string16", value)

    def read_string16(self) -> str:
        return self._read("string16")

    def write_remote_object(self, obj: Any) -> None:
        self._write("object", obj)

    def read_remote_object(self) -> Any:
        return self._read("object")


Handler = Callable[[int, Parcel, Parcel, MessageOption], int]


class RemoteObject:
    """An endpoint that handles coded requests with a handler function."""

    def __init__(self, handler: Handler, descriptor: str = "") -> None:
        self._handler = handler
        self.descriptor = descriptor

    def send_request(
        self, code: int, data: Parcel, reply: Parcel, option: MessageOption | None = None
    ) -> int:
        return self._handler(code, data, reply, option or MessageOption())


class ServiceRegistry:
    """Maps system ability ids to their remote objects."""

    def __init__(self) -> None:
        self._services: dict[int, RemoteObject] = {}

    def __contains__(self, sa_id: int) -> bool:
        return sa_id in self._services

    def add(self, sa_id: int, obj: RemoteObject) -> None:
        self._services[sa_id] = obj

    def remove(self, sa_id: int) -> None:
        self._services.pop(sa_id, None)

    def get(self, sa_id: int) -> RemoteObject | None:
        return self._services.get(sa_id)


class GeoCode(enum.IntEnum):
    """Request codes understood by the geocoding service."""

    IS_AVAILABLE = 1
    GET_FROM_COORDINATE = 2
    GET_FROM_LOCATION_NAME_BY_BOUNDARY = 3


class GeoConvertProxy:
    """Client side of the geocoding service."""

    DESCRIPTOR = GEO_CONVERT_DESCRIPTOR

    def __init__(self, remote: RemoteObject) -> None:
        self._remote = remote

    def _send(self, code: GeoCode, data: Parcel, reply: Parcel) -> int:
        data.write_interface_token(self.DESCRIPTOR)
        error = self._remote.send_request(int(code), data, reply, MessageOption())
        logger.info("%s result from server: %d", code.name, error)
        return error

    def is_geo_convert_available(self, data: Parcel, reply: Parcel) -> int:
        return self._send(GeoCode.IS_AVAILABLE, data, reply)

    def get_address_by_coordinate(self, data: Parcel, reply: Parcel) -> int:
        return self._send(GeoCode.GET_FROM_COORDINATE, data, reply)

    def get_address_by_location_name(self, data: Parcel, reply: Parcel) -> int:
        return self._send(GeoCode.GET_FROM_LOCATION_NAME_BY_BOUNDARY, data, reply)