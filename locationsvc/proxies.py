"""Client-side proxies for the GNSS, network and passive location abilities."""
from __future__ import annotations

import enum
import logging
from dataclasses import dataclass, field
from typing import Any, Protocol

from .ipc import (
    GNSS_ABILITY_DESCRIPTOR,
    NETWORK_ABILITY_DESCRIPTOR,
    NO_ERROR,
    PASSIVE_ABILITY_DESCRIPTOR,
    MessageOption,
    Parcel,
    RemoteObject,
)
from .request import Location
from .work_record import WorkRecord

logger = logging.getLogger(__name__)

EXCEPTION = -1


class SubAbilityCode(enum.IntEnum):
    """Request codes understood by the location sub-abilities."""

    SEND_LOCATION_REQUEST = 1
    GET_CACHED_LOCATION = 2
    SET_ENABLE = 3
    SELF_REQUEST = 4
    HANDLE_REMOTE_REQUEST = 5
    REFRESH_REQUESTS = 6
    REG_GNSS_STATUS = 7
    UNREG_GNSS_STATUS = 8
    REG_NMEA = 9
    UNREG_NMEA = 10
    REG_CACHED = 11
    UNREG_CACHED = 12
    GET_CACHED_SIZE = 13
    FLUSH_CACHED = 14
    SEND_COMMANDS = 15
    ADD_FENCE_INFO = 16
    REMOVE_FENCE_INFO = 17
    REPORT_GNSS_SESSION_STATUS = 18
    REPORT_SV = 19
    REPORT_NMEA = 20


@dataclass
class CachedGnssLocationsRequest:
    reporting_period_sec: int = 0
    wake_up_cache_queue_full: bool = False


@dataclass
class LocationCommand:
    scenario: int = 0
    command: str = ""


@dataclass
class Geofence:
    latitude: float = 0.0
    longitude: float = 0.0
    radius: float = 0.0
    expiration: float = 0.0


@dataclass
class GeofenceRequest:
    priority: int = 0
    scenario: int = 0
    geofence: Geofence = field(default_factory=Geofence)

    def marshal(self, parcel: Parcel) -> None:
        parcel.write_int32(self.priority)
        parcel.write_int32(self.scenario)
        parcel.write_double(self.geofence.latitude)
        parcel.write_double(self.geofence.longitude)
        parcel.write_double(self.geofence.radius)
        parcel.write_double(self.geofence.expiration)


class _Marshallable(Protocol):
    def marshal(self, parcel: Parcel) -> None: ...


class SubAbilityProxy:
    """Operations shared by every location sub-ability."""

    DESCRIPTOR = ""

    def __init__(self, remote: RemoteObject | None) -> None:
        self._remote = remote

    def _new_data(self) -> Parcel:
        data = Parcel()
        data.write_interface_token(self.DESCRIPTOR)
        return data

    def _send(
        self,
        code: SubAbilityCode,
        data: Parcel,
        *,
        asynchronous: bool = False,
        reply: Parcel | None = None,
    ) -> int | None:
        """Send a request; None when there is no remote to send it to."""
        if self._remote is None:
            logger.error("%s: remote is null", code.name)
            return None
        flags = MessageOption.TF_ASYNC if asynchronous else MessageOption.TF_SYNC
        error = self._remote.send_request(
            int(code), data, reply if reply is not None else Parcel(), MessageOption(flags)
        )
        logger.debug("%s transact error code = %d", code.name, error)
        return error

    def send_location_request(self, interval: int, work_record: WorkRecord) -> None:
        data = self._new_data()
        data.write_int64(interval)
        work_record.marshal(data)
        self._send(SubAbilityCode.SEND_LOCATION_REQUEST, data)

    def get_cached_location(self) -> Location | None:
        reply = Parcel()
        if self._send(SubAbilityCode.GET_CACHED_LOCATION, self._new_data(), reply=reply) is None:
            return None
        if len(reply) == 0:
            return None
        return Location.unmarshal(reply)

    def set_enable(self, state: bool) -> None:
        data = self._new_data()
        data.write_bool(state)
        self._send(SubAbilityCode.SET_ENABLE, data)


class GnssAbilityProxy(SubAbilityProxy):
    """Client side of the GNSS ability."""

    DESCRIPTOR = GNSS_ABILITY_DESCRIPTOR

    def _send_bool(self, code: SubAbilityCode, state: bool, asynchronous: bool) -> None:
        data = self._new_data()
        data.write_bool(state)
        self._send(code, data, asynchronous=asynchronous)

    def _send_callback(self, code: SubAbilityCode, callback: Any) -> None:
        data = self._new_data()
        data.write_remote_object(callback)
        self._send(code, data, asynchronous=True)

    def remote_request(self, state: bool) -> None:
        self._send_bool(SubAbilityCode.HANDLE_REMOTE_REQUEST, state, asynchronous=True)

    def refresh_requirements(self) -> None:
        self._send(SubAbilityCode.REFRESH_REQUESTS, self._new_data(), asynchronous=True)

    def register_gnss_status_callback(self, callback: Any, uid: int) -> None:
        self._send_callback(SubAbilityCode.REG_GNSS_STATUS, callback)

    def unregister_gnss_status_callback(self, callback: Any) -> None:
        self._send_callback(SubAbilityCode.UNREG_GNSS_STATUS, callback)

    def register_nmea_message_callback(self, callback: Any, uid: int) -> None:
        self._send_callback(SubAbilityCode.REG_NMEA, callback)

    def unregister_nmea_message_callback(self, callback: Any) -> None:
        self._send_callback(SubAbilityCode.UNREG_NMEA, callback)

    def register_cached_callback(self, request: CachedGnssLocationsRequest, callback: Any) -> None:
        data = self._new_data()
        data.write_int32(request.reporting_period_sec)
        data.write_bool(request.wake_up_cache_queue_full)
        data.write_remote_object(callback)
        self._send(SubAbilityCode.REG_CACHED, data, asynchronous=True)

    def unregister_cached_callback(self, callback: Any) -> None:
        self._send_callback(SubAbilityCode.UNREG_CACHED, callback)

    def get_cached_gnss_locations_size(self) -> int:
        """Number of cached locations; -1 without a remote, 0 when the call fails."""
        reply = Parcel()
        error = self._send(SubAbilityCode.GET_CACHED_SIZE, self._new_data(), reply=reply)
        if error is None:
            return EXCEPTION
        return reply.read_int32() if error == NO_ERROR else 0

    def flush_cached_gnss_locations(self) -> None:
        self._send(SubAbilityCode.FLUSH_CACHED, self._new_data())

    def send_command(self, command: LocationCommand) -> None:
        data = self._new_data()
        data.write_int32(command.scenario)
        data.write_string16(command.command)
        self._send(SubAbilityCode.SEND_COMMANDS, data)

    def add_fence(self, request: GeofenceRequest) -> None:
        data = self._new_data()
        request.marshal(data)
        self._send(SubAbilityCode.ADD_FENCE_INFO, data)

    def remove_fence(self, request: GeofenceRequest) -> None:
        data = self._new_data()
        request.marshal(data)
        self._send(SubAbilityCode.REMOVE_FENCE_INFO, data)

    def report_gnss_session_status(self, status: int) -> None:
        data = self._new_data()
        data.write_int32(status)
        self._send(SubAbilityCode.REPORT_GNSS_SESSION_STATUS, data)

    def report_sv(self, sv: _Marshallable | None) -> None:
        data = self._new_data()
        if sv is not None:
            sv.marshal(data)
        self._send(SubAbilityCode.REPORT_SV, data)

    def report_nmea(self, nmea: str) -> None:
        data = self._new_data()
        data.write_string(nmea)
        self._send(SubAbilityCode.REPORT_NMEA, data)


class NetworkAbilityProxy(SubAbilityProxy):
    """Client side of the network ability."""

    DESCRIPTOR = NETWORK_ABILITY_DESCRIPTOR

    def self_request(self, state: bool) -> None:
        data = self._new_data()
        data.write_bool(state)
        self._send(SubAbilityCode.SELF_REQUEST, data)


class PassiveAbilityProxy(SubAbilityProxy):
    """Client side of the passive ability."""

    DESCRIPTOR = PASSIVE_ABILITY_DESCRIPTOR