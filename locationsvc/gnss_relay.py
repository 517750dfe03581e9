"""Relays locator requests to the GNSS ability."""
from __future__ import annotations

import logging
from typing import Any, Mapping

from .ipc import (
    GNSS_ABILITY_DESCRIPTOR,
    NO_ERROR,
    MessageOption,
    Parcel,
    ParcelError,
    RemoteObject,
)
from .proxies import (
    EXCEPTION,
    CachedGnssLocationsRequest,
    GeofenceRequest,
    LocationCommand,
    SubAbilityCode,
)
from .request import GNSS_ABILITY, Location

logger = logging.getLogger(__name__)

REPLY_NO_EXCEPTION = 0
PRECISION = 0.000001
NO_CACHED_RESULT = "get no cached result"

_MISSING = object()


class GnssRelay:
    """Forwards requests to the GNSS ability held in a proxy map."""

    def __init__(self, proxy_map: Mapping[str, RemoteObject | None]) -> None:
        self.proxy_map = proxy_map

    def _gnss(self) -> Any:
        return self.proxy_map.get(GNSS_ABILITY, _MISSING)

    @staticmethod
    def _new_data() -> Parcel:
        data = Parcel()
        data.write_interface_token(GNSS_ABILITY_DESCRIPTOR)
        return data

    def _forward(self, code: SubAbilityCode, data: Parcel) -> int:
        """Send to the GNSS ability if it is known; EXCEPTION if its entry is empty."""
        obj = self._gnss()
        if obj is _MISSING:
            return REPLY_NO_EXCEPTION
        if obj is None:
            return EXCEPTION
        obj.send_request(int(code), data, Parcel(), MessageOption())
        return REPLY_NO_EXCEPTION

    def _forward_callback(self, code: SubAbilityCode, callback: Any) -> None:
        data = self._new_data()
        data.write_remote_object(callback)
        self._forward(code, data)

    def register_gnss_status_callback(self, callback: Any, uid: int) -> None:
        logger.debug("uid is: %d", uid)
        self._forward_callback(SubAbilityCode.REG_GNSS_STATUS, callback)

    def unregister_gnss_status_callback(self, callback: Any) -> None:
        self._forward_callback(SubAbilityCode.UNREG_GNSS_STATUS, callback)

    def register_nmea_message_callback(self, callback: Any, uid: int) -> None:
        self._forward_callback(SubAbilityCode.REG_NMEA, callback)

    def unregister_nmea_message_callback(self, callback: Any) -> None:
        self._forward_callback(SubAbilityCode.UNREG_NMEA, callback)

    def register_cached_location_callback(
        self, request: CachedGnssLocationsRequest, callback: Any, bundle_name: str
    ) -> int:
        data = self._new_data()
        data.write_int32(request.reporting_period_sec)
        data.write_bool(request.wake_up_cache_queue_full)
        data.write_remote_object(callback)
        data.write_string16(bundle_name)
        return self._forward(SubAbilityCode.REG_CACHED, data)

    def unregister_cached_location_callback(self, callback: Any) -> int:
        data = self._new_data()
        data.write_remote_object(callback)
        return self._forward(SubAbilityCode.UNREG_CACHED, data)

    def cached_gnss_locations_size(self) -> int:
        """Number of cached locations; EXCEPTION if the GNSS entry is empty."""
        obj = self._gnss()
        if obj is _MISSING:
            return 0
        if obj is None:
            return EXCEPTION
        reply = Parcel()
        error = obj.send_request(
            int(SubAbilityCode.GET_CACHED_SIZE), self._new_data(), reply, MessageOption()
        )
        return reply.read_int32() if error == NO_ERROR else 0

    def flush_cached_gnss_locations(self) -> None:
        self._forward(SubAbilityCode.FLUSH_CACHED, self._new_data())

    def send_command(self, command: LocationCommand) -> None:
        data = self._new_data()
        data.write_int32(command.scenario)
        data.write_string16(command.command)
        self._forward(SubAbilityCode.SEND_COMMANDS, data)

    def add_fence(self, request: GeofenceRequest) -> None:
        data = self._new_data()
        request.marshal(data)
        self._forward(SubAbilityCode.ADD_FENCE_INFO, data)

    def remove_fence(self, request: GeofenceRequest) -> None:
        data = self._new_data()
        request.marshal(data)
        self._forward(SubAbilityCode.REMOVE_FENCE_INFO, data)

    def cache_location(self, reply: Parcel) -> int:
        """Write the GNSS ability's cached location into reply, with a status header."""
        obj = self._gnss()
        if obj is not _MISSING:
            if obj is None:
                return EXCEPTION
            stub_reply = Parcel()
            obj.send_request(
                int(SubAbilityCode.GET_CACHED_LOCATION), self._new_data(), stub_reply,
                MessageOption(),
            )
            try:
                location = Location.unmarshal(stub_reply)
            except ParcelError:
                location = None
            if (location is not None and abs(location.latitude) > PRECISION
                    and abs(location.longitude) > PRECISION):
                reply.write_int32(REPLY_NO_EXCEPTION)
                location.marshal(reply)
                return REPLY_NO_EXCEPTION
        reply.write_int32(EXCEPTION)
        reply.write_string(NO_CACHED_RESULT)
        logger.info("cache location is null")
        return EXCEPTION

    def report_gnss_session_status(self, status: int) -> int:
        data = self._new_data()
        data.write_int32(status)
        return self._forward(SubAbilityCode.REPORT_GNSS_SESSION_STATUS, data)

    def report_sv(self, sv: Any) -> int:
        data = self._new_data()
        if sv is not None:
            sv.marshal(data)
        return self._forward(SubAbilityCode.REPORT_SV, data)

    def report_nmea(self, nmea: str) -> int:
        data = self._new_data()
        data.write_string(nmea)
        return self._forward(SubAbilityCode.REPORT_NMEA, data)