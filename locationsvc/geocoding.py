"""Forwards geocoding requests from locator clients to the geocoding service."""
from __future__ import annotations

import logging

from .ipc import (
    GEO_CONVERT_DESCRIPTOR,
    LOCATION_GEO_CONVERT_SA_ID,
    GeoCode,
    MessageOption,
    Parcel,
    ServiceRegistry,
)

logger = logging.getLogger(__name__)

EXCEPTION = -1
LOCALE_FIELDS = 4


class GeoRequestForwarder:
    """Repackages client parcels and sends them to the geocoding service."""

    def __init__(self, registry: ServiceRegistry) -> None:
        self._registry = registry

    @staticmethod
    def _new_data() -> Parcel:
        data = Parcel()
        data.write_interface_token(GEO_CONVERT_DESCRIPTOR)
        return data

    @staticmethod
    def _copy_limits_and_locale(source: Parcel, target: Parcel) -> None:
        target.write_int32(source.read_int32())  # max items
        target.write_int32(source.read_int32())  # locale object count
        for _ in range(LOCALE_FIELDS):  # language, country, variant, spare
            target.write_string16(source.read_string16())

    def is_geo_convert_available(self, data: Parcel, reply: Parcel) -> int:
        return self.send_geo_request(GeoCode.IS_AVAILABLE, self._new_data(), reply)

    def address_by_coordinate(self, data: Parcel, reply: Parcel) -> int:
        """Forward latitude, longitude, max items and locale."""
        logger.info("get address by coordinate")
        out = self._new_data()
        out.write_double(data.read_double())  # latitude
        out.write_double(data.read_double())  # longitude
        self._copy_limits_and_locale(data, out)
        return self.send_geo_request(GeoCode.GET_FROM_COORDINATE, out, reply)

    def address_by_location_name(self, data: Parcel, reply: Parcel) -> int:
        """Forward a description, its bounding box, max items and locale."""
        out = self._new_data()
        out.write_string16(data.read_string16())  # description
        for _ in range(4):  # min latitude, min longitude, max latitude, max longitude
            out.write_double(data.read_double())
        self._copy_limits_and_locale(data, out)
        return self.send_geo_request(GeoCode.GET_FROM_LOCATION_NAME_BY_BOUNDARY, out, reply)

    def send_geo_request(self, code: int, data: Parcel, reply: Parcel) -> int:
        """Send to the geocoding service; EXCEPTION if it is not registered."""
        remote = self._registry.get(LOCATION_GEO_CONVERT_SA_ID)
        if remote is None:
            logger.error("geocoding service is not available")
            return EXCEPTION
        return remote.send_request(int(code), data, reply, MessageOption())