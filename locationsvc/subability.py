"""Bookkeeping shared by the location sub-abilities (GNSS, network, passive)."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable

from .ipc import (
    LOCATION_GNSS_SA_ID,
    LOCATION_NETWORK_LOCATING_SA_ID,
    LOCATION_NOPOWER_LOCATING_SA_ID,
    Parcel,
    RemoteObject,
    ServiceRegistry,
)
from .request import GNSS_ABILITY, NETWORK_ABILITY, PASSIVE_ABILITY, Location
from .work_record import WorkRecord

REPLY_NO_EXCEPTION = 0
SELF_REQUEST_NAME = "ohos"

_ABILITY_SA_IDS = {
    GNSS_ABILITY: LOCATION_GNSS_SA_ID,
    NETWORK_ABILITY: LOCATION_NETWORK_LOCATING_SA_ID,
    PASSIVE_ABILITY: LOCATION_NOPOWER_LOCATING_SA_ID,
}


class RemoteServiceError(Exception):
    """Raised when a reply from the next level service carries an exception."""

    def __init__(self, code: int, message: str) -> None:
        super().__init__(f"exception {code} in next level service: {message}")
        self.code = code
        self.message = message


@dataclass(eq=False)
class LocationCallbackStub:
    """Receiver of locations for one application served by an ability."""

    ability_name: str


Recorder = Callable[[LocationCallbackStub, WorkRecord, bool], None]


class SubAbility:
    """Keeps track of which applications an ability is serving."""

    def __init__(
        self,
        name: str,
        registry: ServiceRegistry | None = None,
        recorder: Recorder | None = None,
    ) -> None:
        self.name = name
        self.interval = 0
        self.new_record = WorkRecord()
        self.last_record = WorkRecord()
        self._callbacks: dict[int, LocationCallbackStub] = {}
        self._registry = registry
        self._recorder = recorder
        self._log = logging.getLogger(f"{__name__}.{name}")

    def location_request(self, interval: int, work_record: WorkRecord) -> None:
        self.interval = interval
        self.new_record.clear()
        self.new_record.set(work_record)
        self.handle_refresh_requirements()

    def handle_refresh_requirements(self) -> None:
        self._log.info("refresh requirements")
        self._handle_remove_record(self.new_record)
        self._handle_add_record(self.new_record)
        self.last_record.clear()
        self.last_record.set(self.new_record)

    def _handle_remove_record(self, new_record: WorkRecord) -> None:
        for uid, pid, name in list(self.last_record):
            if new_record.find(uid, name):
                continue
            removed = self.callback(uid)
            if removed is not None:
                record = WorkRecord(new_record.device_id)
                record.add(uid, pid, name)
                self.request_record(removed, record, False)
            self._callbacks.pop(uid, None)

    def _handle_add_record(self, new_record: WorkRecord) -> None:
        for uid, pid, name in list(new_record):
            if self.last_record.find(uid, name):
                continue
            added = LocationCallbackStub(self.name)
            record = WorkRecord(new_record.device_id)
            record.add(uid, pid, name)
            self.request_record(added, record, True)
            self._callbacks.setdefault(uid, added)

    def callback(self, uid: int) -> LocationCallbackStub | None:
        return self._callbacks.get(uid)

    def cache(self) -> Location | None:
        """The cached location; sub-abilities keep none by default."""
        return None

    def enable(self, state: bool, ability: RemoteObject) -> None:
        """Publish the ability in the registry, or withdraw it."""
        if self._registry is None:
            self._log.error("enable can not get the service registry")
            return
        sa_id = _ABILITY_SA_IDS.get(self.name)
        if sa_id is None:
            raise ValueError(f"unknown ability {self.name!r}")
        if state:
            if self._registry.get(sa_id) is None:
                self._registry.add(sa_id, ability)
                self._log.info("enable %s ability", self.name)
        elif self._registry.get(sa_id) is not None:
            self._registry.remove(sa_id)
            self._log.info("disable %s ability", self.name)

    def handle_self_request(self, pid: int, uid: int, state: bool) -> None:
        records = WorkRecord()
        records.set(self.last_record)
        if state:
            records.add(uid, pid, SELF_REQUEST_NAME)
        else:
            records.remove(uid, pid, SELF_REQUEST_NAME)
        self.location_request(self.interval, records)

    def handle_remote_request(self, state: bool, device_id: str) -> None:
        self.handle_refresh_requirements()

    def request_record(
        self, callback: LocationCallbackStub, work_record: WorkRecord, is_added: bool
    ) -> None:
        """Start or stop serving the applications of a record."""
        if self._recorder is not None:
            self._recorder(callback, work_record, is_added)
        else:
            self._log.debug("request record %s added=%s", work_record, is_added)

    def write_info_to_parcel(self, work_record: WorkRecord, parcel: Parcel) -> None:
        info = f"zlocation:{work_record.pid(0)}:{work_record.uid(0)}:{work_record.name(0)}"
        parcel.write_string16(info)

    def parse_reply_info(self, parcel: Parcel) -> None:
        """Read a reply header; raise RemoteServiceError if it reports an exception."""
        header = parcel.read_int32()
        self._log.debug("get exception reply header: %d", header)
        if header != REPLY_NO_EXCEPTION:
            message = parcel.read_string16()
            self._log.error("exception in next level service: %s", message)
            raise RemoteServiceError(header, message)