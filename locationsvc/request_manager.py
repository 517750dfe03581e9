"""Keeps the per-ability request lists and tells the abilities what to serve."""
from __future__ import annotations

import logging
import threading
from typing import Any, Callable, Iterable, MutableMapping

from .fusion_controller import FusionController
from .ipc import RemoteObject
from .proxies import (
    GnssAbilityProxy,
    NetworkAbilityProxy,
    PassiveAbilityProxy,
    SubAbilityProxy,
)
from .request import GNSS_ABILITY, NETWORK_ABILITY, PASSIVE_ABILITY, Request, Scenario
from .work_record import WorkRecord

logger = logging.getLogger(__name__)

_PROXY_TYPES: dict[str, type[SubAbilityProxy]] = {
    GNSS_ABILITY: GnssAbilityProxy,
    NETWORK_ABILITY: NetworkAbilityProxy,
    PASSIVE_ABILITY: PassiveAbilityProxy,
}


class RequestManager:
    """Adds and removes location requests and passes the result to the abilities.

    ``requests`` maps an ability name to its request list, ``receivers`` maps a
    locator callback to the requests made with it and ``proxy_map`` maps an
    ability name to its remote object.
    """

    def __init__(
        self,
        requests: MutableMapping[str, list[Request]] | None = None,
        receivers: MutableMapping[Any, list[Request]] | None = None,
        proxy_map: MutableMapping[str, RemoteObject | None] | None = None,
        fusion: FusionController | None = None,
        background_proxy: Any = None,
        apply_requests: Callable[[], None] | None = None,
        on_session_start: Callable[[Request], None] | None = None,
        device_id: str = "",
    ) -> None:
        if requests is None:
            requests = {GNSS_ABILITY: [], NETWORK_ABILITY: [], PASSIVE_ABILITY: []}
        self.requests = requests
        self.receivers = receivers if receivers is not None else {}
        self.proxy_map = proxy_map if proxy_map is not None else {}
        self.fusion = fusion
        self.background_proxy = background_proxy
        self._apply_requests = apply_requests
        self._on_session_start = on_session_start
        self.device_id = device_id
        self.running_uids: list[int] = []
        self.is_permission_registered = False
        self.is_power_registered = False
        self._lock = threading.Lock()

    def init_system_listeners(self) -> bool:
        logger.info("register permissions change: %s, register suspend listener: %s",
                    self.is_permission_registered, self.is_power_registered)
        return self.is_permission_registered and self.is_power_registered

    def handle_start_locating(self, request: Request) -> None:
        with self._lock:
            if self.restore_request(request):
                self.update_request_record(request, True)
                if self._on_session_start is not None:
                    self._on_session_start(request)
            self.handle_request()

    def restore_request(self, request: Request | None) -> bool:
        """Record a request under its callback; False if an equivalent one exists."""
        if request is None:
            logger.error("new request is empty")
            return False
        request.is_requesting = True
        callback = request.locator_callback
        logger.info("add request: %s", request)
        existing = self.receivers.get(callback)
        if existing is None:
            self.receivers[callback] = [request]
            logger.debug("add new receiver with new callback")
            return True
        new_config = request.request_config
        for old in existing:
            if old is None or old.request_config is None or new_config is None:
                continue
            if new_config.is_same(old.request_config):
                logger.info("find same type request, keep existing configuration")
                return False
        existing.append(request)
        logger.debug("add new receiver with old callback")
        return True

    def update_request_record(self, request: Request, should_insert: bool) -> None:
        names = request.proxy_names()
        if not names:
            logger.error("can not get proxy name according to request configuration")
            return
        for name in names:
            self.update_ability_record(request, name, should_insert)

    def update_ability_record(self, request: Request, ability_name: str,
                              should_insert: bool) -> None:
        request_list = self.requests.get(ability_name)
        if request_list is None:
            logger.error("can not find %s ability request list", ability_name)
            return
        if should_insert:
            request_list.append(request)
            self.running_uids.append(request.uid)
        else:
            kept = [r for r in request_list if r is not request]
            if len(kept) != len(request_list):
                request_list[:] = kept
                self.running_uids = [u for u in self.running_uids if u != request.uid]
        logger.debug("%s ability request size %d", ability_name, len(request_list))

    def handle_stop_locating(self, callback: Any) -> None:
        with self._lock:
            if callback is None:
                logger.error("stop locating but callback is null")
                return
            dead = self.receivers.get(callback)
            if dead is None:
                logger.debug("this callback has no record in receiver map")
                return
            dead = list(dead)
            for request in dead:
                logger.info("remove request: %s", request)
            if not dead:
                return
            self.delete_request_record(dead)
            del self.receivers[callback]
            self.handle_request()

    def delete_request_record(self, requests: Iterable[Request]) -> None:
        for request in requests:
            self.update_request_record(request, False)
            if self.background_proxy is not None:
                self.background_proxy.on_delete_request_record(request)

    def handle_request(self) -> None:
        if not self.proxy_map:
            logger.error("proxy map is empty")
            return
        for ability_name in sorted(self.proxy_map):
            self.handle_ability_request(ability_name)

    def handle_ability_request(self, ability_name: str) -> None:
        request_list = self.requests.get(ability_name)
        if request_list is None:
            logger.error("can not find %s ability request list", ability_name)
            return
        work_record = WorkRecord()
        time_interval = 0
        for request in list(request_list):
            if request is None or not request.is_requesting:
                continue
            work_record.add(request.uid, request.pid, request.package_name)
            config = request.request_config
            if config is None:
                continue
            time_interval = config.time_interval
            request_type = config.scenario
            if request_type == Scenario.UNSET:
                request_type = config.priority
            if self.fusion is not None:
                self.fusion.active_fusion_strategies(request_type)
        logger.debug("%s ability requests (size %d) work record: %s",
                     ability_name, len(request_list), work_record)
        self.proxy_send_location_request(ability_name, work_record, time_interval)

    def proxy_send_location_request(self, ability_name: str, work_record: WorkRecord,
                                    time_interval: int) -> None:
        remote = self.remote_object(ability_name)
        if remote is None:
            return
        work_record.device_id = self.device_id
        proxy_type = _PROXY_TYPES.get(ability_name)
        if proxy_type is not None:
            proxy_type(remote).send_location_request(time_interval, work_record)
        if self.fusion is not None:
            self.fusion.process(ability_name)

    def remote_object(self, ability_name: str) -> RemoteObject | None:
        remote = self.proxy_map.get(ability_name)
        if remote is None:
            logger.error("sa init fail: %s", ability_name)
        return remote

    def _apply(self) -> None:
        if self._apply_requests is not None:
            self._apply_requests()

    def handle_permission_changed(self, uid: int) -> None:
        if self.is_uid_in_processing(uid):
            self._apply()
            if self.background_proxy is not None:
                self.background_proxy.on_permission_changed(uid)

    def handle_power_suspend_changed(self, pid: int, uid: int, flag: int) -> None:
        if not self.is_uid_in_processing(uid):
            return
        if not self.requests:
            logger.error("requests map is empty")
            return
        active = bool(flag)
        for request_list in self.requests.values():
            for request in list(request_list):
                if request.uid != uid or request.pid != pid:
                    continue
                request.is_requesting = active
                if self.background_proxy is not None:
                    self.background_proxy.on_suspend(request, active)
        self._apply()

    def is_uid_in_processing(self, uid: int) -> bool:
        return uid in self.running_uids