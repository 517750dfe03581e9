"""Keeps frozen applications supplied with locations while they are in the background.

When an application with background permission is suspended, its request is
taken over by a single low-power request made on behalf of the system. Every
location that request receives is passed on to the callbacks of the
applications being served.
"""
from __future__ import annotations

import logging
import os
import threading
from typing import Any, Callable

from .request import Location, Priority, Request, RequestConfig

logger = logging.getLogger(__name__)

DEFAULT_TIME_INTERVAL = 30 * 60
SUBSCRIBE_TIME = 5
PER_USER_RANGE = 100000
REQUESTS_NUM_MAX = 1
SYSTEM_UID = 1000
UNKNOWN_USER_ID = -1
PROC_NAME = "lbsservice"
SESSION_START = 2

Scheduler = Callable[[float, Callable[[], None]], None]


def _timer_schedule(delay: float, action: Callable[[], None]) -> None:
    timer = threading.Timer(delay, action)
    timer.daemon = True
    timer.start()


class BackgroundLocatorCallback:
    """Locator callback of the proxy request; fans locations out to the served apps."""

    def __init__(self, proxy: LocatorBackgroundProxy) -> None:
        self._proxy = proxy

    def on_location_report(self, location: Location) -> None:
        requests = self._proxy.requests_in_proxy()
        if not requests:
            self._proxy.stop_locator()
            return
        for request in requests:
            if request.locator_callback is not None:
                request.locator_callback.on_location_report(location)

    def on_locating_status_change(self, status: int) -> None:
        """Status changes of the proxy request are not passed on."""

    def on_error_report(self, error_code: int) -> None:
        """Errors of the proxy request are not passed on."""


class LocatorBackgroundProxy:
    """Locates on behalf of suspended applications, one request list per user."""

    def __init__(
        self,
        start_locating: Callable[[Request], None] | None = None,
        stop_locating: Callable[[Any], None] | None = None,
        report_location_status: Callable[[Any, int], None] | None = None,
        check_permission: Callable[[], bool] | None = None,
        subscribe: Callable[[], bool] | None = None,
        schedule: Scheduler | None = None,
        time_interval: int = DEFAULT_TIME_INTERVAL,
        max_requests: int = REQUESTS_NUM_MAX,
    ) -> None:
        self._start_locating = start_locating
        self._stop_locating = stop_locating
        self._report_location_status = report_location_status
        self._check_permission = check_permission or (lambda: True)
        self._subscribe_fn = subscribe or (lambda: True)
        self._schedule = schedule or _timer_schedule
        self.time_interval = time_interval
        self.max_requests = max_requests
        self.feature_switch = True

        self.cur_user_id = 0
        self.requests_list: list[Request] = []
        self.requests_map: dict[int, list[Request]] = {self.cur_user_id: self.requests_list}

        self.is_locating = False
        self.is_waiting = False
        self.proxy_switch = False
        self.is_subscribed = False
        self._list_lock = threading.RLock()
        self._locator_lock = threading.RLock()

        config = RequestConfig()
        config.priority = Priority.LOW_POWER
        config.time_interval = time_interval
        self.callback = BackgroundLocatorCallback(self)
        self.request = Request(uid=SYSTEM_UID, pid=os.getpid(), package_name=PROC_NAME,
                               locator_callback=self.callback)
        self.request.set_request_config(config)
        # subscribing too early fails, so it is delayed
        self._schedule(SUBSCRIBE_TIME, self._subscribe)

    def _subscribe(self) -> None:
        self.is_subscribed = bool(self._subscribe_fn())
        if not self.is_subscribed:
            logger.error("subscribe user switch event error")

    def _check_permission_ok(self) -> bool:
        return bool(self._check_permission())

    def _start_locator_later(self) -> None:
        with self._locator_lock:
            self.is_waiting = False
            if self.is_locating or not self.proxy_switch or not self.requests_list:
                logger.debug("cancel locating")
                return
            self.is_locating = True
            logger.info("real start locating")
            if self._start_locating is not None:
                self._start_locating(self.request)
            if self._report_location_status is not None:
                self._report_location_status(self.callback, SESSION_START)

    def start_locator(self) -> None:
        """Start locating after the configured interval, unless already on the way."""
        with self._locator_lock:
            if self.is_locating or not self.proxy_switch or self.is_waiting:
                return
            self.is_waiting = True
            logger.info("start locating")
            self._schedule(self.time_interval, self._start_locator_later)

    def stop_locator(self) -> None:
        with self._locator_lock:
            if not self.is_locating:
                return
            if self._stop_locating is not None:
                self._stop_locating(self.callback)
            self.is_locating = False
            logger.info("end locating")

    def on_suspend(self, request: Request | None, active: bool) -> None:
        """An app froze (active False) or woke up (active True)."""
        if not self.feature_switch:
            return
        if not self.is_subscribed:
            self._subscribe()
        self._update_list_on_suspend(request, active)
        if not self.requests_list:
            self.stop_locator()
        else:
            self.start_locator()

    def on_permission_changed(self, uid: int) -> None:
        if not self.feature_switch:
            return
        logger.debug("permission changed for uid %d", uid)
        self._update_list_on_permission_changed(uid)
        if not self.requests_list:
            self.stop_locator()

    def on_sa_state_change(self, enable: bool) -> None:
        """The location switch was turned on or off."""
        if self.proxy_switch == enable or not self.feature_switch:
            return
        self.proxy_switch = enable
        if enable and self.requests_list:
            self.start_locator()
        else:
            self.stop_locator()

    def on_delete_request_record(self, request: Request) -> None:
        if not self.feature_switch:
            return
        with self._list_lock:
            if any(r is request for r in self.requests_list):
                self.requests_list[:] = [r for r in self.requests_list if r is not request]
                if not self.requests_list:
                    self.stop_locator()

    def _update_list_on_permission_changed(self, uid: int) -> None:
        with self._list_lock:
            requests = self.requests_map.get(self.user_id(uid))
            if requests is None:
                return
            requests[:] = [r for r in requests
                           if not (r.uid == uid and not self._check_permission_ok())]

    def _update_list_on_suspend(self, request: Request | None, active: bool) -> None:
        with self._list_lock:
            if request is None:
                return
            user_id = self.user_id(request.uid)
            requests = self.requests_map.get(user_id)
            if requests is None:
                return
            if any(r is request for r in requests):
                if active or not self._check_permission_ok():
                    logger.debug("remove request %s from user %d", request, user_id)
                    requests[:] = [r for r in requests if r is not request]
                return
            if request.request_config is None:
                return
            if (not active and self._check_permission_ok()
                    and request.request_config.fix_number == 0
                    and self.check_max_request_num(request.uid, request.package_name)):
                logger.debug("add request %s from user %d", request, user_id)
                requests.append(request)

    def _update_list_on_user_switch(self, user_id: int) -> None:
        with self._list_lock:
            self.requests_map.setdefault(user_id, [])
            self.requests_list = self.requests_map[user_id]
            self.cur_user_id = user_id

    def on_user_switch(self, user_id: int) -> None:
        self._update_list_on_user_switch(user_id)
        if self.requests_list:
            self.start_locator()
        else:
            self.stop_locator()

    def on_user_remove(self, user_id: int) -> None:
        with self._list_lock:
            if self.requests_map.pop(user_id, None) is not None:
                logger.debug("erase request list of user %d", user_id)

    def requests_in_proxy(self) -> list[Request]:
        """A copy of the current user's proxied requests."""
        return list(self.requests_list)

    def is_callback_in_proxy(self, callback: Any) -> bool:
        if not self.feature_switch:
            return False
        return any(r.locator_callback is callback for r in self.requests_list)

    def user_id(self, uid: int) -> int:
        return uid // PER_USER_RANGE

    def check_max_request_num(self, uid: int, package_name: str) -> bool:
        """False once an app already holds the maximum number of proxied requests."""
        requests = self.requests_map.get(self.user_id(uid))
        if requests is None:
            return False
        count = 0
        for request in requests:
            if request.uid == uid and request.package_name == package_name:
                count += 1
                if count >= self.max_requests:
                    return False
        return True