"""The locator service: switch state, request handling and report routing."""
from __future__ import annotations

import functools
import logging
import threading
from typing import Any, Callable, Iterable

from .background_proxy import SESSION_START, LocatorBackgroundProxy
from .fusion_controller import FusionController
from .geocoding import GeoRequestForwarder
from .gnss_relay import GnssRelay
from .ipc import (
    GNSS_ABILITY_DESCRIPTOR,
    LOCATION_GNSS_SA_ID,
    LOCATION_NETWORK_LOCATING_SA_ID,
    LOCATION_NOPOWER_LOCATING_SA_ID,
    NETWORK_ABILITY_DESCRIPTOR,
    PASSIVE_ABILITY_DESCRIPTOR,
    MessageOption,
    Parcel,
    RemoteObject,
    ServiceRegistry,
)
from .proxies import SubAbilityCode
from .report_manager import CallbackEvent, ReportManager
from .request import GNSS_ABILITY, NETWORK_ABILITY, PASSIVE_ABILITY, Location, Request, RequestConfig
from .request_manager import RequestManager

logger = logging.getLogger(__name__)

ENABLED = 1
DISABLED = 0
EXCEPTION = -1
REPLY_NO_EXCEPTION = 0
SESSION_STOP = 3
ERROR_SWITCH_UNOPEN = 0x0101

EVENT_UPDATE_SA = 0x0001
EVENT_INIT_REQUEST_MANAGER = 0x0002
EVENT_APPLY_REQUIREMENTS = 0x0003
EVENT_RETRY_REGISTER_ACTION = 0x0004

RETRY_INTERVAL_UNITE = 1.0
RETRY_INTERVAL_2_SECONDS = 2 * RETRY_INTERVAL_UNITE
RETRY_INTERVAL_OF_INIT_REQUEST_MANAGER = 5 * RETRY_INTERVAL_UNITE

_ABILITY_SERVICES = (
    (GNSS_ABILITY, LOCATION_GNSS_SA_ID, GNSS_ABILITY_DESCRIPTOR),
    (NETWORK_ABILITY, LOCATION_NETWORK_LOCATING_SA_ID, NETWORK_ABILITY_DESCRIPTOR),
    (PASSIVE_ABILITY, LOCATION_NOPOWER_LOCATING_SA_ID, PASSIVE_ABILITY_DESCRIPTOR),
)
_DESCRIPTORS = {name: descriptor for name, _, descriptor in _ABILITY_SERVICES}

Scheduler = Callable[[float, Callable[[], None]], None]


def _timer_schedule(delay: float, action: Callable[[], None]) -> None:
    timer = threading.Timer(delay, action)
    timer.daemon = True
    timer.start()


class _MemorySettings:
    """Location switch and privacy confirmations kept in memory."""

    def __init__(self, switch_state: int = DISABLED) -> None:
        self.switch_state = switch_state
        self.privacy: dict[int, bool] = {}

    def get_location_switch_state(self) -> int:
        return self.switch_state

    def set_location_switch_state(self, value: int) -> None:
        self.switch_state = value

    def get_privacy_type_state(self, privacy_type: int) -> bool:
        return self.privacy.get(privacy_type, False)

    def set_privacy_type_state(self, privacy_type: int, is_confirmed: bool) -> None:
        self.privacy[privacy_type] = bool(is_confirmed)


class LocatorAbility:
    """Entry point of the location service."""

    def __init__(
        self,
        registry: ServiceRegistry | None = None,
        settings: Any = None,
        schedule: Scheduler | None = None,
        publish: Callable[[], bool] | None = None,
        subscribe_action: Callable[[], bool] | None = None,
        device_id: str = "",
    ) -> None:
        self.registry = registry if registry is not None else ServiceRegistry()
        self.settings = settings if settings is not None else _MemorySettings()
        self._schedule = schedule or _timer_schedule
        self._publish = publish or (lambda: True)
        self._subscribe_action = subscribe_action or (lambda: True)
        self.device_id = device_id

        self.proxy_map: dict[str, RemoteObject | None] = {}
        self.requests: dict[str, list[Request]] = {
            GNSS_ABILITY: [], NETWORK_ABILITY: [], PASSIVE_ABILITY: [],
        }
        self.receivers: dict[Any, list[Request]] = {}
        self.switch_callbacks: dict[int, Any] = {}

        self.is_enabled = False
        self.running = False
        self.registered = False
        self.is_action_registered = False

        self.fusion = FusionController(self.registry)
        self.request_manager = RequestManager(
            requests=self.requests,
            receivers=self.receivers,
            proxy_map=self.proxy_map,
            fusion=self.fusion,
            apply_requests=self.apply_requests,
            device_id=device_id,
        )
        self.report_manager = ReportManager(
            requests=self.requests,
            fusion=self.fusion,
            on_fix_complete=self._on_fix_complete,
            apply_requests=self.apply_requests,
        )
        self.background_proxy = LocatorBackgroundProxy(
            start_locating=self.request_manager.handle_start_locating,
            stop_locating=self.stop_locating,
            report_location_status=self.report_location_status,
            schedule=self._schedule,
        )
        self.request_manager.background_proxy = self.background_proxy
        self.gnss = GnssRelay(self.proxy_map)
        self.geo = GeoRequestForwarder(self.registry)

    def _post(self, event_id: int, delay: float = 0.0) -> None:
        self._schedule(delay, functools.partial(self.process_event, event_id))

    def _on_fix_complete(self, request: Request) -> None:
        self.request_manager.update_request_record(request, False)

    def on_start(self) -> None:
        if self.running:
            logger.info("locator ability has already started")
            return
        if not self._init():
            logger.error("failed to init locator ability")
            self.on_stop()
            return
        self.running = True
        logger.info("locator ability started")

    def on_stop(self) -> None:
        self.running = False
        self.registered = False
        logger.info("locator ability stopped")

    def _init(self) -> bool:
        if self.registered:
            return True
        if not self._publish():
            logger.error("init add system ability failed")
            return False
        self.init_sa_ability()
        self._post(EVENT_INIT_REQUEST_MANAGER, RETRY_INTERVAL_OF_INIT_REQUEST_MANAGER)
        self._register_action()
        self.registered = True
        return True

    def process_event(self, event_id: int) -> None:
        logger.info("process event: %d", event_id)
        if event_id == EVENT_UPDATE_SA:
            self._update_sa_ability_handler()
        elif event_id == EVENT_RETRY_REGISTER_ACTION:
            self._register_action()
        elif event_id == EVENT_INIT_REQUEST_MANAGER:
            if not self.request_manager.init_system_listeners():
                self._post(EVENT_INIT_REQUEST_MANAGER, RETRY_INTERVAL_OF_INIT_REQUEST_MANAGER)
        elif event_id == EVENT_APPLY_REQUIREMENTS:
            self.request_manager.handle_request()

    def apply_requests(self) -> None:
        self._post(EVENT_APPLY_REQUIREMENTS, RETRY_INTERVAL_UNITE)

    def init_sa_ability(self) -> None:
        """Look the sub-abilities up in the registry and refresh their enable state."""
        for name, sa_id, _ in _ABILITY_SERVICES:
            remote = self.registry.get(sa_id)
            if remote is None:
                logger.info("%s sa is null", name)
                continue
            self.proxy_map.setdefault(name, remote)
        self._update_sa_ability_handler()

    def check_sa_valid(self) -> bool:
        return all(name in self.proxy_map for name, _, _ in _ABILITY_SERVICES)

    def update_sa_ability(self) -> None:
        self._post(EVENT_UPDATE_SA)

    def _update_sa_ability_handler(self) -> None:
        state = self.query_switch_state()
        logger.info("switch state=%d, action registered=%s", state, self.is_action_registered)
        if state == EXCEPTION:
            self._post(EVENT_UPDATE_SA, RETRY_INTERVAL_2_SECONDS)
            return
        current = self.is_enabled
        self.is_enabled = state == ENABLED
        if self.is_enabled == current:
            return
        self.background_proxy.on_sa_state_change(self.is_enabled)
        for name, remote in list(self.proxy_map.items()):
            if remote is None:
                continue
            data = Parcel()
            descriptor = _DESCRIPTORS.get(name)
            if descriptor is not None:
                data.write_interface_token(descriptor)
            data.write_bool(self.is_enabled)
            error = remote.send_request(int(SubAbilityCode.SET_ENABLE), data, Parcel(),
                                        MessageOption())
            logger.debug("enable %s ability, remote result %d", name, error)
        for callback in list(self.switch_callbacks.values()):
            callback.on_switch_change(state)

    def enable_ability(self, is_enabled: bool) -> None:
        if self.is_enabled == is_enabled:
            logger.debug("no need to set location ability, enable: %s", self.is_enabled)
            return
        logger.info("enable ability %s", is_enabled)
        self.settings.set_location_switch_state(ENABLED if is_enabled else DISABLED)
        self.update_sa_ability()
        logger.info("location switch state event: %s", "enable" if is_enabled else "disable")

    def switch_state(self) -> int:
        self.is_enabled = self.query_switch_state() == ENABLED
        return ENABLED if self.is_enabled else DISABLED

    def query_switch_state(self) -> int:
        return self.settings.get_location_switch_state()

    def is_location_privacy_confirmed(self, privacy_type: int) -> bool:
        return bool(self.settings.get_privacy_type_state(privacy_type))

    def set_location_privacy_confirm_status(self, privacy_type: int, is_confirmed: bool) -> None:
        self.settings.set_privacy_type_state(privacy_type, is_confirmed)

    def register_switch_callback(self, callback: Any, uid: int) -> None:
        if callback is None:
            logger.error("register an invalid switch callback")
            return
        self.switch_callbacks[uid] = callback
        logger.debug("after uid %d register, switch callback size %d",
                     uid, len(self.switch_callbacks))

    def unregister_switch_callback(self, callback: Any) -> None:
        if callback is None:
            logger.error("unregister an invalid switch callback")
            return
        uid = next((key for key, value in self.switch_callbacks.items() if value is callback), -1)
        self.switch_callbacks.pop(uid, None)
        logger.debug("after uid %d unregister, switch callback size %d",
                     uid, len(self.switch_callbacks))

    def start_locating(self, request_config: RequestConfig, callback: Any,
                       bundle_name: str, pid: int, uid: int) -> int:
        if not self.is_enabled:
            self.report_error_status(callback, ERROR_SWITCH_UNOPEN)
        if not self.check_sa_valid():
            self.init_sa_ability()
        request = Request(uid=uid, pid=pid, package_name=bundle_name, locator_callback=callback)
        request.set_request_config(request_config)
        logger.info("start locating")
        self.request_manager.handle_start_locating(request)
        self.report_location_status(callback, SESSION_START)
        return REPLY_NO_EXCEPTION

    def stop_locating(self, callback: Any) -> int:
        logger.info("stop locating")
        self.request_manager.handle_stop_locating(callback)
        self.report_location_status(callback, SESSION_STOP)
        return REPLY_NO_EXCEPTION

    def report_location(self, location: Location, ability_name: str) -> int:
        logger.info("start report location")
        if self.report_manager.on_report_location(location, ability_name):
            return REPLY_NO_EXCEPTION
        return EXCEPTION

    def report_location_status(self, callback: Any, result: int) -> int:
        if self.report_manager.report_remote_callback(
                callback, CallbackEvent.RECEIVE_LOCATION_STATUS_EVENT, result):
            return REPLY_NO_EXCEPTION
        return EXCEPTION

    def report_error_status(self, callback: Any, result: int) -> int:
        if self.report_manager.report_remote_callback(
                callback, CallbackEvent.RECEIVE_ERROR_INFO_EVENT, result):
            return REPLY_NO_EXCEPTION
        return EXCEPTION

    def _register_action(self) -> None:
        if self.is_action_registered:
            logger.info("action has already registered")
            return
        self.is_action_registered = bool(self._subscribe_action())
        if self.is_action_registered:
            logger.info("subscribed to locator events")
        else:
            logger.error("failed to subscribe to locator events")

    def dump(self, args: Iterable[str] = ()) -> str:
        """Text describing the state of the location switch."""
        state = self.query_switch_state()
        return f"Location switch state: {'on' if state else 'off'}\n"