"""Delivers incoming locations to the requests that want them."""
from __future__ import annotations

import enum
import logging
from typing import Any, Callable, Mapping, Sequence

from .fusion_controller import FusionController
from .request import Location, Request

logger = logging.getLogger(__name__)

NANOS_PER_MILLI = 1_000_000
SECOND_TO_MILLISECOND = 1000
MAX_SA_SCHEDULING_JITTER_MS = 200


class CallbackEvent(enum.IntEnum):
    RECEIVE_LOCATION_INFO_EVENT = 1
    RECEIVE_LOCATION_STATUS_EVENT = 2
    RECEIVE_ERROR_INFO_EVENT = 3


class ReportManager:
    """Filters locations per request and passes them to the callbacks."""

    def __init__(
        self,
        requests: Mapping[str, Sequence[Request]] | None = None,
        fusion: FusionController | None = None,
        on_fix_complete: Callable[[Request], None] | None = None,
        apply_requests: Callable[[], None] | None = None,
    ) -> None:
        self.requests = requests if requests is not None else {}
        self._fusion = fusion
        self._on_fix_complete = on_fix_complete
        self._apply_requests = apply_requests

    def on_report_location(self, location: Location, ability_name: str) -> bool:
        """Report a location from an ability; False if no request list exists for it."""
        logger.info("receive location: %s", ability_name)
        if self._fusion is not None:
            self._fusion.fuse_result(ability_name, location)
        request_list = self.requests.get(ability_name)
        if request_list is None:
            return False

        finished: list[Request] = []
        for request in list(request_list):
            if request is None or request.request_config is None or not request.is_requesting:
                continue
            if not (self.report_interval_check(location, request)
                    and self.max_accuracy_check(location, request)):
                continue
            request.set_last_location(location)
            if request.locator_callback is not None:
                request.locator_callback.on_location_report(location)
            if request.request_config.fix_number > 0:
                finished.append(request)

        if self._on_fix_complete is not None:
            for request in finished:
                self._on_fix_complete(request)
        if self._apply_requests is not None:
            self._apply_requests()
        return True

    def report_remote_callback(self, callback: Any, event_type: int, result: int) -> bool:
        """Pass a status or error to a callback; False for other event types."""
        if event_type == CallbackEvent.RECEIVE_LOCATION_STATUS_EVENT:
            callback.on_locating_status_change(result)
        elif event_type == CallbackEvent.RECEIVE_ERROR_INFO_EVENT:
            callback.on_error_report(result)
        else:
            return False
        return True

    def max_accuracy_check(self, location: Location, request: Request | None) -> bool:
        if request is None or request.request_config is None:
            return True
        max_accuracy = request.request_config.max_accuracy
        if location.accuracy > max_accuracy:
            logger.debug("accuracy %f above %f, not reported", location.accuracy, max_accuracy)
            return False
        return True

    def report_interval_check(self, location: Location, request: Request | None) -> bool:
        if request is None or request.last_location is None:
            return True
        min_time = request.request_config.time_interval
        delta = location.time_since_boot - request.last_location.time_since_boot
        delta_ms = abs(delta) // NANOS_PER_MILLI
        if delta < 0:
            delta_ms = -delta_ms
        limit = min_time * SECOND_TO_MILLISECOND - MAX_SA_SCHEDULING_JITTER_MS
        if delta_ms < limit:
            logger.debug("%s: %d ms since last report, not reported", request.package_name, delta_ms)
            return False
        return True