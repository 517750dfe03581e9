"""Decides when the network ability should help the GNSS ability get a fix."""
from __future__ import annotations

import logging

from .ipc import (
    LOCATION_NETWORK_LOCATING_SA_ID,
    NETWORK_ABILITY_DESCRIPTOR,
    MessageOption,
    Parcel,
    ServiceRegistry,
)
from .request import GNSS_ABILITY, Location, Priority, Scenario

logger = logging.getLogger(__name__)

FUSION_DEFAULT_FLAG = 0
REPORT_FUSED_LOCATION_FLAG = 1
QUICK_FIX_FLAG = 1 << 1
NETWORK_SELF_REQUEST = 4


class FusionController:
    """Tracks which fusion strategies are active for the current requests."""

    def __init__(self, registry: ServiceRegistry) -> None:
        self._registry = registry
        self.fused_flag = FUSION_DEFAULT_FLAG
        self.need_reset = True

    def active_fusion_strategies(self, request_type: int) -> None:
        if self.need_reset:
            self.fused_flag = FUSION_DEFAULT_FLAG
            self.need_reset = False
        if request_type in (Scenario.NAVIGATION, Scenario.TRAJECTORY_TRACKING):
            self.fused_flag |= QUICK_FIX_FLAG
            logger.info("enable quick first fix")
        elif request_type == Priority.FAST_FIRST_FIX:
            self.fused_flag |= REPORT_FUSED_LOCATION_FLAG
            logger.info("enable basic fused report")

    def process(self, ability_name: str) -> None:
        self.need_reset = True
        if ability_name != GNSS_ABILITY:
            return
        logger.info("fused flag: %d", self.fused_flag)
        self.request_quick_fix(bool(self.fused_flag & QUICK_FIX_FLAG))

    def fuse_result(self, ability_name: str, location: Location | None) -> None:
        if ability_name == GNSS_ABILITY:
            self.request_quick_fix(False)

    def request_quick_fix(self, state: bool) -> None:
        remote = self._registry.get(LOCATION_NETWORK_LOCATING_SA_ID)
        if remote is None:
            logger.warning("can not get network ability remote object")
            return
        data = Parcel()
        data.write_interface_token(NETWORK_ABILITY_DESCRIPTOR)
        data.write_bool(state)
        remote.send_request(NETWORK_SELF_REQUEST, data, Parcel(), MessageOption())