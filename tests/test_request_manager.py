import pytest

from locationsvc.fusion_controller import QUICK_FIX_FLAG, NETWORK_SELF_REQUEST, FusionController
from locationsvc.ipc import (
    GNSS_ABILITY_DESCRIPTOR,
    LOCATION_NETWORK_LOCATING_SA_ID,
    Parcel,
    RemoteObject,
    ServiceRegistry,
)
from locationsvc.proxies import SubAbilityCode
from locationsvc.request import (
    GNSS_ABILITY,
    NETWORK_ABILITY,
    PASSIVE_ABILITY,
    Priority,
    Request,
    RequestConfig,
    Scenario,
)
from locationsvc.request_manager import RequestManager
from locationsvc.work_record import WorkRecord


class Recorder:
    def __init__(self):
        self.calls = []

    def __call__(self, code, data, reply, option):
        self.calls.append((code, data))
        return 0


class FakeBackground:
    def __init__(self):
        self.deleted = []
        self.permission = []
        self.suspended = []

    def on_delete_request_record(self, request):
        self.deleted.append(request)

    def on_permission_changed(self, uid):
        self.permission.append(uid)

    def on_suspend(self, request, active):
        self.suspended.append((request, active))


@pytest.fixture
def env():
    recorders = {name: Recorder() for name in (GNSS_ABILITY, NETWORK_ABILITY, PASSIVE_ABILITY)}
    proxy_map = {name: RemoteObject(rec) for name, rec in recorders.items()}
    registry = ServiceRegistry()
    network_rec = Recorder()
    registry.add(LOCATION_NETWORK_LOCATING_SA_ID, RemoteObject(network_rec))
    fusion = FusionController(registry)
    background = FakeBackground()
    applied = []
    manager = RequestManager(
        proxy_map=proxy_map,
        fusion=fusion,
        background_proxy=background,
        apply_requests=lambda: applied.append(True),
        device_id="device-a",
    )
    return manager, recorders, network_rec, fusion, background, applied


def make_request(uid=10, pid=20, name="app.one", scenario=Scenario.NAVIGATION,
                 priority=Priority.FAST_FIRST_FIX, callback=None, interval=5):
    request = Request(uid=uid, pid=pid, package_name=name,
                      locator_callback=callback if callback is not None else object())
    request.set_request_config(RequestConfig(scenario=scenario, priority=priority,
                                             time_interval=interval))
    return request


def test_init_system_listeners_false_by_default(env):
    manager = env[0]
    assert manager.init_system_listeners() is False
    manager.is_permission_registered = True
    manager.is_power_registered = True
    assert manager.init_system_listeners() is True


def test_start_locating_records_and_sends(env):
    manager, recorders, _, _, _, _ = env
    request = make_request()
    manager.handle_start_locating(request)
    assert manager.requests[GNSS_ABILITY] == [request]
    assert manager.requests[NETWORK_ABILITY] == []
    assert manager.receivers[request.locator_callback] == [request]
    assert manager.is_uid_in_processing(10)
    assert request.is_requesting is True

    code, data = recorders[GNSS_ABILITY].calls[-1]
    assert code == SubAbilityCode.SEND_LOCATION_REQUEST
    assert data.read_interface_token() == GNSS_ABILITY_DESCRIPTOR
    assert data.read_int64() == 5
    record = WorkRecord.unmarshal(data)
    assert list(record) == [(10, 20, "app.one")]
    assert record.device_id == "device-a"


def test_navigation_enables_quick_fix(env):
    manager, _, network_rec, fusion, _, _ = env
    manager.handle_start_locating(make_request())
    assert fusion.fused_flag & QUICK_FIX_FLAG
    assert fusion.need_reset is True
    codes = [code for code, _ in network_rec.calls]
    assert NETWORK_SELF_REQUEST in codes
    quick_fix_data = network_rec.calls[codes.index(NETWORK_SELF_REQUEST)][1]
    quick_fix_data.read_interface_token()
    assert quick_fix_data.read_bool() is True


def test_same_config_same_callback_not_added_again(env):
    manager = env[0]
    callback = object()
    first = make_request(callback=callback)
    second = make_request(callback=callback)
    assert manager.restore_request(first) is True
    assert manager.restore_request(second) is False
    assert manager.receivers[callback] == [first]


def test_different_config_same_callback_added(env):
    manager = env[0]
    callback = object()
    first = make_request(callback=callback)
    second = make_request(callback=callback, scenario=Scenario.DAILY_LIFE_SERVICE)
    assert manager.restore_request(first) is True
    assert manager.restore_request(second) is True
    assert manager.receivers[callback] == [first, second]


def test_restore_none_returns_false(env):
    assert env[0].restore_request(None) is False


def test_stop_locating_removes_everything(env):
    manager, _, _, _, background, _ = env
    request = make_request(scenario=Scenario.UNSET, priority=Priority.FAST_FIRST_FIX)
    manager.handle_start_locating(request)
    assert manager.requests[GNSS_ABILITY] == [request]
    assert manager.requests[NETWORK_ABILITY] == [request]

    manager.handle_stop_locating(request.locator_callback)
    assert manager.requests[GNSS_ABILITY] == []
    assert manager.requests[NETWORK_ABILITY] == []
    assert request.locator_callback not in manager.receivers
    assert not manager.is_uid_in_processing(request.uid)
    assert background.deleted == [request]


def test_stop_unknown_callback_keeps_state(env):
    manager = env[0]
    request = make_request()
    manager.handle_start_locating(request)
    manager.handle_stop_locating(object())
    manager.handle_stop_locating(None)
    assert manager.requests[GNSS_ABILITY] == [request]


def test_request_without_proxy_is_not_recorded(env):
    manager = env[0]
    request = make_request(scenario=Scenario.UNSET, priority=Priority.UNSET)
    manager.update_request_record(request, True)
    assert all(not lst for lst in manager.requests.values())
    assert manager.running_uids == []


def test_update_ability_record_unknown_ability(env):
    manager = env[0]
    manager.update_ability_record(make_request(), "unknown", True)
    assert manager.running_uids == []


def test_handle_request_skips_inactive(env):
    manager, recorders, _, _, _, _ = env
    request = make_request()
    manager.update_request_record(request, True)
    request.is_requesting = False
    manager.handle_ability_request(GNSS_ABILITY)
    _, data = recorders[GNSS_ABILITY].calls[-1]
    data.read_interface_token()
    assert data.read_int64() == 0
    assert WorkRecord.unmarshal(data).is_empty()


def test_handle_request_with_empty_proxy_map_sends_nothing():
    manager = RequestManager()
    manager.handle_request()
    assert manager.remote_object(GNSS_ABILITY) is None


def test_power_suspend_changes_requesting(env):
    manager, _, _, _, background, applied = env
    request = make_request()
    manager.handle_start_locating(request)
    manager.handle_power_suspend_changed(20, 10, 0)
    assert request.is_requesting is False
    assert background.suspended == [(request, False)]
    assert applied == [True]


def test_power_suspend_ignores_unknown_uid(env):
    manager, _, _, _, background, applied = env
    request = make_request()
    manager.handle_start_locating(request)
    manager.handle_power_suspend_changed(20, 99, 0)
    assert request.is_requesting is True
    assert background.suspended == []
    assert applied == []


def test_permission_changed_only_for_running_uid(env):
    manager, _, _, _, background, applied = env
    manager.handle_permission_changed(10)
    assert applied == []
    manager.handle_start_locating(make_request())
    manager.handle_permission_changed(10)
    assert applied == [True]
    assert background.permission == [10]


def test_session_start_hook_called_once_for_new_request():
    started = []
    manager = RequestManager(on_session_start=started.append)
    callback = object()
    first = make_request(callback=callback)
    manager.handle_start_locating(first)
    manager.handle_start_locating(make_request(callback=callback))
    assert started == [first]