from locationsvc.background_proxy import SESSION_START
from locationsvc.ipc import (
    GNSS_ABILITY_DESCRIPTOR,
    LOCATION_GNSS_SA_ID,
    LOCATION_NETWORK_LOCATING_SA_ID,
    LOCATION_NOPOWER_LOCATING_SA_ID,
    RemoteObject,
    ServiceRegistry,
)
from locationsvc.locator_ability import (
    DISABLED,
    ENABLED,
    ERROR_SWITCH_UNOPEN,
    EVENT_APPLY_REQUIREMENTS,
    EVENT_INIT_REQUEST_MANAGER,
    EVENT_UPDATE_SA,
    EXCEPTION,
    REPLY_NO_EXCEPTION,
    RETRY_INTERVAL_2_SECONDS,
    RETRY_INTERVAL_OF_INIT_REQUEST_MANAGER,
    SESSION_STOP,
    LocatorAbility,
)
from locationsvc.proxies import SubAbilityCode
from locationsvc.request import (
    GNSS_ABILITY,
    NETWORK_ABILITY,
    PASSIVE_ABILITY,
    Location,
    RequestConfig,
)


class Recorder:
    def __init__(self):
        self.calls = []

    def __call__(self, code, data, reply, option):
        self.calls.append((code, list(data)))
        return 0

    def codes(self):
        return [code for code, _ in self.calls]


class Callback:
    def __init__(self):
        self.locations = []
        self.statuses = []
        self.errors = []
        self.switches = []

    def on_location_report(self, location):
        self.locations.append(location)

    def on_locating_status_change(self, status):
        self.statuses.append(status)

    def on_error_report(self, code):
        self.errors.append(code)

    def on_switch_change(self, state):
        self.switches.append(state)


SERVICES = {
    GNSS_ABILITY: LOCATION_GNSS_SA_ID,
    NETWORK_ABILITY: LOCATION_NETWORK_LOCATING_SA_ID,
    PASSIVE_ABILITY: LOCATION_NOPOWER_LOCATING_SA_ID,
}


def make_ability(names=tuple(SERVICES), publish=None):
    registry = ServiceRegistry()
    remotes = {}
    for name in names:
        recorder = Recorder()
        registry.add(SERVICES[name], RemoteObject(recorder))
        remotes[name] = recorder
    scheduled = []
    ability = LocatorAbility(
        registry=registry,
        schedule=lambda delay, action: scheduled.append((delay, action)),
        publish=publish,
    )
    return ability, remotes, scheduled


def event_ids(scheduled):
    return [getattr(action, "args", (None,))[0] for _, action in scheduled]


def test_init_sa_ability_fills_proxy_map():
    ability, _, _ = make_ability()
    assert not ability.check_sa_valid()
    ability.init_sa_ability()
    assert set(ability.proxy_map) == set(SERVICES)
    assert ability.check_sa_valid()


def test_missing_service_is_not_valid():
    ability, _, _ = make_ability(names=(GNSS_ABILITY, NETWORK_ABILITY))
    ability.init_sa_ability()
    assert PASSIVE_ABILITY not in ability.proxy_map
    assert not ability.check_sa_valid()


def test_switch_state_follows_settings():
    ability, _, _ = make_ability()
    assert ability.switch_state() == DISABLED
    ability.settings.set_location_switch_state(ENABLED)
    assert ability.switch_state() == ENABLED
    assert ability.is_enabled is True


def test_enable_ability_updates_sub_abilities_and_callbacks():
    ability, remotes, scheduled = make_ability()
    ability.init_sa_ability()
    callback = Callback()
    ability.register_switch_callback(callback, 20010)
    ability.enable_ability(True)
    assert ability.query_switch_state() == ENABLED
    delay, action = scheduled[-1]
    assert action.args == (EVENT_UPDATE_SA,)
    action()
    assert ability.is_enabled is True
    assert (SubAbilityCode.SET_ENABLE,
            [("token", GNSS_ABILITY_DESCRIPTOR), ("bool", True)]) in remotes[GNSS_ABILITY].calls
    assert SubAbilityCode.SET_ENABLE in remotes[PASSIVE_ABILITY].codes()
    assert callback.switches == [ENABLED]


def test_enable_ability_same_state_does_nothing():
    ability, _, scheduled = make_ability()
    before = len(scheduled)
    ability.enable_ability(False)
    assert len(scheduled) == before
    assert ability.query_switch_state() == DISABLED


def test_update_retries_when_switch_state_unknown():
    ability, _, scheduled = make_ability()
    ability.settings.set_location_switch_state(EXCEPTION)
    ability.process_event(EVENT_UPDATE_SA)
    delay, action = scheduled[-1]
    assert delay == RETRY_INTERVAL_2_SECONDS
    assert action.args == (EVENT_UPDATE_SA,)


def test_unregister_switch_callback():
    ability, _, _ = make_ability()
    first, second = Callback(), Callback()
    ability.register_switch_callback(first, 1)
    ability.register_switch_callback(second, 2)
    ability.unregister_switch_callback(first)
    assert ability.switch_callbacks == {2: second}
    ability.register_switch_callback(None, 3)
    assert 3 not in ability.switch_callbacks


def test_on_start_and_stop():
    ability, _, scheduled = make_ability()
    ability.on_start()
    assert ability.running and ability.registered and ability.is_action_registered
    assert ability.check_sa_valid()
    assert (RETRY_INTERVAL_OF_INIT_REQUEST_MANAGER, EVENT_INIT_REQUEST_MANAGER) in [
        (delay, action.args[0]) for delay, action in scheduled if hasattr(action, "args")
    ]
    ability.on_stop()
    assert not ability.running and not ability.registered


def test_on_start_fails_when_publish_fails():
    ability, _, _ = make_ability(publish=lambda: False)
    ability.on_start()
    assert not ability.running
    assert not ability.registered


def test_init_request_manager_retries_until_listeners_registered():
    ability, _, scheduled = make_ability()
    ability.process_event(EVENT_INIT_REQUEST_MANAGER)
    assert event_ids(scheduled)[-1] == EVENT_INIT_REQUEST_MANAGER
    count = len(scheduled)
    ability.request_manager.is_permission_registered = True
    ability.request_manager.is_power_registered = True
    ability.process_event(EVENT_INIT_REQUEST_MANAGER)
    assert len(scheduled) == count


def test_start_locating_with_switch_off_reports_error():
    ability, remotes, _ = make_ability()
    callback = Callback()
    result = ability.start_locating(RequestConfig(), callback, "com.example.app", 10, 20000)
    assert result == REPLY_NO_EXCEPTION
    assert callback.errors == [ERROR_SWITCH_UNOPEN]
    assert callback.statuses == [SESSION_START]
    assert ability.check_sa_valid()
    gnss_requests = ability.requests[GNSS_ABILITY]
    assert [(r.package_name, r.uid, r.pid) for r in gnss_requests] == [("com.example.app", 20000, 10)]
    assert ability.requests[NETWORK_ABILITY] == gnss_requests
    assert ability.requests[PASSIVE_ABILITY] == []
    assert SubAbilityCode.SEND_LOCATION_REQUEST in remotes[GNSS_ABILITY].codes()


def test_start_locating_with_switch_on_reports_no_error():
    ability, _, _ = make_ability()
    ability.settings.set_location_switch_state(ENABLED)
    ability.switch_state()
    callback = Callback()
    ability.start_locating(RequestConfig(), callback, "com.example.app", 10, 20000)
    assert callback.errors == []


def test_stop_locating_removes_requests():
    ability, _, _ = make_ability()
    callback = Callback()
    ability.start_locating(RequestConfig(), callback, "com.example.app", 10, 20000)
    assert ability.stop_locating(callback) == REPLY_NO_EXCEPTION
    assert callback.statuses == [SESSION_START, SESSION_STOP]
    assert ability.requests[GNSS_ABILITY] == []
    assert ability.receivers == {}


def test_report_location_reaches_callback():
    ability, _, scheduled = make_ability()
    callback = Callback()
    ability.start_locating(RequestConfig(), callback, "com.example.app", 10, 20000)
    location = Location(latitude=1.0, longitude=2.0, time_since_boot=10**9)
    assert ability.report_location(location, GNSS_ABILITY) == REPLY_NO_EXCEPTION
    assert callback.locations == [location]
    assert event_ids(scheduled)[-1] == EVENT_APPLY_REQUIREMENTS


def test_report_location_for_unknown_ability_fails():
    ability, _, _ = make_ability()
    assert ability.report_location(Location(), "bogus") == EXCEPTION


def test_report_statuses_reach_callback():
    ability, _, _ = make_ability()
    callback = Callback()
    assert ability.report_error_status(callback, 5) == REPLY_NO_EXCEPTION
    assert ability.report_location_status(callback, SESSION_STOP) == REPLY_NO_EXCEPTION
    assert callback.errors == [5]
    assert callback.statuses == [SESSION_STOP]


def test_privacy_confirmation_round_trip():
    ability, _, _ = make_ability()
    assert not ability.is_location_privacy_confirmed(1)
    ability.set_location_privacy_confirm_status(1, True)
    assert ability.is_location_privacy_confirmed(1)
    assert not ability.is_location_privacy_confirmed(2)


def test_dump_shows_switch_state():
    ability, _, _ = make_ability()
    assert ability.dump([]) == "Location switch state: off\n"
    ability.settings.set_location_switch_state(ENABLED)
    assert ability.dump([]) == "Location switch state: on\n"