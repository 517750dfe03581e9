from locationsvc.gnss_relay import NO_CACHED_RESULT, REPLY_NO_EXCEPTION, GnssRelay
from locationsvc.ipc import GNSS_ABILITY_DESCRIPTOR, Parcel, RemoteObject
from locationsvc.proxies import (
    EXCEPTION,
    CachedGnssLocationsRequest,
    Geofence,
    GeofenceRequest,
    LocationCommand,
    SubAbilityCode,
)
from locationsvc.request import GNSS_ABILITY, Location

TOKEN = ("token", GNSS_ABILITY_DESCRIPTOR)


def make_remote(result=0, fill=None):
    calls = []

    def handler(code, data, reply, option):
        calls.append((code, list(data)))
        if fill is not None:
            fill(reply)
        return result

    return RemoteObject(handler), calls


def test_register_gnss_status_callback():
    remote, calls = make_remote()
    relay = GnssRelay({GNSS_ABILITY: remote})
    cb = object()
    relay.register_gnss_status_callback(cb, 1000)
    relay.unregister_gnss_status_callback(cb)
    relay.register_nmea_message_callback(cb, 1000)
    relay.unregister_nmea_message_callback(cb)
    assert [c for c, _ in calls] == [
        SubAbilityCode.REG_GNSS_STATUS,
        SubAbilityCode.UNREG_GNSS_STATUS,
        SubAbilityCode.REG_NMEA,
        SubAbilityCode.UNREG_NMEA,
    ]
    assert all(items == [TOKEN, ("object", cb)] for _, items in calls)


def test_register_cached_location_callback():
    remote, calls = make_remote()
    relay = GnssRelay({GNSS_ABILITY: remote})
    cb = object()
    request = CachedGnssLocationsRequest(30, True)
    assert relay.register_cached_location_callback(request, cb, "com.example.app") == REPLY_NO_EXCEPTION
    assert calls == [(SubAbilityCode.REG_CACHED, [
        TOKEN, ("int32", 30), ("bool", True), ("object", cb), ("string16", "com.example.app"),
    ])]


def test_unregister_cached_with_empty_entry():
    relay = GnssRelay({GNSS_ABILITY: None})
    assert relay.unregister_cached_location_callback(object()) == EXCEPTION


def test_missing_gnss_sends_nothing():
    relay = GnssRelay({})
    assert relay.report_nmea("$GPGGA") == REPLY_NO_EXCEPTION
    assert relay.cached_gnss_locations_size() == 0


def test_cached_size():
    remote, _ = make_remote(fill=lambda reply: reply.write_int32(7))
    assert GnssRelay({GNSS_ABILITY: remote}).cached_gnss_locations_size() == 7
    failing, _ = make_remote(result=5)
    assert GnssRelay({GNSS_ABILITY: failing}).cached_gnss_locations_size() == 0
    assert GnssRelay({GNSS_ABILITY: None}).cached_gnss_locations_size() == EXCEPTION


def test_send_command_and_fences():
    remote, calls = make_remote()
    relay = GnssRelay({GNSS_ABILITY: remote})
    relay.send_command(LocationCommand(3, "cmd"))
    fence = GeofenceRequest(1, 2, Geofence(1.5, 2.5, 3.5, 4.5))
    relay.add_fence(fence)
    relay.remove_fence(fence)
    relay.flush_cached_gnss_locations()
    assert calls[0] == (SubAbilityCode.SEND_COMMANDS, [TOKEN, ("int32", 3), ("string16", "cmd")])
    expected_fence = [TOKEN, ("int32", 1), ("int32", 2), ("double", 1.5),
                      ("double", 2.5), ("double", 3.5), ("double", 4.5)]
    assert calls[1] == (SubAbilityCode.ADD_FENCE_INFO, expected_fence)
    assert calls[2] == (SubAbilityCode.REMOVE_FENCE_INFO, expected_fence)
    assert calls[3] == (SubAbilityCode.FLUSH_CACHED, [TOKEN])


def test_reports():
    remote, calls = make_remote()
    relay = GnssRelay({GNSS_ABILITY: remote})
    assert relay.report_gnss_session_status(2) == REPLY_NO_EXCEPTION
    assert relay.report_sv(None) == REPLY_NO_EXCEPTION
    assert relay.report_nmea("$GPGGA") == REPLY_NO_EXCEPTION
    assert calls == [
        (SubAbilityCode.REPORT_GNSS_SESSION_STATUS, [TOKEN, ("int32", 2)]),
        (SubAbilityCode.REPORT_SV, [TOKEN]),
        (SubAbilityCode.REPORT_NMEA, [TOKEN, ("string", "$GPGGA")]),
    ]


def test_report_sv_marshals():
    remote, calls = make_remote()
    location = Location(latitude=1.5)
    GnssRelay({GNSS_ABILITY: remote}).report_sv(location)
    parcel = Parcel()
    location.marshal(parcel)
    assert calls[0][1] == [TOKEN] + list(parcel)


def test_cache_location_found():
    location = Location(latitude=1.5, longitude=2.5, accuracy=3.0)
    remote, calls = make_remote(fill=location.marshal)
    reply = Parcel()
    assert GnssRelay({GNSS_ABILITY: remote}).cache_location(reply) == REPLY_NO_EXCEPTION
    assert calls[0] == (SubAbilityCode.GET_CACHED_LOCATION, [TOKEN])
    assert reply.read_int32() == REPLY_NO_EXCEPTION
    assert Location.unmarshal(reply) == location


def test_cache_location_zero_position():
    remote, _ = make_remote(fill=Location(latitude=1.5).marshal)
    reply = Parcel()
    assert GnssRelay({GNSS_ABILITY: remote}).cache_location(reply) == EXCEPTION
    assert reply.read_int32() == EXCEPTION
    assert reply.read_string() == NO_CACHED_RESULT


def test_cache_location_empty_reply():
    remote, _ = make_remote()
    reply = Parcel()
    assert GnssRelay({GNSS_ABILITY: remote}).cache_location(reply) == EXCEPTION
    assert reply.read_int32() == EXCEPTION
    assert reply.read_string() == NO_CACHED_RESULT


def test_cache_location_empty_entry_writes_nothing():
    reply = Parcel()
    assert GnssRelay({GNSS_ABILITY: None}).cache_location(reply) == EXCEPTION
    assert len(reply) == 0