# locationsvc

`locationsvc` is the core of a location service. It keeps track of which
applications are asking for positions, decides which provider (GNSS, network
or passive) serves each request, sends the resulting work to those providers
through a small in-process message-parcel model, filters reported fixes and
passes them to the requesting callbacks, and keeps suspended applications
supplied with locations through a background proxy.

It is a library with no third-party dependencies. There is no command-line
program; you use it from Python.

## Modules

| Module | Contents |
| --- | --- |
| `locationsvc.ipc` | `Parcel` (ordered typed values), `ParcelError`, `MessageOption`, `RemoteObject` (a handler behind `send_request`), `ServiceRegistry` (ability id → remote object), `GeoCode` and `GeoConvertProxy` |
| `locationsvc.work_record` | `WorkRecord`, the ordered (uid, pid, package name) entries plus a device id sent to a provider |
| `locationsvc.request` | `Scenario`, `Priority`, `Location`, `RequestConfig` and `Request`, including `Request.proxy_names()` |
| `locationsvc.fusion_controller` | `FusionController`, which turns on quick first fix and fused reporting and asks the network provider for help |
| `locationsvc.report_manager` | `CallbackEvent` and `ReportManager`, which checks interval and accuracy before passing a fix to callbacks |
| `locationsvc.proxies` | `SubAbilityCode`, `CachedGnssLocationsRequest`, `LocationCommand`, `Geofence`, `GeofenceRequest` and the client proxies `GnssAbilityProxy`, `NetworkAbilityProxy`, `PassiveAbilityProxy` |
| `locationsvc.subability` | `SubAbility`, the provider-side bookkeeping of added and removed work-record entries; `LocationCallbackStub`; `RemoteServiceError` |
| `locationsvc.gnss_relay` | `GnssRelay`, which forwards GNSS-only calls (status and NMEA callbacks, cached fixes, commands, geofences, reports) |
| `locationsvc.request_manager` | `RequestManager`, which stores requests per provider and per callback, starts and stops them and sends work records to the providers |
| `locationsvc.background_proxy` | `LocatorBackgroundProxy` and `BackgroundLocatorCallback`, which keep locating for frozen applications |
| `locationsvc.geocoding` | `GeoRequestForwarder`, which repackages geocoding requests and sends them to the geocoding service in the registry |
| `locationsvc.locator_ability` | `LocatorAbility`, the service itself: switch state, switch callbacks, privacy confirmations, start and stop locating, report routing and `dump()` |

## Examples

Parcels carry typed values in order and must be read back in the same order
and with the same types; anything else raises `ParcelError`:

```python
from locationsvc.ipc import Parcel, ParcelError

parcel = Parcel()
parcel.write_int32(42)
parcel.write_string("gnss")
parcel.write_bool(True)

assert parcel.read_int32() == 42
assert parcel.read_string() == "gnss"
assert parcel.read_bool() is True

try:
    parcel.read_int32()
except ParcelError:
    pass  # nothing left to read
```

A work record keeps one entry per (uid, package name); adding the same pair
twice is refused, and the record survives a trip through a parcel:

```python
from locationsvc.ipc import Parcel
from locationsvc.work_record import WorkRecord

record = WorkRecord()
assert record.add(10001, 321, "com.example.maps")
assert not record.add(10001, 999, "com.example.maps")

parcel = Parcel()
record.marshal(parcel)
copy = WorkRecord.unmarshal(parcel)
assert copy.find(10001, "com.example.maps")
```

Which providers serve a request follows from its configuration:

```python
from locationsvc.request import Request, Scenario

request = Request()
assert request.proxy_names() == ["gps", "network"]  # fast first fix by default

request.request_config.scenario = Scenario.DAILY_LIFE_SERVICE
assert request.proxy_names() == ["network"]
```

## Behaviour worth knowing

- Navigation, trajectory-tracking and car-hailing scenarios go to the GNSS
  provider (`"gps"`), daily-life service to the network provider, and the
  no-power scenario to the passive provider. With the scenario unset the
  priority decides: accuracy → GNSS, low power → network, fast first fix →
  both.
- A fix reaches a request only if the request is active, at least its time
  interval less a 200 ms allowance has passed since its last fix, and the
  fix's accuracy is not above the request's maximum accuracy. In
  `LocatorAbility`, a request with a fix number above zero is removed from
  the provider lists once it has received a fix.
- A second request on the same callback with the same kind of configuration
  (same scenario, or with the scenario unset, the same priority) is not added.
- A work record read from a parcel holds at most 100 entries.
- The background proxy groups requests by user (uid divided by 100000),
  takes a request over only when its application is frozen, the permission
  check passes and its fix number is zero, and by default allows one proxied
  request per application.
- `LocatorAbility` and `LocatorBackgroundProxy` defer work (event handling,
  delayed starts, event subscription) through a `schedule(delay, action)`
  function. By default this starts daemon `threading.Timer` threads; pass
  your own `schedule` to run deferred work synchronously or under your own
  loop.

## What the package does not do

- It does not talk to other processes. `RemoteObject` calls a Python handler
  in the same process, and `ServiceRegistry` is a plain in-memory map.
- It does not compute positions or geocode addresses. Fixes come in through
  `LocatorAbility.report_location`, and geocoding requests are only forwarded
  to whatever service is registered under the geocoding id.
- It keeps no persistent settings. Unless you give `LocatorAbility` a
  `settings` object, the location switch and privacy confirmations live in
  memory and start switched off.
- `SubAbility.request_record` only logs unless a `recorder` function is
  given; serving the recorded applications is up to that function.
- It has no command-line program and no server.

## Running the tests

Install the `test` extra and run pytest; the tests live in `tests/`.