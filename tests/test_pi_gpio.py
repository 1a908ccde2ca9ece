import asyncio

import pytest
from gpiozero import DigitalOutputDevice
from gpiozero.pins.mock import MockFactory

from garagedoor.devices import DoorState
from garagedoor.errors import ActuationError, ConfigurationError, SensorError
from garagedoor.pi_gpio import GpioDoorSensor, GpioRelay, check_backends, resolve_pin_factory

RELAY_PIN = 25
STATUS_PIN = 10


@pytest.fixture
def factory():
    f = MockFactory()
    yield f
    f.close()


def states(pin):
    return [s.state for s in pin.states]


@pytest.mark.asyncio
async def test_pulse_drives_active_low_then_back_to_idle(factory):
    relay = GpioRelay(pin_factory=factory)
    await relay.actuate(RELAY_PIN, 10)

    pin = factory.pin(RELAY_PIN)
    # idle high, pulled low for the hold, back to high
    assert states(pin)[-3:] == [True, False, True]
    assert not relay.busy


@pytest.mark.asyncio
async def test_active_high_relay(factory):
    relay = GpioRelay(active_high=True, pin_factory=factory)
    await relay.actuate(RELAY_PIN, 10)

    pin = factory.pin(RELAY_PIN)
    assert states(pin)[-2:] == [True, False]


@pytest.mark.asyncio
async def test_pin_is_released_after_pulse(factory):
    relay = GpioRelay(pin_factory=factory)
    await relay.actuate(RELAY_PIN, 5)
    # would raise GPIOPinInUse if the relay still held the pin
    DigitalOutputDevice(RELAY_PIN, pin_factory=factory).close()


@pytest.mark.asyncio
async def test_busy_pin_is_reported_as_actuation_error(factory):
    holder = DigitalOutputDevice(RELAY_PIN, pin_factory=factory)
    relay = GpioRelay(pin_factory=factory)
    try:
        with pytest.raises(ActuationError) as exc:
            await relay.actuate(RELAY_PIN, 5)
        assert "GPIO25" in str(exc.value)
    finally:
        holder.close()


@pytest.mark.asyncio
async def test_pin_is_released_when_hold_fails(factory, monkeypatch):
    async def broken_sleep(delay):
        raise RuntimeError("hold interrupted")

    monkeypatch.setattr("garagedoor.pi_gpio.asyncio.sleep", broken_sleep)
    relay = GpioRelay(pin_factory=factory)
    with pytest.raises(ActuationError):
        await relay.actuate(RELAY_PIN, 5)

    DigitalOutputDevice(RELAY_PIN, pin_factory=factory).close()
    assert not relay.busy


@pytest.mark.asyncio
async def test_concurrent_pulses_do_not_interleave(factory):
    relay = GpioRelay(pin_factory=factory)
    await asyncio.gather(relay.actuate(RELAY_PIN, 30), relay.actuate(RELAY_PIN, 30))

    pin = factory.pin(RELAY_PIN)
    assert states(pin)[-5:] == [True, False, True, False, True]


@pytest.mark.parametrize("level,expected", [(0, DoorState.CLOSED), (1, DoorState.OPEN)])
def test_sensor_maps_level_to_state(factory, level, expected):
    pin = factory.pin(STATUS_PIN)
    if level:
        pin.drive_high()
    else:
        pin.drive_low()
    assert GpioDoorSensor(pin_factory=factory).read_status(STATUS_PIN) is expected


def test_sensor_resamples_every_read(factory):
    sensor = GpioDoorSensor(pin_factory=factory)
    pin = factory.pin(STATUS_PIN)
    pin.drive_low()
    assert sensor.read_status(STATUS_PIN) is DoorState.CLOSED
    pin.drive_high()
    assert sensor.read_status(STATUS_PIN) is DoorState.OPEN


def test_sensor_busy_pin(factory):
    holder = DigitalOutputDevice(STATUS_PIN, pin_factory=factory)
    try:
        with pytest.raises(SensorError):
            GpioDoorSensor(pin_factory=factory).read_status(STATUS_PIN)
    finally:
        holder.close()


def test_resolve_pin_factory():
    assert resolve_pin_factory(None) is None
    mock = resolve_pin_factory("mock")
    try:
        assert isinstance(mock, MockFactory)
    finally:
        mock.close()
    with pytest.raises(ConfigurationError):
        resolve_pin_factory("teletype")


def test_check_backends_reports_gpiozero():
    results = check_backends()
    assert results["gpiozero"][0] is True
    assert set(results) == {"gpiozero", "lgpio", "gpiod", "pigpio", "RPi.GPIO"}
