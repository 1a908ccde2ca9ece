"""Raspberry Pi GPIO drivers for the garage door relay and reed switch.

Both drivers go through gpiozero, which in turn drives one of several pin
backends (lgpio on the Pi 5, RPi.GPIO, the pigpio daemon, or the mock factory
in tests). Pins are claimed for the duration of one operation and released
afterwards, so nothing stays reserved between requests.

Usage notes:
- Pick a backend with GARAGE_PIN_FACTORY (lgpio, rpigpio, pigpio, native, mock);
  leave it unset to let gpiozero choose.
- For pigpio, start the daemon first: `sudo systemctl enable --now pigpiod`
- Run as root or as a user in the gpio group.
"""
from __future__ import annotations
import asyncio
import importlib
from typing import Dict, Optional, Tuple

from gpiozero import DigitalOutputDevice, GPIOZeroError, InputDevice
from gpiozero.pins import Factory
from loguru import logger

from .devices import DoorState
from .errors import ActuationError, ConfigurationError, SensorError

# Errors a pin backend may raise for a missing, busy, or inaccessible line.
DRIVER_ERRORS = (GPIOZeroError, OSError, RuntimeError)

PIN_FACTORIES: Dict[str, Tuple[str, str]] = {
    "lgpio": ("gpiozero.pins.lgpio", "LGPIOFactory"),
    "rpigpio": ("gpiozero.pins.rpigpio", "RPiGPIOFactory"),
    "pigpio": ("gpiozero.pins.pigpio", "PiGPIOFactory"),
    "native": ("gpiozero.pins.native", "NativeFactory"),
    "mock": ("gpiozero.pins.mock", "MockFactory"),
}

BACKEND_MODULES = ["gpiozero", "lgpio", "gpiod", "pigpio", "RPi.GPIO"]


def resolve_pin_factory(name: Optional[str]) -> Optional[Factory]:
    """Build the gpiozero pin factory called ``name``; None keeps gpiozero's default."""
    if not name:
        return None
    try:
        module_name, class_name = PIN_FACTORIES[name]
    except KeyError:
        choices = ", ".join(sorted(PIN_FACTORIES))
        raise ConfigurationError(f"Unknown pin factory {name!r} (expected one of: {choices})") from None
    try:
        factory_cls = getattr(importlib.import_module(module_name), class_name)
        return factory_cls()
    except (ImportError, GPIOZeroError, OSError, RuntimeError) as exc:
        raise ConfigurationError(f"Pin factory {name!r} is unavailable: {exc}") from exc


def check_backends() -> Dict[str, Tuple[bool, str]]:
    """Which GPIO backend modules import in this interpreter: name -> (ok, version or error)."""
    results: Dict[str, Tuple[bool, str]] = {}
    for name in BACKEND_MODULES:
        try:
            mod = importlib.import_module(name)
            results[name] = (True, str(getattr(mod, "__version__", None) or "available"))
        except Exception as e:
            results[name] = (False, str(e))
    return results


class GpioRelay:
    """Pulses the relay line: assert, hold, deassert.

    One pulse at a time; a toggle that arrives mid-pulse waits for the lock.
    The default is an active-low relay board, as the line idles high.
    """
    def __init__(self, active_high: bool = False, pin_factory: Optional[Factory] = None):
        self.active_high = active_high
        self.pin_factory = pin_factory
        self._lock = asyncio.Lock()

    @property
    def busy(self) -> bool:
        return self._lock.locked()

    async def actuate(self, pin: int, hold_ms: int) -> None:
        if self._lock.locked():
            logger.info(f"Relay on GPIO{pin} busy, queueing pulse")
        async with self._lock:
            try:
                out = DigitalOutputDevice(
                    pin,
                    active_high=self.active_high,
                    initial_value=False,
                    pin_factory=self.pin_factory,
                )
            except DRIVER_ERRORS as exc:
                logger.error(f"Could not claim relay pin GPIO{pin}: {exc}")
                raise ActuationError(str(exc)) from exc
            try:
                out.on()
                logger.debug(f"Relay GPIO{pin} active for {hold_ms}ms")
                await asyncio.sleep(hold_ms / 1000.0)
                out.off()
            except DRIVER_ERRORS as exc:
                logger.error(f"Relay pulse on GPIO{pin} failed: {exc}")
                raise ActuationError(str(exc)) from exc
            finally:
                out.close()


class GpioDoorSensor:
    """Samples the reed switch; level 0 means the door is closed."""
    def __init__(self, pull_up: Optional[bool] = None, pin_factory: Optional[Factory] = None):
        self.pull_up = pull_up
        self.pin_factory = pin_factory

    def read_status(self, pin: int) -> DoorState:
        try:
            if self.pull_up is None:
                # floating input: gpiozero needs to be told which level is "active"
                sensor = InputDevice(pin, pull_up=None, active_state=True, pin_factory=self.pin_factory)
            else:
                sensor = InputDevice(pin, pull_up=self.pull_up, pin_factory=self.pin_factory)
        except DRIVER_ERRORS as exc:
            logger.error(f"Could not claim status pin GPIO{pin}: {exc}")
            raise SensorError(str(exc)) from exc
        try:
            level = int(sensor.pin.state)
        except DRIVER_ERRORS as exc:
            raise SensorError(str(exc)) from exc
        finally:
            sensor.close()
        return DoorState.from_level(level)
