#!/usr/bin/env python3
"""Check which GPIO backends the garage door server can use in this environment.

Run this inside the server's venv, with the same user the service runs as.

Usage:
  # activate venv then
  python3 scripts/check_gpio_backends.py

This prints import results for: gpiozero, lgpio, gpiod, pigpio, RPi.GPIO, shows
gpiozero's default pin factory, and tries the one named in GARAGE_PIN_FACTORY.
"""

import os
import platform
import sys

from garagedoor.errors import ConfigurationError
from garagedoor.pi_gpio import check_backends, resolve_pin_factory

print("Python executable:", sys.executable)
print("Python version:", platform.python_version())
print("GARAGE_PIN_FACTORY env:", os.getenv("GARAGE_PIN_FACTORY"))
print()

results = check_backends()
for m, (ok, info) in results.items():
    print(f"{m}:", "OK," if ok else "FAIL,", info)

try:
    from gpiozero import Device
    print("\ngpiozero Device.pin_factory:", Device._default_pin_factory())
except Exception as e:
    print("\nCould not create gpiozero's default pin factory:", e)

name = (os.getenv("GARAGE_PIN_FACTORY") or "").strip().lower()
if name:
    try:
        print(f"Configured factory {name!r}:", resolve_pin_factory(name))
    except ConfigurationError as e:
        print(f"Configured factory {name!r} FAILED:", e)

print("\nRecommendations:")
if not results["lgpio"][0] and not results["RPi.GPIO"][0] and not results["pigpio"][0]:
    print(" - No hardware backend importable. On a Pi: sudo apt install python3-lgpio, or pip install 'garagedoor[pi]'")
if results["pigpio"][0]:
    print(" - pigpio needs the daemon: sudo systemctl enable --now pigpiod, then GARAGE_PIN_FACTORY=pigpio")
print(" - Off a Pi, GARAGE_PIN_FACTORY=mock runs the server against simulated pins.")

sys.exit(0)
