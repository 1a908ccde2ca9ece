from __future__ import annotations
import asyncio
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Protocol

from .errors import ActuationError, SensorError


class DoorState(str, Enum):
    OPEN = "open"
    CLOSED = "closed"

    @classmethod
    def from_level(cls, level: int) -> "DoorState":
        # reed switch pulls the line low when the door is shut
        return cls.CLOSED if level == 0 else cls.OPEN


@dataclass(frozen=True)
class PulseSpec:
    pin: int
    hold_ms: int = 100


class ActuatorPort(Protocol):
    async def actuate(self, pin: int, hold_ms: int) -> None: ...


class StatusPort(Protocol):
    def read_status(self, pin: int) -> DoorState: ...


class EventLogPort(Protocol):
    def record(self, event: str) -> None: ...


# Simulated devices used by tests and for running the server off a Pi.

class SimRelay:
    """Records pulses instead of driving a pin; can be told to fail."""
    def __init__(self, error: Optional[str] = None):
        self.error = error
        self.pulses: List[PulseSpec] = []

    async def actuate(self, pin: int, hold_ms: int) -> None:
        if self.error:
            raise ActuationError(self.error)
        await asyncio.sleep(hold_ms / 1000.0)
        self.pulses.append(PulseSpec(pin=pin, hold_ms=hold_ms))


class SimDoorSensor:
    def __init__(self, level: int = 0, error: Optional[str] = None):
        self.level = level
        self.error = error
        self.reads = 0

    def read_status(self, pin: int) -> DoorState:
        self.reads += 1
        if self.error:
            raise SensorError(self.error)
        return DoorState.from_level(self.level)


class MemoryEventLog:
    def __init__(self):
        self.events: List[str] = []

    def record(self, event: str) -> None:
        self.events.append(event)
