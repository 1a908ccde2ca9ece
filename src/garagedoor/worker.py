from pathlib import Path
from typing import List, Optional

from loguru import logger

from .audit import AuditEntry, TOGGLE_EVENT, read_audit
from .devices import ActuatorPort, DoorState, EventLogPort, PulseSpec, StatusPort
from .errors import ActuationError


class DoorWorker:
    """Carries out admitted commands against the relay, sensor and event log."""
    def __init__(
        self,
        actuator: ActuatorPort,
        sensor: StatusPort,
        events: EventLogPort,
        pulse: PulseSpec,
        status_pin: int,
        log_path: Optional[Path] = None,
    ):
        self.actuator = actuator
        self.sensor = sensor
        self.events = events
        self.pulse = pulse
        self.status_pin = status_pin
        self.log_path = log_path

    async def toggle(self) -> None:
        # logged before the pulse so a failed attempt still shows up in the history
        self.events.record(TOGGLE_EVENT)
        try:
            await self.actuator.actuate(self.pulse.pin, self.pulse.hold_ms)
        except ActuationError as exc:
            self.events.record(str(exc))
            raise
        logger.debug(f"Pulse on GPIO{self.pulse.pin} complete")

    def status(self) -> DoorState:
        return self.sensor.read_status(self.status_pin)

    def history(self) -> List[AuditEntry]:
        return read_audit(self.log_path)
