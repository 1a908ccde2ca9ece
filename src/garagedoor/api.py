"""
FastAPI application for the garage door server.

Routes:
- ``GET /version``  unauthenticated
- ``GET /status``   unauthenticated, samples the reed switch
- ``POST /toggle``  signed; pulses the relay (``POST /`` is kept for older clients)
- ``GET /logs``     signed; toggle history, most recent first
"""

import time
from typing import Callable, Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from loguru import logger

from . import __version__
from .audit import FileEventLog
from .auth import AuthGate
from .config import ServerConfig
from .devices import ActuatorPort, EventLogPort, StatusPort
from .errors import ActuationError, SensorError
from .models import CommandResponse, DoorStatusResponse, LogEntry, LogsResponse, VersionResponse
from .pi_gpio import GpioDoorSensor, GpioRelay, resolve_pin_factory
from .worker import DoorWorker


def create_app(
    config: ServerConfig,
    actuator: Optional[ActuatorPort] = None,
    sensor: Optional[StatusPort] = None,
    events: Optional[EventLogPort] = None,
    clock: Callable[[], float] = time.time,
) -> FastAPI:
    """
    Create the FastAPI application.

    Args:
        config: Immutable server configuration.
        actuator: Relay driver; defaults to a GpioRelay on the configured backend.
        sensor: Door sensor; defaults to a GpioDoorSensor on the configured backend.
        events: Event log sink; defaults to a FileEventLog at ``config.log_path``.
        clock: Source of the current Unix time for the freshness check.

    Returns:
        Configured FastAPI application.
    """
    if actuator is None or sensor is None:
        pin_factory = resolve_pin_factory(config.pin_factory)
        if actuator is None:
            actuator = GpioRelay(active_high=config.relay_active_high, pin_factory=pin_factory)
        if sensor is None:
            sensor = GpioDoorSensor(pull_up=config.status_pull_up, pin_factory=pin_factory)
    if events is None:
        events = FileEventLog(config.log_path)

    worker = DoorWorker(
        actuator=actuator,
        sensor=sensor,
        events=events,
        pulse=config.pulse,
        status_pin=config.status_pin,
        log_path=config.log_path,
    )
    gate = AuthGate(
        config.secret,
        window=config.freshness_window,
        mode=config.signing_mode,
        clock=clock,
        events=events,
    )

    app = FastAPI(title="Garage Door Server", version=__version__, docs_url=None, redoc_url=None)
    app.state.worker = worker
    app.state.gate = gate

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        start_time = time.time()
        response = await call_next(request)
        process_time = (time.time() - start_time) * 1000
        logger.debug(f"{request.method} {request.url.path} - {response.status_code} - {process_time:.1f}ms")
        return response

    @app.exception_handler(Exception)
    async def unhandled_exception(request: Request, exc: Exception):
        logger.opt(exception=exc).error(f"Unhandled exception on {request.url.path}: {exc}")
        return JSONResponse(status_code=500, content={"status": "Internal Server Error"})

    @app.get("/version", response_model=VersionResponse)
    async def version():
        events.record("Version")
        return VersionResponse(version=__version__)

    @app.get("/status", response_model=DoorStatusResponse, response_model_exclude_none=True)
    async def door_status():
        try:
            state = worker.status()
        except SensorError as exc:
            logger.error(f"Door status read failed: {exc}")
            events.record(str(exc))
            return JSONResponse(status_code=422, content={"door_status": "unknown", "error": str(exc)})
        return DoorStatusResponse(door_status=state.value)

    @app.post("/toggle", response_model=CommandResponse)
    @app.post("/", response_model=CommandResponse, include_in_schema=False)
    @gate.guard
    async def toggle(request: Request):
        try:
            await worker.toggle()
        except ActuationError as exc:
            return JSONResponse(status_code=500, content={"status": str(exc)})
        return CommandResponse(status="signal received")

    @app.get("/logs", response_model=LogsResponse)
    @gate.guard
    async def logs(request: Request):
        entries = [LogEntry(**entry.to_dict()) for entry in worker.history()]
        return LogsResponse(entries=entries)

    return app
