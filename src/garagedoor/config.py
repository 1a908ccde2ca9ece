"""
Server configuration.

A ServerConfig is built once at startup from GARAGE_* environment variables,
read through pydantic-settings, and then passed explicitly to every component;
nothing below the entry point reads the environment itself.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Mapping, Optional

from pydantic import Field, ValidationError, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .devices import PulseSpec
from .errors import ConfigurationError

DEFAULT_ADDRESS = "127.0.0.1:8225"


class SigningMode(str, Enum):
    """What the client signs: the timestamp header, or the raw request body."""
    HEADER = "header"
    BODY = "body"


@dataclass(frozen=True)
class ServerConfig:
    secret: str
    host: str = "127.0.0.1"
    port: int = 8225
    pulse: PulseSpec = field(default_factory=lambda: PulseSpec(pin=25, hold_ms=100))
    status_pin: int = 10
    relay_active_high: bool = False
    status_pull_up: Optional[bool] = None
    freshness_window: int = 10
    signing_mode: SigningMode = SigningMode.HEADER
    log_path: Optional[Path] = None
    pin_factory: Optional[str] = None
    cert: Optional[Path] = None
    key: Optional[Path] = None
    log_level: str = "INFO"

    def __repr__(self) -> str:
        # keep the secret out of logs and tracebacks
        return (
            f"ServerConfig(host={self.host!r}, port={self.port}, pulse={self.pulse}, "
            f"status_pin={self.status_pin}, signing_mode={self.signing_mode.value!r})"
        )

    @property
    def tls_enabled(self) -> bool:
        return self.cert is not None and self.key is not None


def parse_address(address: str) -> tuple[str, int]:
    """Split a ``host:port`` listen address."""
    host, sep, port = address.rpartition(":")
    if not sep or not host:
        raise ConfigurationError(f"Listen address must look like host:port, got {address!r}")
    try:
        return host, int(port)
    except ValueError:
        raise ConfigurationError(f"Invalid port in listen address {address!r}") from None


class GarageSettings(BaseSettings):
    """Environment variables settings."""

    model_config = SettingsConfigDict(extra="ignore", env_ignore_empty=True)

    secret: str = Field(..., alias="GARAGE_SECRET", min_length=1)
    http: str = Field(default=DEFAULT_ADDRESS, alias="GARAGE_HTTP")

    # Pins (BCM numbering)
    pin: int = Field(default=25, alias="GARAGE_PIN", ge=0)
    hold_ms: int = Field(default=100, alias="GARAGE_HOLD_MS", gt=0)
    status_pin: int = Field(default=10, alias="GARAGE_STATUS_PIN", ge=0)
    relay_active_high: bool = Field(default=False, alias="GARAGE_RELAY_ACTIVE_HIGH")
    status_pull_up: Optional[bool] = Field(default=None, alias="GARAGE_STATUS_PULL_UP")
    pin_factory: Optional[str] = Field(default=None, alias="GARAGE_PIN_FACTORY")

    # Auth
    freshness_window: int = Field(default=10, alias="GARAGE_WINDOW", ge=0)
    signing_mode: SigningMode = Field(default=SigningMode.HEADER, alias="GARAGE_SIGNING_MODE")

    # Files
    log_file: Optional[Path] = Field(default=None, alias="GARAGE_LOG_FILE")
    cert: Optional[Path] = Field(default=None, alias="GARAGE_CERT")
    key: Optional[Path] = Field(default=None, alias="GARAGE_KEY")
    log_level: str = Field(default="INFO", alias="GARAGE_LOG_LEVEL")

    @field_validator("signing_mode", "pin_factory", mode="before")
    @classmethod
    def lowercase(cls, v):
        return v.strip().lower() if isinstance(v, str) else v

    @field_validator("log_level")
    @classmethod
    def uppercase(cls, v: str) -> str:
        return v.strip().upper()

    @model_validator(mode="after")
    def cert_and_key_together(self) -> "GarageSettings":
        if (self.cert is None) != (self.key is None):
            raise ValueError("GARAGE_CERT and GARAGE_KEY must be set together")
        return self

    def to_config(self) -> ServerConfig:
        host, port = parse_address(self.http)
        return ServerConfig(
            secret=self.secret,
            host=host,
            port=port,
            pulse=PulseSpec(pin=self.pin, hold_ms=self.hold_ms),
            status_pin=self.status_pin,
            relay_active_high=self.relay_active_high,
            status_pull_up=self.status_pull_up,
            freshness_window=self.freshness_window,
            signing_mode=self.signing_mode,
            log_path=self.log_file,
            pin_factory=self.pin_factory or None,
            cert=self.cert,
            key=self.key,
            log_level=self.log_level,
        )


def _describe(exc: ValidationError) -> str:
    problems = []
    for error in exc.errors():
        where = ".".join(str(part) for part in error["loc"])
        problems.append(f"{where}: {error['msg']}" if where else error["msg"])
    return "; ".join(problems)


def load_config(environ: Optional[Mapping[str, str]] = None) -> ServerConfig:
    """
    Build the server configuration.

    Args:
        environ: Variables to read instead of the process environment. Tests
            pass a plain dict here; the entry point passes nothing.

    Returns:
        The immutable configuration for this process.

    Raises:
        ConfigurationError: If the shared secret is missing or a value is invalid.
    """
    try:
        if environ is None:
            settings = GarageSettings()
        else:
            settings = GarageSettings.model_validate(dict(environ))
    except ValidationError as exc:
        raise ConfigurationError(_describe(exc)) from exc
    return settings.to_config()
