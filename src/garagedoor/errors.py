"""Error types raised by the garage door server.

Per-command errors (auth, freshness, actuation, sensor) are resolved inside the
request that raised them. Only ConfigurationError is fatal, and only at startup.
"""


class GarageDoorError(Exception):
    """Base class for all garagedoor errors."""
    pass


class ConfigurationError(GarageDoorError):
    """Raised when required startup configuration is missing or invalid."""
    pass


class AuthError(GarageDoorError):
    """Raised when a command cannot be authenticated."""
    pass


class SignatureDecodeError(AuthError):
    """The signature (or timestamp) could not be decoded from its transport form."""
    pass


class StaleTimestampError(GarageDoorError):
    def __init__(self, message: str = "Timestamp is too far in the past"):
        super().__init__(message)


class ActuationError(GarageDoorError):
    """The relay pulse failed; carries the driver's message."""
    pass


class SensorError(GarageDoorError):
    """The door sensor could not be read; carries the driver's message."""
    pass
