"""
Authentication gate for signed commands.

Every state-changing or sensitive route is wrapped with ``AuthGate.guard``.
The gate decodes the signature, verifies it against the shared secret and then
checks the timestamp's freshness, stopping at the first failure. A rejected
command gets its response straight from the gate; the wrapped handler never
runs.
"""

from __future__ import annotations

import functools
import json
import time
from dataclasses import dataclass
from enum import Enum
from typing import Awaitable, Callable, Optional

from fastapi import Request
from fastapi.responses import JSONResponse
from loguru import logger

from . import signing
from .config import SigningMode
from .devices import EventLogPort
from .errors import SignatureDecodeError, StaleTimestampError


class RejectReason(str, Enum):
    NONE = "none"
    SIGNATURE_INVALID = "signature_invalid"
    STALE = "stale"
    DECODE_ERROR = "decode_error"


@dataclass(frozen=True)
class AuthDecision:
    accepted: bool
    reason: RejectReason = RejectReason.NONE
    message: str = ""

    @classmethod
    def accept(cls) -> "AuthDecision":
        return cls(accepted=True)

    @classmethod
    def reject(cls, reason: RejectReason, message: str) -> "AuthDecision":
        return cls(accepted=False, reason=reason, message=message)


REJECT_STATUS = {
    RejectReason.SIGNATURE_INVALID: 401,
    RejectReason.DECODE_ERROR: 401,
    RejectReason.STALE: 422,
}


def _parse_timestamp(raw: object) -> int:
    if isinstance(raw, bool):
        raise SignatureDecodeError("Invalid timestamp")
    if isinstance(raw, int):
        return raw
    if isinstance(raw, str) and raw.isascii() and raw.isdigit():
        try:
            return int(raw)
        except ValueError:
            # past the interpreter's int conversion digit limit
            raise SignatureDecodeError("Invalid timestamp") from None
    raise SignatureDecodeError("Invalid timestamp")


def _body_timestamp(body: bytes) -> int:
    try:
        payload = json.loads(body)
    except (ValueError, RecursionError) as exc:
        raise SignatureDecodeError(f"Invalid request body: {exc}") from exc
    if not isinstance(payload, dict):
        raise SignatureDecodeError("Invalid request body: expected a JSON object")
    return _parse_timestamp(payload.get("timestamp"))


class AuthGate:
    """Admission decision for signed commands, and a decorator that enforces it."""

    def __init__(
        self,
        secret: str,
        window: int = signing.DEFAULT_WINDOW,
        mode: SigningMode = SigningMode.HEADER,
        clock: Callable[[], float] = time.time,
        events: Optional[EventLogPort] = None,
    ):
        self._secret = secret
        self.window = window
        self.mode = mode
        self.clock = clock
        self.events = events

    def _authenticate(self, signature_header: str, canonical: bytes) -> Optional[AuthDecision]:
        try:
            signature = signing.decode_signature(signature_header)
        except SignatureDecodeError as exc:
            return AuthDecision.reject(RejectReason.DECODE_ERROR, str(exc))
        if not signing.verify_signature(canonical, signature, self._secret):
            return AuthDecision.reject(RejectReason.SIGNATURE_INVALID, "Invalid signature")
        return None

    def _fresh(self, timestamp: int) -> Optional[AuthDecision]:
        try:
            signing.check_freshness(timestamp, int(self.clock()), self.window)
        except StaleTimestampError as exc:
            return AuthDecision.reject(RejectReason.STALE, str(exc))
        return None

    def evaluate(self, signature_header: str, canonical: bytes, timestamp: int) -> AuthDecision:
        """Decode, verify, then check freshness. The first failure wins."""
        return (
            self._authenticate(signature_header, canonical)
            or self._fresh(timestamp)
            or AuthDecision.accept()
        )

    async def admit(self, request: Request) -> AuthDecision:
        """
        Pull the signed command out of ``request`` and evaluate it.

        The signature is checked over the raw signed bytes before any of them
        are parsed, so unsigned input never reaches the JSON decoder.
        """
        signature_header = request.headers.get("signature", "")
        if self.mode is SigningMode.BODY:
            canonical = await request.body()
        else:
            raw = request.headers.get("timestamp")
            if raw is None:
                return AuthDecision.reject(RejectReason.DECODE_ERROR, "Missing timestamp header")
            canonical = raw.encode("latin-1")

        rejected = self._authenticate(signature_header, canonical)
        if rejected is not None:
            return rejected

        try:
            if self.mode is SigningMode.BODY:
                timestamp = _body_timestamp(canonical)
            else:
                timestamp = _parse_timestamp(raw)
        except SignatureDecodeError as exc:
            return AuthDecision.reject(RejectReason.DECODE_ERROR, str(exc))

        return self._fresh(timestamp) or AuthDecision.accept()

    def rejection(self, request: Request, decision: AuthDecision) -> JSONResponse:
        client = request.client.host if request.client else "unknown"
        logger.warning(f"Rejected {request.method} {request.url.path} from {client}: {decision.message}")
        if self.events is not None:
            self.events.record(decision.message)
        return JSONResponse(status_code=REJECT_STATUS[decision.reason], content={"status": decision.message})

    def guard(self, handler: Callable[..., Awaitable]) -> Callable[..., Awaitable]:
        """Wrap an async ``handler(request, ...)`` so it only runs for admitted commands."""

        @functools.wraps(handler)
        async def guarded(request: Request, *args, **kwargs):
            decision = await self.admit(request)
            if not decision.accepted:
                return self.rejection(request, decision)
            return await handler(request, *args, **kwargs)

        return guarded
