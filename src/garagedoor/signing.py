"""
signing.py: shared-secret HMAC helpers and the freshness check.

Wire format of a signed command:
- ``timestamp`` header: Unix seconds as decimal ASCII. These exact bytes are
  what gets signed, so both sides agree on the input without re-encoding.
- ``signature`` header: URL-safe Base64 of the *hex* HMAC-SHA512 digest.

The freshness window is the only replay protection. A captured
signature/timestamp pair stops working once it is older than the window.
"""

from __future__ import annotations

import base64
import binascii
import hashlib
import hmac
import re
import time
from typing import Dict, Optional

from .errors import SignatureDecodeError, StaleTimestampError

DEFAULT_WINDOW = 10  # seconds

URLSAFE_B64 = re.compile(r"[A-Za-z0-9_-]*={0,2}")


def digest(canonical: bytes, secret: str) -> bytes:
    """Hex-encoded HMAC-SHA512 of ``canonical``, as ASCII bytes."""
    mac = hmac.new(secret.encode("utf-8"), canonical, hashlib.sha512)
    return mac.hexdigest().encode("ascii")


def sign(canonical: bytes, secret: str) -> str:
    """Transport form of the signature: URL-safe Base64 over the hex digest."""
    return base64.urlsafe_b64encode(digest(canonical, secret)).decode("ascii")


def decode_signature(header: str) -> bytes:
    """
    Decode the ``signature`` header.

    Strict: characters outside the URL-safe alphabet or bad padding raise
    SignatureDecodeError instead of being dropped.
    """
    if not URLSAFE_B64.fullmatch(header):
        raise SignatureDecodeError("Invalid signature encoding: not URL-safe base64")
    try:
        return base64.urlsafe_b64decode(header)
    except (binascii.Error, ValueError) as exc:
        raise SignatureDecodeError(f"Invalid signature encoding: {exc}") from exc


def verify_signature(canonical: bytes, signature: bytes, secret: str) -> bool:
    """Constant-time comparison of ``signature`` against the expected hex digest."""
    return hmac.compare_digest(signature, digest(canonical, secret))


def check_freshness(timestamp: int, now: int, window: int = DEFAULT_WINDOW) -> int:
    """
    Reject timestamps more than ``window`` seconds in the past.

    Timestamps in the future are accepted as-is.

    Returns:
        The timestamp, unchanged.

    Raises:
        StaleTimestampError: If ``now - timestamp > window``.
    """
    if now - timestamp > window:
        raise StaleTimestampError()
    return timestamp


def signed_headers(secret: str, now: Optional[int] = None) -> Dict[str, str]:
    """Headers a client sends with a command signed at ``now``."""
    timestamp = str(int(time.time()) if now is None else now)
    return {"timestamp": timestamp, "signature": sign(timestamp.encode("ascii"), secret)}
