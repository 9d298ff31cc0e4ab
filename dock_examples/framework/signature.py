"""
Webhook signing helpers.

Dock Health proves webhook ownership with a GET challenge (`?message=...`)
that must be answered with the hex HMAC-SHA256 of the message keyed by the
webhook secret. Event deliveries carry

    X-Dock-Signature-256: t=<timestamp>,v=<hex HMAC-SHA256 of the body>
"""

from __future__ import annotations

import hashlib
import hmac
from dataclasses import dataclass
from typing import Optional, Union

SIGNATURE_HEADER = "X-Dock-Signature-256"


class SignatureError(ValueError):
    """Raised for a malformed signature header."""
    pass


@dataclass(frozen=True)
class SignatureHeader:
    timestamp: str
    signature: str


def sign(secret: Optional[str], message: Union[str, bytes, None]) -> Optional[str]:
    """Hex HMAC-SHA256 of ``message``; None when there is nothing to sign."""
    if not message or not secret:
        return None
    if isinstance(message, str):
        message = message.encode("utf-8")
    return hmac.new(secret.encode("utf-8"), message, hashlib.sha256).hexdigest()


def parse_signature_header(value: Optional[str]) -> SignatureHeader:
    """
    Split ``t=<timestamp>,v=<signature>`` into its parts.

    Only the first two comma separated elements are read, positionally, and
    each value is the text between its first and second `=`.
    """
    if not value:
        raise SignatureError(f"{SIGNATURE_HEADER} header missing.")

    elems = value.split(",")
    if len(elems) < 2:
        raise SignatureError(f"Malformed {SIGNATURE_HEADER} header.")

    ts_elem = elems[0].split("=")
    if len(ts_elem) < 2:
        raise SignatureError("Malformed timestamp header element.")

    signature_elem = elems[1].split("=")
    if len(signature_elem) < 2:
        raise SignatureError("Malformed signature header element.")

    timestamp = ts_elem[1]
    if not timestamp:
        raise SignatureError("Missing timestamp.")

    return SignatureHeader(timestamp=timestamp, signature=signature_elem[1])


def verify_signature(secret: str, body: bytes, header_value: Optional[str]) -> bool:
    """
    Check a delivery's signature against its raw body.

    Raises:
        SignatureError: The header is missing or malformed.
    """
    header = parse_signature_header(header_value)
    expected = sign(secret, body)
    if expected is None:
        return False
    return hmac.compare_digest(expected.encode("ascii"), header.signature.encode("utf-8"))


__all__ = [
    "SIGNATURE_HEADER",
    "SignatureError",
    "SignatureHeader",
    "parse_signature_header",
    "sign",
    "verify_signature",
]
