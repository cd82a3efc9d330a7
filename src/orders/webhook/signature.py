"""Webhook signature check: base64 HMAC-SHA256 of the raw request body."""

import base64
import binascii
import hashlib
import hmac
from enum import Enum


class SignatureCheck(Enum):
    VALID = "valid"
    MISSING = "missing"
    MALFORMED = "malformed"
    MISMATCH = "mismatch"


def compute_signature(raw_body: bytes, secret: str) -> str:
    digest = hmac.new(secret.encode("utf-8"), raw_body, hashlib.sha256).digest()
    return base64.b64encode(digest).decode("ascii")


def check_signature(raw_body: bytes, signature: str | None, secret: str) -> SignatureCheck:
    """Compare the header against the expected digest in constant time.

    The header must decode as base64 to be considered at all; anything else is
    reported as ``MALFORMED`` so the caller can answer with a 400 rather than
    a 401.
    """
    if not signature:
        return SignatureCheck.MISSING
    try:
        provided = base64.b64decode(signature.strip(), validate=True)
    except (binascii.Error, ValueError):
        return SignatureCheck.MALFORMED

    expected = hmac.new(secret.encode("utf-8"), raw_body, hashlib.sha256).digest()
    if hmac.compare_digest(provided, expected):
        return SignatureCheck.VALID
    return SignatureCheck.MISMATCH
