"""
Helper functions for common infrastructure operations.

- UUID validation
- HMAC-SHA256 signing and verification for server-to-server requests

Usage:
    from core.helpers import validate_uuid, verify_signature

    ids = [value for value in raw_ids if validate_uuid(value)]
    if not verify_signature(request.body, signature, secret):
        ...
"""

from __future__ import annotations

import hashlib
import hmac
import uuid


def validate_uuid(value) -> bool:
    """
    Check if value is a valid UUID.

    Example:
        validate_uuid("550e8400-e29b-41d4-a716-446655440000")  # True
        validate_uuid("42")  # False
    """
    try:
        uuid.UUID(str(value))
        return True
    except (ValueError, TypeError, AttributeError):
        return False


def sign_payload(payload: bytes, secret: str) -> str:
    """Return the hex HMAC-SHA256 digest of payload under secret."""
    return hmac.new(secret.encode("utf-8"), payload, hashlib.sha256).hexdigest()


def verify_signature(payload: bytes, signature: str | None, secret: str) -> bool:
    """
    Verify an HMAC-SHA256 signature in constant time.

    An empty secret or a missing signature never verifies.

    Args:
        payload: Raw request body
        signature: Hex digest from the request header (``sha256=`` prefix allowed)
        secret: Shared secret

    Returns:
        True if the signature matches
    """
    if not secret or not signature:
        return False
    if signature.startswith("sha256="):
        signature = signature[len("sha256="):]
    return hmac.compare_digest(sign_payload(payload, secret), signature)
