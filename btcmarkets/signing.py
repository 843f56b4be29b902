"""
Request signing for authenticated BTC Markets endpoints.
"""

import base64
import binascii
import hashlib
import hmac
import json
import time
from typing import Any, Optional

from .errors import ConfigurationError


def decode_secret(secret: str) -> bytes:
    """Decode the base64 API secret to raw key bytes."""
    if not secret:
        raise ConfigurationError("API secret is required")
    try:
        return base64.b64decode(secret, validate=True)
    except (binascii.Error, ValueError) as e:
        raise ConfigurationError("API secret is not valid base64") from e


def get_timestamp() -> str:
    """Milliseconds since the epoch as a decimal string."""
    return str(int(time.time() * 1000))


def canonical_message(path: str, timestamp: str, body: str = '') -> str:
    """The exact text that is signed: path, timestamp and body on separate lines."""
    return f"{path}\n{timestamp}\n{body}"


def sign(secret: bytes, path: str, timestamp: str, body: str = '') -> str:
    """
    Generate the HMAC-SHA512 signature for a request.

    Args:
        secret: Decoded API secret
        path: Request path without host or query string
        timestamp: Millisecond timestamp sent in the ``timestamp`` header
        body: Request body exactly as transmitted ('' for GET)

    Returns:
        Base64-encoded signature
    """
    mac = hmac.new(
        secret,
        canonical_message(path, timestamp, body).encode('utf-8'),
        hashlib.sha512
    )
    return base64.b64encode(mac.digest()).decode('utf-8')


def serialize_body(body: Optional[Any]) -> str:
    # The exchange rejects signatures over bodies containing whitespace or
    # newlines, so the body is rendered compactly and only once.
    if body is None:
        return ''
    return json.dumps(body, separators=(',', ':'))
