"""
JWT-style token creation and verification.

Tokens are base64-encoded JSON payloads signed with HMAC-SHA256::

    base64({"user": {"id": "<uuid>"}, "exp": 1700000000}) + "." + hexdigest

The secret and lifetime come from the ``Settings`` object the service is
built with (env vars ``JWT_SECRET`` / ``JWT_EXPIRY_SECONDS``).
"""

from __future__ import annotations

import binascii
import hashlib
import hmac
import json
import time
from base64 import b64decode, b64encode
from typing import Any, Dict

from config.settings import Settings


class InvalidTokenError(ValueError):
    """Raised when a token is malformed, tampered with or expired."""


class TokenService:
    """Signs and verifies identity tokens with a shared secret."""

    def __init__(self, settings: Settings) -> None:
        self._secret = settings.jwt_secret.encode()
        self._expiry_seconds = settings.jwt_expiry_seconds

    def _sign(self, raw: bytes) -> str:
        return hmac.new(self._secret, raw, hashlib.sha256).hexdigest()

    def create_token(self, user_id: str) -> str:
        """Create a signed token whose identity claim carries ``user_id``."""
        payload = {
            "user": {"id": user_id},
            "exp": int(time.time()) + self._expiry_seconds,
        }
        raw = json.dumps(payload).encode()
        return b64encode(raw).decode() + "." + self._sign(raw)

    def verify_token(self, token: str) -> Dict[str, Any]:
        """
        Verify ``token`` and return its decoded payload.

        Raises ``InvalidTokenError`` on bad format, bad signature or expiry.
        """
        parts = token.split(".", 1)
        if len(parts) != 2:
            raise InvalidTokenError("bad format")
        try:
            raw = b64decode(parts[0], validate=True)
        except (binascii.Error, ValueError) as exc:
            raise InvalidTokenError("bad encoding") from exc
        if not hmac.compare_digest(parts[1], self._sign(raw)):
            raise InvalidTokenError("bad signature")
        try:
            payload = json.loads(raw)
            user_id = payload["user"]["id"]
        except (ValueError, KeyError, TypeError) as exc:
            raise InvalidTokenError("bad payload") from exc
        if payload.get("exp", 0) < time.time():
            raise InvalidTokenError("token expired")
        if not isinstance(user_id, str):
            raise InvalidTokenError("bad payload")
        return payload
