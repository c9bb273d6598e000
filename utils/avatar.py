"""
Gravatar URL derivation for newly registered users.
"""

from __future__ import annotations

import hashlib
from urllib.parse import urlencode

_GRAVATAR_BASE = "https://www.gravatar.com/avatar"

# size 200px, PG rating, "mystery man" fallback image
_GRAVATAR_PARAMS = {"s": "200", "r": "pg", "d": "mm"}


def gravatar_url(email: str) -> str:
    """
    Return the Gravatar URL for ``email``.

    The address is trimmed and lower-cased before hashing, and query
    parameters are emitted in sorted order so the URL is stable.
    """
    digest = hashlib.md5(email.strip().lower().encode()).hexdigest()
    query = urlencode(sorted(_GRAVATAR_PARAMS.items()))
    return f"{_GRAVATAR_BASE}/{digest}?{query}"
