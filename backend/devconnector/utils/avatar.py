"""
Gravatar URL construction for new accounts.
"""
import hashlib
from urllib.parse import urlencode

from devconnector.config import get_settings

GRAVATAR_BASE_URL = "https://www.gravatar.com/avatar/"


def gravatar_url(email: str) -> str:
    """Avatar URL keyed by the MD5 of the trimmed, lower-cased email."""
    settings = get_settings()
    digest = hashlib.md5(email.strip().lower().encode("utf-8")).hexdigest()
    query = urlencode({
        "s": settings.avatar_size,
        "r": settings.avatar_rating,
        "d": settings.avatar_default,
    })
    return f"{GRAVATAR_BASE_URL}{digest}?{query}"
