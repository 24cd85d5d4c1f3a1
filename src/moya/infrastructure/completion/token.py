"""Short-lived signed credentials for the Zhipu BigModel API.

A Zhipu API key has the form ``<id>.<secret>``. Each request carries a JWT
signed with the secret; a new one is minted for every call.
"""

import time

from jose import jwt

from moya.core.errors import ConfigurationError

ALGORITHM = "HS256"


def split_api_key(api_key: str) -> tuple[str, str]:
    """Split ``<id>.<secret>``.

    Raises:
        ConfigurationError: If the key is missing or not in that form
    """
    if not api_key:
        raise ConfigurationError("MOYA_ZHIPU_API_KEY is not configured", setting="zhipu_api_key")
    key_id, _, secret = api_key.partition(".")
    if not key_id or not secret:
        raise ConfigurationError("Invalid Zhipu API key format, expected <id>.<secret>", setting="zhipu_api_key")
    return key_id, secret


def generate_token(api_key: str, ttl_seconds: int = 3600, now_ms: int | None = None) -> str:
    """Mint a signed token valid for ``ttl_seconds``. Timestamps are in milliseconds."""
    key_id, secret = split_api_key(api_key)
    now = now_ms if now_ms is not None else int(time.time() * 1000)
    claims = {
        "api_key": key_id,
        "timestamp": now,
        "exp": now + ttl_seconds * 1000,
    }
    return jwt.encode(claims, secret, algorithm=ALGORITHM, headers={"sign_type": "SIGN"})
