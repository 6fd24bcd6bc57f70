"""
Process-wide encryption key resolution.

The key is read from configuration once, validated, and cached for the life of
the process. A missing key is fatal everywhere except ENVIRONMENT=test, where a
fixed development key is handed out with a loud warning.
"""

from __future__ import annotations

import logging
import re
import threading

from bankcrypt.config import settings
from bankcrypt.services.errors import InvalidKey, MissingKey

logger = logging.getLogger(__name__)

KEY_SIZE = 32

# Never usable outside the test environment.
INSECURE_TEST_KEY = b"0123456789abcdef0123456789abcdef"
TEST_ENVIRONMENTS = frozenset({"test", "testing"})

_HEX_KEY = re.compile(r"^[0-9a-fA-F]{64}$")


def parse_key(raw_key: str | bytes) -> bytes:
    """
    Turn a configured key into 32 raw bytes.

    Accepts 64 hex characters, or any value whose UTF-8 encoding is exactly
    32 bytes long.
    """
    if isinstance(raw_key, str):
        raw_key = raw_key.strip()
        if _HEX_KEY.match(raw_key):
            return bytes.fromhex(raw_key)
        raw_key = raw_key.encode("utf-8")
    if len(raw_key) != KEY_SIZE:
        raise InvalidKey(
            f"ENCRYPTION_KEY must be {KEY_SIZE} bytes (or 64 hex characters), "
            f"got {len(raw_key)} bytes"
        )
    return bytes(raw_key)


class KeyProvider:
    """Resolves the AES-256 key on first use and caches it."""

    def __init__(self, raw_key: str | bytes | None = None, environment: str | None = None):
        self._raw_key = settings.ENCRYPTION_KEY if raw_key is None else raw_key
        self._environment = (environment or settings.ENVIRONMENT).strip().lower()
        self._key: bytes | None = None
        self._lock = threading.Lock()

    def resolve(self) -> bytes:
        if self._key is not None:
            return self._key
        with self._lock:
            if self._key is None:
                self._key = self._load()
        return self._key

    def _load(self) -> bytes:
        if self._raw_key:
            key = parse_key(self._raw_key)
            logger.info("Encryption key loaded from configuration")
            return key

        if self._environment in TEST_ENVIRONMENTS:
            logger.warning(
                "INSECURE ENCRYPTION KEY IN USE – ENCRYPTION_KEY is unset and "
                "ENVIRONMENT=%s; data encrypted now is readable by anyone",
                self._environment,
            )
            return INSECURE_TEST_KEY

        raise MissingKey(
            "ENCRYPTION_KEY is not set; refusing to handle sensitive fields "
            f"(ENVIRONMENT={self._environment})"
        )


_provider: KeyProvider | None = None
_provider_lock = threading.Lock()


def get_key_provider() -> KeyProvider:
    """Return the process-wide KeyProvider, creating it once."""
    global _provider
    if _provider is None:
        with _provider_lock:
            if _provider is None:
                _provider = KeyProvider()
    return _provider
