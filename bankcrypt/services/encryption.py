"""
Application-layer encryption for sensitive banking fields (SSN and the like).

Demonstrates:
- AES-256-GCM authenticated encryption with a fresh random nonce per call
- Key injected at construction, resolved once per process
- All-or-nothing decryption: unverified bytes are never returned
"""

from __future__ import annotations

import os
import threading

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from bankcrypt.services.envelope import (
    NONCE_SIZE,
    TAG_SIZE,
    Envelope,
    decode_envelope,
    encode_envelope,
)
from bankcrypt.services.errors import AuthenticationFailed, InvalidKey, UndecodableText
from bankcrypt.services.keys import KEY_SIZE, get_key_provider

TEXT_ENCODING = "utf-8"


class EncryptionService:
    """Wraps AES-256-GCM for single field values."""

    def __init__(self, key: bytes):
        if not isinstance(key, (bytes, bytearray)) or len(key) != KEY_SIZE:
            raise InvalidKey(f"AES-256-GCM requires a {KEY_SIZE}-byte key")
        self._aesgcm = AESGCM(bytes(key))

    def encrypt(self, plaintext: str | bytes) -> str:
        """Encrypt a value and return its envelope string."""
        if isinstance(plaintext, str):
            data = plaintext.encode(TEXT_ENCODING)
        elif isinstance(plaintext, (bytes, bytearray, memoryview)):
            data = bytes(plaintext)
        else:
            raise TypeError(f"cannot encrypt {type(plaintext).__name__}")
        nonce = os.urandom(NONCE_SIZE)
        sealed = self._aesgcm.encrypt(nonce, data, None)
        return encode_envelope(
            Envelope(nonce=nonce, ciphertext=sealed[:-TAG_SIZE], tag=sealed[-TAG_SIZE:])
        )

    def decrypt_bytes(self, envelope: str) -> bytes:
        """Verify and decrypt an envelope string, returning raw bytes."""
        parts = decode_envelope(envelope)
        try:
            return self._aesgcm.decrypt(parts.nonce, parts.ciphertext + parts.tag, None)
        except InvalidTag:
            raise AuthenticationFailed(
                "authentication tag mismatch – value tampered with or wrong key"
            ) from None

    def decrypt(self, envelope: str) -> str:
        """
        Verify and decrypt an envelope string back to the original text.

        Values stored via encrypt(bytes) should be read with decrypt_bytes().
        """
        data = self.decrypt_bytes(envelope)
        try:
            return data.decode(TEXT_ENCODING)
        except UnicodeDecodeError:
            raise UndecodableText("decrypted value is not UTF-8 text") from None


_service: EncryptionService | None = None
_service_lock = threading.Lock()


def get_encryption_service() -> EncryptionService:
    """Process-wide service keyed by the configured key (FastAPI dependency)."""
    global _service
    if _service is None:
        with _service_lock:
            if _service is None:
                _service = EncryptionService(get_key_provider().resolve())
    return _service
