"""Error kinds raised by the field-encryption subsystem."""

from __future__ import annotations


class EncryptionError(Exception):
    """Base class for every field-encryption failure."""


class MissingKey(EncryptionError):
    """No encryption key is configured; the subsystem must not start."""


class InvalidKey(MissingKey):
    """A key is configured but is not a usable 32-byte AES-256 key."""


class MalformedEnvelope(EncryptionError):
    """Stored value does not have the nonce:ciphertext:tag hex structure."""


class AuthenticationFailed(EncryptionError):
    """Integrity check failed – the value was tampered with or the key is wrong."""


class UndecodableText(EncryptionError):
    """Value authenticated fine but was encrypted from bytes, not text; use decrypt_bytes()."""


class PerRecordMigrationFailure(EncryptionError):
    """A single record could not be migrated; the sweep carries on without it."""

    def __init__(self, record_id, reason: str):
        super().__init__(f"record {record_id!r}: {reason}")
        self.record_id = record_id
        self.reason = reason
