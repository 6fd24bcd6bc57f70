"""
Envelope codec for encrypted fields.

Wire format (bit-exact, unversioned):

    hex(nonce) ":" hex(ciphertext) ":" hex(tag)

nonce is 12 bytes, tag is 16 bytes, ciphertext is as long as the plaintext.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from bankcrypt.services.errors import MalformedEnvelope

NONCE_SIZE = 12
TAG_SIZE = 16
DELIMITER = ":"

_HEX = re.compile(r"(?:[0-9a-fA-F]{2})*")


@dataclass(frozen=True)
class Envelope:
    nonce: bytes
    ciphertext: bytes
    tag: bytes


def encode_envelope(envelope: Envelope) -> str:
    return DELIMITER.join(
        (envelope.nonce.hex(), envelope.ciphertext.hex(), envelope.tag.hex())
    )


def _decode_segment(name: str, segment: str, size: int | None) -> bytes:
    # bytes.fromhex() tolerates whitespace, so match the alphabet first
    if not _HEX.fullmatch(segment):
        raise MalformedEnvelope(f"{name} segment is not valid hex")
    raw = bytes.fromhex(segment)
    if size is not None and len(raw) != size:
        raise MalformedEnvelope(f"{name} must be {size} bytes, got {len(raw)}")
    return raw


def decode_envelope(text: str) -> Envelope:
    """Parse an envelope string, raising MalformedEnvelope on any structural problem."""
    if not isinstance(text, str):
        raise MalformedEnvelope(f"envelope must be a string, got {type(text).__name__}")

    segments = text.split(DELIMITER)
    if len(segments) != 3:
        raise MalformedEnvelope(f"expected 3 segments, got {len(segments)}")

    nonce_hex, ciphertext_hex, tag_hex = segments
    return Envelope(
        nonce=_decode_segment("nonce", nonce_hex, NONCE_SIZE),
        ciphertext=_decode_segment("ciphertext", ciphertext_hex, None),
        tag=_decode_segment("tag", tag_hex, TAG_SIZE),
    )


def is_envelope(value: object) -> bool:
    """Structural check only – says nothing about whether the value decrypts."""
    try:
        decode_envelope(value)  # type: ignore[arg-type]
    except MalformedEnvelope:
        return False
    return True
