"""Tests for the nonce:ciphertext:tag envelope codec."""

import pytest

from bankcrypt.services.envelope import Envelope, decode_envelope, encode_envelope, is_envelope
from bankcrypt.services.errors import MalformedEnvelope

NONCE = bytes(range(12))
TAG = bytes(range(100, 116))
VALID = NONCE.hex() + ":" + "deadbeef" + ":" + TAG.hex()


def test_encode_is_lowercase_hex_joined_by_colons():
    envelope = Envelope(nonce=NONCE, ciphertext=b"\xde\xad\xbe\xef", tag=TAG)
    assert encode_envelope(envelope) == VALID


def test_decode_splits_components():
    envelope = decode_envelope(VALID)
    assert envelope == Envelope(nonce=NONCE, ciphertext=b"\xde\xad\xbe\xef", tag=TAG)


def test_decode_accepts_uppercase_and_empty_ciphertext():
    envelope = decode_envelope(NONCE.hex().upper() + "::" + TAG.hex().upper())
    assert envelope.ciphertext == b""


@pytest.mark.parametrize(
    "text, reason",
    [
        (NONCE.hex() + ":" + TAG.hex(), "3 segments"),
        (VALID + ":00", "3 segments"),
        ("", "3 segments"),
        (NONCE.hex()[:-2] + ":00:" + TAG.hex(), "nonce must be 12 bytes"),
        (NONCE.hex() + ":00:" + TAG.hex() + "00", "tag must be 16 bytes"),
        (NONCE.hex() + ":abc:" + TAG.hex(), "ciphertext segment is not valid hex"),
        (NONCE.hex() + ":0g:" + TAG.hex(), "ciphertext segment is not valid hex"),
        (" " + VALID, "nonce segment is not valid hex"),
        (VALID + "\n", "tag segment is not valid hex"),
        (NONCE.hex() + ":deadbeef\n:" + TAG.hex(), "ciphertext segment is not valid hex"),
        (NONCE.hex() + "\n:deadbeef:" + TAG.hex(), "nonce segment is not valid hex"),
    ],
)
def test_decode_rejects_bad_structure(text, reason):
    with pytest.raises(MalformedEnvelope, match=reason):
        decode_envelope(text)


def test_decode_rejects_non_string():
    with pytest.raises(MalformedEnvelope):
        decode_envelope(b"not text")  # type: ignore[arg-type]


@pytest.mark.parametrize(
    "value, expected",
    [
        (VALID, True),
        ("123-45-6789", False),
        ("12:34:56", False),
        (None, False),
        (12345, False),
        (VALID + "\n", False),
        (NONCE.hex() + ":deadbeef\n:" + TAG.hex(), False),
    ],
)
def test_is_envelope(value, expected):
    assert is_envelope(value) is expected
