"""Tests for process-wide key resolution."""

import logging
import threading

import pytest

from bankcrypt.services.errors import InvalidKey, MissingKey
from bankcrypt.services.keys import INSECURE_TEST_KEY, KeyProvider, parse_key

HEX_KEY = "00112233445566778899aabbccddeeff" * 2


def test_parse_hex_key():
    assert parse_key(HEX_KEY) == bytes.fromhex(HEX_KEY)


def test_parse_utf8_key():
    assert parse_key("0123456789abcdef0123456789abcdef") == b"0123456789abcdef0123456789abcdef"


@pytest.mark.parametrize("raw", ["too-short", "x" * 33, HEX_KEY[:-2], b"\x00" * 31])
def test_wrong_length_key_is_fatal(raw):
    with pytest.raises(InvalidKey):
        parse_key(raw)


def test_configured_key_is_used():
    assert KeyProvider(raw_key=HEX_KEY, environment="production").resolve() == bytes.fromhex(HEX_KEY)


@pytest.mark.parametrize("environment", ["production", "development", "staging"])
def test_missing_key_fails_closed_outside_tests(environment):
    provider = KeyProvider(raw_key="", environment=environment)
    with pytest.raises(MissingKey):
        provider.resolve()


def test_insecure_default_only_in_test_environment(caplog):
    provider = KeyProvider(raw_key="", environment="test")
    with caplog.at_level(logging.WARNING):
        key = provider.resolve()

    assert key == INSECURE_TEST_KEY
    assert "INSECURE ENCRYPTION KEY" in caplog.text


def test_key_is_not_logged(caplog):
    with caplog.at_level(logging.DEBUG):
        KeyProvider(raw_key=HEX_KEY, environment="production").resolve()
    assert HEX_KEY not in caplog.text


def test_resolution_happens_once_under_concurrent_first_use(monkeypatch):
    calls = []
    original_load = KeyProvider._load

    def counting_load(self):
        calls.append(1)
        return original_load(self)

    monkeypatch.setattr(KeyProvider, "_load", counting_load)
    provider = KeyProvider(raw_key=HEX_KEY, environment="production")
    barrier = threading.Barrier(8)
    results = []

    def worker():
        barrier.wait()
        results.append(provider.resolve())

    threads = [threading.Thread(target=worker) for _ in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert len(calls) == 1
    assert len(set(results)) == 1
