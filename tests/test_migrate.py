"""Tests for the migration command-line entry point."""

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from bankcrypt.etl import migrate
from bankcrypt.models.database import Base
from bankcrypt.models.user import User
from bankcrypt.services.encryption import EncryptionService
from bankcrypt.services.errors import MissingKey
from bankcrypt.services.keys import parse_key

KEY = bytes(range(32))


def test_generate_key_is_accepted_as_configuration():
    key = migrate.generate_key()
    assert len(key) == 64
    assert len(parse_key(key)) == 32
    assert migrate.generate_key() != key


def test_main_generate_key_prints_and_exits(capsys):
    assert migrate.main(["--generate-key"]) == 0
    assert len(capsys.readouterr().out.strip()) == 64


def test_migrate_all_sweeps_sensitive_fields(monkeypatch):
    engine = create_engine(
        "sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool
    )
    Base.metadata.create_all(engine)
    factory = sessionmaker(bind=engine)
    with factory.begin() as session:
        session.add(User(email="ann@example.com", full_name="Ann", ssn="123-45-6789"))

    cipher = EncryptionService(KEY)
    monkeypatch.setattr(migrate, "get_encryption_service", lambda: cipher)

    reports = migrate.migrate_all(factory)

    assert [(r.store, r.encrypted) for r in reports] == [("users.ssn", 1)]
    with factory() as session:
        assert cipher.decrypt(session.query(User).one().ssn) == "123-45-6789"


def test_migrate_all_fails_closed_without_key(monkeypatch):
    def no_key():
        raise MissingKey("ENCRYPTION_KEY is not set")

    monkeypatch.setattr(migrate, "get_encryption_service", no_key)
    with pytest.raises(MissingKey):
        migrate.migrate_all(sessionmaker())
