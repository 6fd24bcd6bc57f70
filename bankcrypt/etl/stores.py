"""
Record stores the encryption sweep can iterate over.

The sweep only needs three things from a store: a scan of (record id, field
value) pairs, a point read, and a compare-and-set write that replaces the field
only if it still holds the value the sweep saw.
"""

from __future__ import annotations

import threading
from typing import Any, Hashable, Iterable, Protocol

from sqlalchemy import inspect, select, update
from sqlalchemy.orm import sessionmaker

from bankcrypt.services.audit import log_action


class RecordStore(Protocol):
    name: str

    def scan(self) -> Iterable[tuple[Hashable, Any]]:
        ...

    def read(self, record_id: Hashable) -> Any:
        ...

    def replace(self, record_id: Hashable, expected: Any, new: str) -> bool:
        """Write `new` only if the field still equals `expected`. Returns True if written."""
        ...


class InMemoryRecordStore:
    """Dict-backed store for tests and one-off scripts."""

    def __init__(self, records: dict[Hashable, Any] | None = None, name: str = "memory"):
        self.name = name
        self.records: dict[Hashable, Any] = dict(records or {})
        self._lock = threading.Lock()

    def scan(self) -> list[tuple[Hashable, Any]]:
        with self._lock:
            return list(self.records.items())

    def read(self, record_id: Hashable) -> Any:
        with self._lock:
            return self.records[record_id]

    def replace(self, record_id: Hashable, expected: Any, new: str) -> bool:
        with self._lock:
            if self.records.get(record_id) != expected:
                return False
            self.records[record_id] = new
            return True


class SqlAlchemyFieldStore:
    """
    One column of one mapped model, e.g. ``SqlAlchemyFieldStore(SessionLocal, User, "ssn")``.

    Each replace() runs in its own transaction together with an audit-log
    entry, so a record is either fully converted and audited or untouched.
    """

    def __init__(
        self,
        session_factory: sessionmaker,
        model: type,
        field: str,
        *,
        actor: str = "encryption_sweep",
    ):
        self._session_factory = session_factory
        self._model = model
        self._field = field
        self._column = getattr(model, field)
        self._pk = inspect(model).primary_key[0]
        self._actor = actor
        self.name = f"{model.__tablename__}.{field}"

    def scan(self) -> list[tuple[Hashable, Any]]:
        with self._session_factory() as session:
            rows = session.execute(
                select(self._pk, self._column).order_by(self._pk)
            ).all()
        return [(row[0], row[1]) for row in rows]

    def read(self, record_id: Hashable) -> Any:
        with self._session_factory() as session:
            return session.execute(
                select(self._column).where(self._pk == record_id)
            ).scalar_one()

    def replace(self, record_id: Hashable, expected: Any, new: str) -> bool:
        with self._session_factory.begin() as session:
            result = session.execute(
                update(self._model)
                .where(self._pk == record_id, self._column == expected)
                .values({self._field: new})
                .execution_options(synchronize_session=False)
            )
            if result.rowcount != 1:
                return False
            log_action(
                session,
                actor=self._actor,
                action="encrypt",
                resource_type=self._model.__name__,
                resource_id=record_id,
                fields=[self._field],
            )
        return True
