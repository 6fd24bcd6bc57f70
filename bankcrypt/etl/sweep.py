"""
Encryption sweep – retrofits field encryption onto legacy plaintext rows.

Demonstrates:
- Idempotent batch migration over a live, partially-encrypted store
- Per-record failure isolation (errors are collected, the sweep continues)
- Compare-and-set writes so concurrent sweeps never corrupt a record
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Hashable

from bankcrypt.etl.stores import RecordStore
from bankcrypt.services.encryption import EncryptionService
from bankcrypt.services.envelope import is_envelope
from bankcrypt.services.errors import PerRecordMigrationFailure

logger = logging.getLogger(__name__)

PLAINTEXT = "plaintext"
PROTECTED = "protected"
NO_VALUE = "no_value"


@dataclass
class SweepReport:
    store: str
    scanned: int = 0
    encrypted: int = 0
    already_protected: int = 0
    no_value: int = 0
    failures: list[PerRecordMigrationFailure] = field(default_factory=list)

    @property
    def converged(self) -> bool:
        """True when this run had nothing left to do."""
        return self.encrypted == 0 and not self.failures

    def to_dict(self) -> dict[str, Any]:
        return {
            "store": self.store,
            "scanned": self.scanned,
            "encrypted": self.encrypted,
            "already_protected": self.already_protected,
            "no_value": self.no_value,
            "failures": [
                {"record_id": str(f.record_id), "reason": f.reason} for f in self.failures
            ],
        }


def classify(value: Any) -> str:
    """
    Decide what the sweep should do with a stored value.

    Anything shaped like an envelope counts as already protected; this is a
    structural check, not a decryption.
    """
    if value is None:
        return NO_VALUE
    if not isinstance(value, str):
        raise TypeError(f"unsupported field type {type(value).__name__}")
    if is_envelope(value):
        return PROTECTED
    return PLAINTEXT


def migrate_record(
    store: RecordStore,
    cipher: EncryptionService,
    record_id: Hashable,
    value: Any,
) -> str:
    """
    Bring one record into compliance. Returns the record's final classification.

    Raises PerRecordMigrationFailure for anything that leaves the record
    unconverted.
    """
    try:
        kind = classify(value)
        if kind != PLAINTEXT:
            return kind

        envelope = cipher.encrypt(value)
        if store.replace(record_id, value, envelope):
            return PLAINTEXT

        # Someone else wrote the field between our read and our write
        current = store.read(record_id)
    except Exception as exc:
        raise PerRecordMigrationFailure(record_id, f"{type(exc).__name__}: {exc}") from exc

    if current is None:
        return NO_VALUE
    if isinstance(current, str) and is_envelope(current):
        return PROTECTED
    raise PerRecordMigrationFailure(record_id, "value changed during sweep; re-run to retry")


def sweep_sensitive_fields(store: RecordStore, cipher: EncryptionService) -> SweepReport:
    """
    Encrypt every unprotected value in the store.

    Safe to run repeatedly: once the store has converged further runs write
    nothing. A failing record is reported and skipped.
    """
    report = SweepReport(store=store.name)
    logger.info("Starting encryption sweep over '%s'", store.name)

    for record_id, value in store.scan():
        report.scanned += 1
        try:
            outcome = migrate_record(store, cipher, record_id, value)
        except PerRecordMigrationFailure as failure:
            report.failures.append(failure)
            logger.error("Sweep '%s' failed on %s", store.name, failure)
            continue

        if outcome == PLAINTEXT:
            report.encrypted += 1
            logger.debug("Encrypted record %s", record_id)
        elif outcome == PROTECTED:
            report.already_protected += 1
        else:
            report.no_value += 1

    logger.info(
        "Sweep '%s' finished – scanned %d, encrypted %d, already protected %d, "
        "no value %d, failed %d",
        store.name,
        report.scanned,
        report.encrypted,
        report.already_protected,
        report.no_value,
        len(report.failures),
    )
    return report
