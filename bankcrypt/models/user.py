"""
Data models for the banking demo.

Only the columns the encryption subsystem touches are modelled in any detail;
`users.ssn` holds either an envelope string or, for rows written before
field encryption existed, legacy plaintext awaiting the sweep.
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import JSON, Column, DateTime, Enum, Index, Integer, String, Text, Uuid

from bankcrypt.models.database import Base


def _utcnow():
    return datetime.now(timezone.utc)


# ---------------------------------------------------------------------------
# User – account holder identity (contains sensitive fields)
# ---------------------------------------------------------------------------
class User(Base):
    __tablename__ = "users"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    email = Column(String(255), unique=True, nullable=False)
    full_name = Column(String(255), nullable=False)
    ssn = Column(Text, nullable=True, comment="AES-256-GCM envelope (nonce:ciphertext:tag)")
    created_at = Column(DateTime, default=_utcnow, nullable=False)

    __table_args__ = (Index("ix_users_email", "email"),)


# ---------------------------------------------------------------------------
# Audit Log – immutable compliance trail
# ---------------------------------------------------------------------------
class AuditLog(Base):
    __tablename__ = "audit_log"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    actor = Column(String(128), nullable=False, comment="User or service identity")
    action = Column(String(64), nullable=False, comment="create | read | encrypt")
    resource_type = Column(String(64), nullable=False)
    resource_id = Column(String(64), nullable=False)
    detail = Column(JSON, comment="Context for the action – never plaintext values")
    timestamp = Column(DateTime, default=_utcnow, nullable=False)

    __table_args__ = (Index("ix_audit_timestamp", "timestamp"),)


# ---------------------------------------------------------------------------
# Migration Run – history of encryption sweeps
# ---------------------------------------------------------------------------
class MigrationRun(Base):
    __tablename__ = "migration_runs"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    migration_name = Column(String(128), nullable=False)
    status = Column(
        Enum("completed", "partial", name="migration_status_enum"),
        nullable=False,
    )
    started_at = Column(DateTime, nullable=False)
    completed_at = Column(DateTime, nullable=True)
    scanned_count = Column(Integer, default=0)
    encrypted_count = Column(Integer, default=0)
    failures = Column(JSON, default=list)
