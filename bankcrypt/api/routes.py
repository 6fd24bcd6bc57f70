"""
FastAPI routes – the API surface around the field-encryption subsystem.

Demonstrates:
- Dependency injection (database session and encryption service via Depends)
- Sensitive values encrypted on write and only ever shown masked
- Running the encryption sweep via an HTTP trigger
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import text
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, sessionmaker

from bankcrypt.config import settings
from bankcrypt.etl.migrate import SENSITIVE_FIELDS
from bankcrypt.etl.stores import SqlAlchemyFieldStore
from bankcrypt.etl.sweep import sweep_sensitive_fields
from bankcrypt.models.database import get_db
from bankcrypt.models.user import MigrationRun, User
from bankcrypt.schemas.api import (
    HealthResponse,
    MigrationResult,
    SweepResult,
    UserCreate,
    UserResponse,
)
from bankcrypt.services.audit import log_action
from bankcrypt.services.encryption import EncryptionService, get_encryption_service
from bankcrypt.services.errors import AuthenticationFailed, MalformedEnvelope, MissingKey
from bankcrypt.services.keys import get_key_provider

logger = logging.getLogger(__name__)

router = APIRouter()

MIGRATION_NAME = "encrypt_sensitive_fields"


def mask_ssn(ssn: str) -> str:
    digits = ssn.replace("-", "")
    return f"***-**-{digits[-4:]}"


def _to_response(user: User, ssn: str | None) -> UserResponse:
    return UserResponse(
        id=user.id,
        email=user.email,
        full_name=user.full_name,
        ssn_masked=mask_ssn(ssn) if ssn else None,
        created_at=user.created_at,
    )


# ---------------------------------------------------------------------------
# Health check
# ---------------------------------------------------------------------------

@router.get("/health", response_model=HealthResponse)
def health_check(db: Session = Depends(get_db)):
    """Verifies DB connectivity and that an encryption key is configured."""
    try:
        db.execute(text("SELECT 1"))
        db_status = "connected"
    except Exception:
        db_status = "disconnected"
    try:
        get_key_provider().resolve()
        key_status = "configured"
    except MissingKey:
        key_status = "missing"
    return HealthResponse(
        status="healthy" if db_status == "connected" and key_status == "configured" else "degraded",
        environment=settings.ENVIRONMENT,
        database=db_status,
        encryption=key_status,
    )


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------

@router.post("/users", response_model=UserResponse, status_code=201)
def create_user(
    request: UserCreate,
    db: Session = Depends(get_db),
    cipher: EncryptionService = Depends(get_encryption_service),
):
    """Create a user, storing the SSN only as an encrypted envelope."""
    user = User(
        email=request.email,
        full_name=request.full_name,
        ssn=cipher.encrypt(request.ssn) if request.ssn else None,
    )
    db.add(user)
    try:
        db.flush()
    except IntegrityError:
        db.rollback()
        raise HTTPException(status_code=409, detail="Email already registered")

    log_action(
        db,
        actor="api_user",
        action="create",
        resource_type="User",
        resource_id=user.id,
        fields=["ssn"] if user.ssn else [],
    )
    db.commit()
    return _to_response(user, request.ssn)


@router.get("/users/{user_id}", response_model=UserResponse)
def get_user(
    user_id: UUID,
    db: Session = Depends(get_db),
    cipher: EncryptionService = Depends(get_encryption_service),
):
    """Retrieve a user; the SSN is decrypted and returned masked."""
    user = db.get(User, user_id)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")

    ssn = None
    if user.ssn is not None:
        try:
            ssn = cipher.decrypt(user.ssn)
        except MalformedEnvelope:
            raise HTTPException(
                status_code=409,
                detail=f"Sensitive field is not encrypted yet; run the {MIGRATION_NAME} migration",
            )
        except AuthenticationFailed:
            logger.error("Integrity check failed for User/%s ssn", user.id)
            raise HTTPException(status_code=500, detail="Stored value failed integrity check")

    log_action(
        db,
        actor="api_user",
        action="read",
        resource_type="User",
        resource_id=user.id,
        fields=["ssn"] if ssn else [],
    )
    db.commit()
    return _to_response(user, ssn)


# ---------------------------------------------------------------------------
# Encryption sweep trigger
# ---------------------------------------------------------------------------

@router.post("/migrations/encrypt-sensitive-fields", response_model=MigrationResult)
def encrypt_sensitive_fields(
    db: Session = Depends(get_db),
    cipher: EncryptionService = Depends(get_encryption_service),
):
    """
    Encrypt every legacy plaintext sensitive field.
    Idempotent – calling it again after convergence changes nothing.
    """
    started_at = datetime.now(timezone.utc)
    session_factory = sessionmaker(bind=db.get_bind(), autocommit=False, autoflush=False)

    reports = [
        sweep_sensitive_fields(SqlAlchemyFieldStore(session_factory, model, field), cipher)
        for model, field in SENSITIVE_FIELDS
    ]
    status = "partial" if any(r.failures for r in reports) else "completed"

    db.add(
        MigrationRun(
            migration_name=MIGRATION_NAME,
            status=status,
            started_at=started_at,
            completed_at=datetime.now(timezone.utc),
            scanned_count=sum(r.scanned for r in reports),
            encrypted_count=sum(r.encrypted for r in reports),
            failures=[f for r in reports for f in r.to_dict()["failures"]],
        )
    )
    db.commit()

    return MigrationResult(
        migration=MIGRATION_NAME,
        status=status,
        results=[SweepResult(**r.to_dict()) for r in reports],
    )
