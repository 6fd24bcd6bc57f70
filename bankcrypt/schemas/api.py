"""Pydantic models for API request/response serialization."""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------

class UserCreate(BaseModel):
    """Signup payload – the SSN is encrypted before it reaches the database."""
    email: str = Field(..., min_length=3, max_length=255)
    full_name: str = Field(..., min_length=1, max_length=255)
    ssn: str | None = Field(None, pattern=r"^\d{3}-?\d{2}-?\d{4}$")


class UserResponse(BaseModel):
    id: UUID
    email: str
    full_name: str
    ssn_masked: str | None
    created_at: datetime


# ---------------------------------------------------------------------------
# Encryption sweep
# ---------------------------------------------------------------------------

class SweepFailure(BaseModel):
    record_id: str
    reason: str


class SweepResult(BaseModel):
    store: str
    scanned: int
    encrypted: int
    already_protected: int
    no_value: int
    failures: list[SweepFailure] = []


class MigrationResult(BaseModel):
    migration: str
    status: str
    results: list[SweepResult]


# ---------------------------------------------------------------------------
# Health check
# ---------------------------------------------------------------------------

class HealthResponse(BaseModel):
    status: str = "healthy"
    environment: str
    database: str = "connected"
    encryption: str = "configured"
