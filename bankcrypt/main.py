"""
FastAPI application entrypoint.

Run locally:  uvicorn bankcrypt.main:app --reload
"""

import logging

from fastapi import FastAPI

from bankcrypt.api.routes import router
from bankcrypt.config import settings
from bankcrypt.models.database import Base, engine
from bankcrypt.services.keys import get_key_provider

logging.basicConfig(level=settings.LOG_LEVEL, format="%(levelname)s | %(name)s | %(message)s")

app = FastAPI(
    title="Bank Field Encryption API",
    description=(
        "Field-level AES-256-GCM encryption for sensitive account-holder data, "
        "with an idempotent sweep that encrypts legacy plaintext rows."
    ),
    version="1.0.0",
)

app.include_router(router, prefix="/api/v1")


@app.on_event("startup")
def on_startup():
    # Fail closed: no key, no server
    get_key_provider().resolve()
    Base.metadata.create_all(bind=engine)
