"""
Backfill encryption for existing rows.

Run:  python -m bankcrypt.etl.migrate
      python -m bankcrypt.etl.migrate --generate-key

Requires ENCRYPTION_KEY to be set (except with ENVIRONMENT=test).
"""

from __future__ import annotations

import argparse
import logging
import secrets
import sys

from bankcrypt.config import settings
from bankcrypt.etl.stores import SqlAlchemyFieldStore
from bankcrypt.etl.sweep import SweepReport, sweep_sensitive_fields
from bankcrypt.models.database import Base, SessionLocal, engine
from bankcrypt.models.user import User
from bankcrypt.services.encryption import get_encryption_service
from bankcrypt.services.keys import KEY_SIZE

logger = logging.getLogger(__name__)

# (model, column) pairs holding sensitive values
SENSITIVE_FIELDS = [(User, "ssn")]


def generate_key() -> str:
    """A fresh key in the hex form ENCRYPTION_KEY accepts."""
    return secrets.token_hex(KEY_SIZE)


def migrate_all(session_factory=SessionLocal) -> list[SweepReport]:
    # Resolve the key before touching any row so a bad config fails closed
    cipher = get_encryption_service()
    reports = []
    for model, field in SENSITIVE_FIELDS:
        store = SqlAlchemyFieldStore(session_factory, model, field)
        reports.append(sweep_sensitive_fields(store, cipher))
    return reports


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Encrypt legacy plaintext sensitive fields.")
    parser.add_argument(
        "--generate-key",
        action="store_true",
        help="print a new ENCRYPTION_KEY value and exit",
    )
    args = parser.parse_args(argv)

    if args.generate_key:
        print(generate_key())
        return 0

    logging.basicConfig(
        level=settings.LOG_LEVEL, format="%(levelname)s | %(name)s | %(message)s"
    )
    Base.metadata.create_all(bind=engine)

    reports = migrate_all()
    failed = sum(len(r.failures) for r in reports)
    if failed:
        logger.error("%d record(s) failed; re-run the migration to retry them", failed)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
