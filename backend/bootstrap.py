from __future__ import annotations

import logging
from datetime import datetime, timezone

from sqlalchemy import inspect

from database import Base, engine, get_db
from migrations import (
    ensure_ballot_constraints,
    ensure_events_rubric_version_column,
    ensure_jury_scores_unique_index,
    ensure_profiles_wallet_column,
)
from models import DEFAULT_WALLET_BALANCE, SystemConfig

logger = logging.getLogger(__name__)

MIGRATION_MARKER_KEY = "migration:backend_bootstrap:v1"


def has_bootstrap_marker() -> bool:
    if not inspect(engine).has_table(SystemConfig.__tablename__):
        return False
    db = next(get_db())
    try:
        marker = db.query(SystemConfig).filter(SystemConfig.key == MIGRATION_MARKER_KEY).first()
        return marker is not None
    finally:
        db.close()


def set_bootstrap_marker() -> None:
    db = next(get_db())
    try:
        marker = db.query(SystemConfig).filter(SystemConfig.key == MIGRATION_MARKER_KEY).first()
        value = datetime.now(timezone.utc).isoformat()
        if marker:
            marker.value = value
        else:
            db.add(SystemConfig(key=MIGRATION_MARKER_KEY, value=value))
        db.commit()
    finally:
        db.close()


def clear_bootstrap_marker() -> bool:
    db = next(get_db())
    try:
        marker = db.query(SystemConfig).filter(SystemConfig.key == MIGRATION_MARKER_KEY).first()
        if not marker:
            return False
        db.delete(marker)
        db.commit()
        return True
    finally:
        db.close()


def run_bootstrap_migrations() -> None:
    ensure_events_rubric_version_column(engine)
    ensure_profiles_wallet_column(engine, DEFAULT_WALLET_BALANCE)
    ensure_jury_scores_unique_index(engine)

    Base.metadata.create_all(bind=engine)

    ensure_ballot_constraints(engine)
    logger.info("Voting tables and ledger constraints are in place.")
