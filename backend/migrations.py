import logging

from sqlalchemy import inspect, text

logger = logging.getLogger(__name__)


def _table_exists(conn, table_name: str) -> bool:
    return inspect(conn).has_table(table_name)


def _column_exists(conn, table_name: str, column_name: str) -> bool:
    if not _table_exists(conn, table_name):
        return False
    return any(col["name"] == column_name for col in inspect(conn).get_columns(table_name))


def _ensure_unique_index(engine, table_name: str, index_name: str, columns: str) -> None:
    with engine.begin() as conn:
        if not _table_exists(conn, table_name):
            return
        conn.execute(text(f"CREATE UNIQUE INDEX IF NOT EXISTS {index_name} ON {table_name} ({columns})"))


def ensure_events_rubric_version_column(engine):
    with engine.begin() as conn:
        if _table_exists(conn, "events") and not _column_exists(conn, "events", "rubric_version"):
            conn.execute(text("ALTER TABLE events ADD COLUMN rubric_version VARCHAR(20) NOT NULL DEFAULT 'standard'"))
            logger.info("Added events.rubric_version column")


def ensure_profiles_wallet_column(engine, default_balance: int):
    with engine.begin() as conn:
        if _table_exists(conn, "profiles") and not _column_exists(conn, "profiles", "wallet_balance"):
            conn.execute(text(f"ALTER TABLE profiles ADD COLUMN wallet_balance INTEGER NOT NULL DEFAULT {int(default_balance)}"))
            logger.info("Added profiles.wallet_balance column")


def ensure_jury_scores_unique_index(engine):
    _ensure_unique_index(engine, "jury_scores", "uq_jury_scores_jury_team", "jury_id, team_id")


def ensure_ballot_constraints(engine):
    _ensure_unique_index(engine, "ballot_receipts", "uq_ballot_receipts_voter_event", "voter_id, event_id")
    _ensure_unique_index(engine, "transactions", "uq_transactions_ballot_team", "ballot_id, receiver_team_id")
