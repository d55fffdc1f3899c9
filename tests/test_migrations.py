import pytest
from sqlalchemy import create_engine, inspect, text
from sqlalchemy.exc import IntegrityError

import database
from migrations import (
    ensure_ballot_constraints,
    ensure_events_rubric_version_column,
    ensure_jury_scores_unique_index,
    ensure_profiles_wallet_column,
)


@pytest.fixture
def legacy_engine(tmp_path):
    engine = create_engine(f"sqlite:///{tmp_path / 'legacy.db'}")
    with engine.begin() as conn:
        conn.execute(text("CREATE TABLE events (id INTEGER PRIMARY KEY, name VARCHAR(255), status VARCHAR(20))"))
        conn.execute(text("INSERT INTO events (id, name, status) VALUES (1, 'Old Ideathon', 'VOTING')"))
        conn.execute(text("CREATE TABLE profiles (id INTEGER PRIMARY KEY, full_name VARCHAR(255))"))
        conn.execute(text("INSERT INTO profiles (id, full_name) VALUES (1, 'Old Student')"))
        conn.execute(text("CREATE TABLE jury_scores (id INTEGER PRIMARY KEY, jury_id INTEGER, team_id INTEGER, scores TEXT)"))
        conn.execute(text(
            "INSERT INTO jury_scores (id, jury_id, team_id, scores) VALUES "
            "(1, 7, 3, '{}'), (2, 8, 3, '{}')"
        ))
    yield engine
    engine.dispose()


def test_missing_columns_are_added_with_defaults(legacy_engine):
    ensure_events_rubric_version_column(legacy_engine)
    ensure_profiles_wallet_column(legacy_engine, 750)
    # Second run is a no-op.
    ensure_events_rubric_version_column(legacy_engine)
    ensure_profiles_wallet_column(legacy_engine, 750)

    with legacy_engine.connect() as conn:
        assert conn.execute(text("SELECT rubric_version FROM events")).scalar() == "standard"
        assert conn.execute(text("SELECT wallet_balance FROM profiles")).scalar() == 750


def test_jury_scores_gain_unique_index(legacy_engine):
    ensure_jury_scores_unique_index(legacy_engine)
    ensure_jury_scores_unique_index(legacy_engine)

    index_names = {index["name"] for index in inspect(legacy_engine).get_indexes("jury_scores")}
    assert "uq_jury_scores_jury_team" in index_names

    with pytest.raises(IntegrityError):
        with legacy_engine.begin() as conn:
            conn.execute(text("INSERT INTO jury_scores (jury_id, team_id, scores) VALUES (7, 3, '{}')"))


def test_missing_tables_are_skipped(tmp_path):
    engine = create_engine(f"sqlite:///{tmp_path / 'empty.db'}")
    try:
        ensure_events_rubric_version_column(engine)
        ensure_jury_scores_unique_index(engine)
        ensure_ballot_constraints(engine)
        assert inspect(engine).get_table_names() == []
    finally:
        engine.dispose()


def test_ballot_constraints_on_current_schema(engine):
    ensure_ballot_constraints(engine)
    ensure_ballot_constraints(engine)
    index_names = {index["name"] for index in inspect(engine).get_indexes("ballot_receipts")}
    assert "uq_ballot_receipts_voter_event" in index_names


@pytest.mark.skipif(database.DATABASE_URL != "sqlite://", reason="runs only against the in-memory test database")
def test_run_migrations_sets_and_resets_marker():
    import run_migrations
    from bootstrap import has_bootstrap_marker

    assert run_migrations.main([]) == 0
    assert has_bootstrap_marker() is True
    # Marker set: a plain rerun returns early, --force runs again.
    assert run_migrations.main([]) == 0
    assert run_migrations.main(["--force"]) == 0

    assert run_migrations.main(["--reset-marker"]) == 0
    assert has_bootstrap_marker() is False
