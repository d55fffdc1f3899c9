import pytest
from sqlalchemy import create_engine, event
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import sessionmaker

import portfolio_service
from conftest import build_event
from database import Base
from models import BallotReceipt, Profile, Transaction
from portfolio_service import commit_ballot, get_wallet_status, submit_portfolio
from portfolio_validator import validate_portfolio
from voting_errors import (
    AlreadyVoted,
    BudgetExceeded,
    LedgerReadFailed,
    SubmissionFailed,
    VoterNotFound,
    WrongTeamCount,
)
from wallet_ledger import get_team_total, get_voter_transactions, has_voted


def _ledger(db):
    return db.query(Transaction).order_by(Transaction.id.asc()).all()


def test_accepted_ballot_writes_one_row_per_team(db, demo):
    voter = demo.voters[4]  # Team E
    a, b, c = demo.teams[:3]

    result = submit_portfolio(db, voter.id, {a.id: 400, b.id: 400, c.id: 200})

    assert result.total == 1000
    assert result.entries == [(a.id, 400), (b.id, 400), (c.id, 200)]
    rows = get_voter_transactions(db, voter.id, demo.event.id)
    assert [(tx.receiver_team_id, tx.amount) for tx in rows] == [(a.id, 400), (b.id, 400), (c.id, 200)]
    assert all(tx.ballot_id == result.ballot_id for tx in rows)
    assert has_voted(db, voter.id, demo.event.id) is True


def test_resubmission_is_rejected_and_ledger_unchanged(db, demo):
    voter = demo.voters[4]
    a, b, c = demo.teams[:3]
    submit_portfolio(db, voter.id, {a.id: 400, b.id: 400, c.id: 200})

    with pytest.raises(AlreadyVoted) as excinfo:
        submit_portfolio(db, voter.id, {a.id: 1000})
    assert excinfo.value.to_dict()["ballot_exists"] is True

    with pytest.raises(AlreadyVoted):
        submit_portfolio(db, voter.id, {a.id: 100, b.id: 100, demo.teams[3].id: 100})

    assert [(tx.receiver_team_id, tx.amount) for tx in _ledger(db)] == [(a.id, 400), (b.id, 400), (c.id, 200)]
    assert db.query(BallotReceipt).count() == 1


def test_budget_exceeded_writes_nothing(db, demo):
    voter = demo.voters[4]
    a, b = demo.teams[:2]

    # Over budget with only two teams picked: the budget is reported.
    with pytest.raises(BudgetExceeded) as excinfo:
        submit_portfolio(db, voter.id, {a.id: 400, b.id: 700})
    assert excinfo.value.details == {"allocated": 1100, "available": 1000}

    assert _ledger(db) == []
    assert has_voted(db, voter.id, demo.event.id) is False


def test_two_team_ballot_within_budget_rejected_with_wrong_count(db, demo):
    voter = demo.voters[4]
    a, b = demo.teams[:2]
    with pytest.raises(WrongTeamCount):
        submit_portfolio(db, voter.id, {a.id: 500, b.id: 400})
    assert _ledger(db) == []


def test_failure_on_last_insert_leaves_no_rows(db, demo):
    voter = demo.voters[4]
    a, b, c = demo.teams[:3]
    inserted = []

    def fail_on_third(mapper, connection, target):
        inserted.append(target.receiver_team_id)
        if len(inserted) == 3:
            raise RuntimeError("storage went away")

    event.listen(Transaction, "before_insert", fail_on_third)
    try:
        with pytest.raises(SubmissionFailed) as excinfo:
            submit_portfolio(db, voter.id, {a.id: 400, b.id: 400, c.id: 200})
    finally:
        event.remove(Transaction, "before_insert", fail_on_third)

    assert isinstance(excinfo.value.cause, RuntimeError)
    assert excinfo.value.retryable is True
    assert len(inserted) == 3
    assert _ledger(db) == []
    assert db.query(BallotReceipt).count() == 0
    assert has_voted(db, voter.id, demo.event.id) is False

    # Nothing was recorded, so a retry goes through.
    result = submit_portfolio(db, voter.id, {a.id: 400, b.id: 400, c.id: 200})
    assert len(_ledger(db)) == 3
    assert result.total == 1000


def test_receipt_constraint_turns_lost_race_into_already_voted(db, demo, monkeypatch):
    voter = demo.voters[4]
    a, b, c = demo.teams[:3]
    submit_portfolio(db, voter.id, {a.id: 100, b.id: 100, c.id: 100})

    # Simulate a request whose has-voted checks ran before the first ballot committed.
    monkeypatch.setattr(portfolio_service, "has_voted", lambda *args: False)

    with pytest.raises(AlreadyVoted):
        submit_portfolio(db, voter.id, {a.id: 100, b.id: 100, c.id: 100})

    assert len(_ledger(db)) == 3
    assert db.query(BallotReceipt).count() == 1


class _UnreachableSession:
    def query(self, *args, **kwargs):
        raise OperationalError("SELECT 1", {}, Exception("database is locked"))


def test_receipt_lookup_failure_is_a_ledger_read_error():
    with pytest.raises(LedgerReadFailed) as excinfo:
        portfolio_service._receipt_exists(_UnreachableSession(), 1, 1)
    assert excinfo.value.retryable is True


def test_concurrent_sessions_only_one_ballot_lands(tmp_path):
    engine = create_engine(f"sqlite:///{tmp_path / 'race.db'}", connect_args={"check_same_thread": False})
    Base.metadata.create_all(bind=engine)
    Session = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)

    setup = Session()
    demo = build_event(setup)
    voter_id = demo.voters[4].id
    team_ids = [team.id for team in demo.teams[:4]]
    setup.close()

    first, second = Session(), Session()
    try:
        # Request two validated its ballot but has not written it yet.
        voter_in_second = second.query(Profile).filter(Profile.id == voter_id).first()
        pending = validate_portfolio(
            {team_ids[0]: 300, team_ids[1]: 300, team_ids[3]: 300},
            wallet_balance=voter_in_second.wallet_balance,
            own_team_id=voter_in_second.team_id,
        )

        submit_portfolio(first, voter_id, {team_ids[0]: 400, team_ids[1]: 400, team_ids[2]: 200})

        with pytest.raises(AlreadyVoted):
            commit_ballot(second, voter_in_second, pending)
    finally:
        first.close()
        second.close()

    check = Session()
    try:
        rows = check.query(Transaction).order_by(Transaction.id.asc()).all()
        assert [(tx.receiver_team_id, tx.amount) for tx in rows] == [
            (team_ids[0], 400), (team_ids[1], 400), (team_ids[2], 200)
        ]
    finally:
        check.close()
        engine.dispose()


def test_team_totals_accumulate_across_voters(db):
    demo = build_event(db, voters_per_team=2)
    a, b, c, d = demo.teams[:4]
    e_voters = [v for v in demo.voters if v.team_id == demo.teams[4].id]

    submit_portfolio(db, e_voters[0].id, {a.id: 500, b.id: 300, c.id: 200})
    submit_portfolio(db, e_voters[1].id, {a.id: 100, b.id: 100, d.id: 100})

    assert get_team_total(db, a.id) == 600
    assert get_team_total(db, b.id) == 400
    assert get_team_total(db, d.id) == 100
    assert get_team_total(db, demo.teams[4].id) == 0


def test_unknown_voter(db, demo):
    with pytest.raises(VoterNotFound):
        submit_portfolio(db, 9999, {demo.teams[0].id: 100})


def test_wallet_status_tracks_spend(db, demo):
    voter = demo.voters[4]
    a, b, c = demo.teams[:3]

    before = get_wallet_status(db, voter.id)
    assert before["team_id"] == voter.team_id
    assert before["has_voted"] is False
    assert before["remaining"] == 1000

    submit_portfolio(db, voter.id, {a.id: 300, b.id: 300, c.id: 150})
    after = get_wallet_status(db, voter.id)
    assert after["spent"] == 750
    assert after["remaining"] == 250
    assert after["has_voted"] is True
    assert after["required_team_count"] == 3
