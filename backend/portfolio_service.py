import logging
from dataclasses import dataclass, field
from typing import Any, List, Mapping, Optional, Tuple

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from models import BallotReceipt, Profile, Team
from portfolio_validator import REQUIRED_TEAM_COUNT, ValidatedPortfolio, validate_portfolio
from voting_errors import AlreadyVoted, BudgetExceeded, LedgerReadFailed, SubmissionFailed, VoterNotFound, VotingError
from wallet_ledger import get_spent_total, has_voted, record_transactions

logger = logging.getLogger(__name__)


@dataclass
class SubmissionResult:
    voter_id: int
    event_id: int
    ballot_id: int
    entries: List[Tuple[int, int]] = field(default_factory=list)

    @property
    def total(self) -> int:
        return sum(amount for _, amount in self.entries)


def _get_voter(db: Session, voter_id: int) -> Profile:
    try:
        voter = db.query(Profile).filter(Profile.id == voter_id).first()
    except SQLAlchemyError as exc:
        raise LedgerReadFailed(exc) from exc
    if not voter or voter.event_id is None:
        raise VoterNotFound(voter_id)
    return voter


def _event_team_ids(db: Session, event_id: int) -> List[int]:
    try:
        return [row.id for row in db.query(Team.id).filter(Team.event_id == event_id).all()]
    except SQLAlchemyError as exc:
        raise LedgerReadFailed(exc) from exc


def _receipt_exists(db: Session, voter_id: int, event_id: int) -> bool:
    try:
        return db.query(BallotReceipt.id).filter(
            BallotReceipt.voter_id == voter_id,
            BallotReceipt.event_id == event_id,
        ).first() is not None
    except SQLAlchemyError as exc:
        logger.error(f"Could not check ballot receipt for voter {voter_id}: {exc}")
        raise LedgerReadFailed(exc) from exc


def commit_ballot(db: Session, voter: Profile, portfolio: ValidatedPortfolio) -> SubmissionResult:
    """Write one validated ballot as a single unit of work.

    The prior-ballot and budget checks are repeated inside the same database
    transaction as the inserts. Either every ledger row lands or none do.
    """
    event_id = voter.event_id
    try:
        if has_voted(db, voter.id, event_id):
            raise AlreadyVoted(voter.id, event_id)
        remaining = voter.wallet_balance - get_spent_total(db, voter.id, event_id)
        if portfolio.total > remaining:
            raise BudgetExceeded(allocated=portfolio.total, available=remaining)

        receipt = record_transactions(db, voter.id, event_id, portfolio.entries)
        db.commit()
    except VotingError:
        db.rollback()
        raise
    except IntegrityError as exc:
        db.rollback()
        # Losing side of two concurrent submissions trips the receipt constraint.
        if _receipt_exists(db, voter.id, event_id):
            logger.info(f"Concurrent duplicate ballot rejected for voter {voter.id} in event {event_id}")
            raise AlreadyVoted(voter.id, event_id) from exc
        logger.error(f"Portfolio submission failed for voter {voter.id}: {exc}")
        raise SubmissionFailed(exc) from exc
    except Exception as exc:
        db.rollback()
        logger.error(f"Portfolio submission failed for voter {voter.id}: {exc}")
        raise SubmissionFailed(exc) from exc

    logger.info(
        f"Portfolio recorded: voter={voter.id} event={event_id} ballot={receipt.id} "
        f"teams={portfolio.team_ids} total={portfolio.total}"
    )
    return SubmissionResult(
        voter_id=voter.id,
        event_id=event_id,
        ballot_id=receipt.id,
        entries=list(portfolio.entries),
    )


def submit_portfolio(
    db: Session,
    voter_id: int,
    allocation: Mapping[Any, Any],
    *,
    required_count: Optional[int] = None,
) -> SubmissionResult:
    voter = _get_voter(db, voter_id)

    # A stored ballot is terminal, so report it before any shape error.
    if has_voted(db, voter.id, voter.event_id):
        logger.info(f"Ballot resubmission rejected for voter {voter.id} in event {voter.event_id}")
        raise AlreadyVoted(voter.id, voter.event_id)

    try:
        portfolio = validate_portfolio(
            allocation,
            wallet_balance=voter.wallet_balance,
            own_team_id=voter.team_id,
            required_count=required_count or REQUIRED_TEAM_COUNT,
            event_team_ids=_event_team_ids(db, voter.event_id),
        )
    except VotingError as exc:
        logger.info(f"Portfolio rejected for voter {voter.id}: {exc.code}")
        raise

    # Release the read transaction so the write starts from fresh data.
    db.rollback()
    return commit_ballot(db, voter, portfolio)


def get_wallet_status(db: Session, voter_id: int) -> dict:
    voter = _get_voter(db, voter_id)
    spent = get_spent_total(db, voter.id, voter.event_id)
    return {
        "voter_id": voter.id,
        "event_id": voter.event_id,
        "team_id": voter.team_id,
        "wallet_balance": voter.wallet_balance,
        "spent": spent,
        "remaining": voter.wallet_balance - spent,
        "has_voted": has_voted(db, voter.id, voter.event_id),
        "required_team_count": REQUIRED_TEAM_COUNT,
    }
