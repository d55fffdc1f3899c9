import logging
from typing import Dict, Iterable, List, Tuple

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from models import BallotReceipt, Profile, Team, Transaction
from voting_errors import LedgerReadFailed

logger = logging.getLogger(__name__)


def _event_transactions_query(db: Session, event_id: int):
    return (
        db.query(Transaction)
        .join(Team, Transaction.receiver_team_id == Team.id)
        .filter(Team.event_id == event_id)
    )


def record_transactions(
    db: Session,
    voter_id: int,
    event_id: int,
    entries: Iterable[Tuple[int, int]],
) -> BallotReceipt:
    """Stage one ballot (receipt plus one ledger row per entry) in the open transaction.

    Nothing is committed here; the caller owns the transactional boundary.
    """
    receipt = BallotReceipt(voter_id=voter_id, event_id=event_id)
    db.add(receipt)
    db.flush()
    for team_id, amount in entries:
        db.add(Transaction(
            ballot_id=receipt.id,
            sender_id=voter_id,
            receiver_team_id=team_id,
            amount=amount,
        ))
        db.flush()
    return receipt


def get_voter_transactions(db: Session, voter_id: int, event_id: int) -> List[Transaction]:
    try:
        return (
            _event_transactions_query(db, event_id)
            .filter(Transaction.sender_id == voter_id)
            .order_by(Transaction.id.asc())
            .all()
        )
    except SQLAlchemyError as exc:
        logger.error(f"Ledger read failed for voter {voter_id} in event {event_id}: {exc}")
        raise LedgerReadFailed(exc) from exc


def has_voted(db: Session, voter_id: int, event_id: int) -> bool:
    try:
        row = (
            _event_transactions_query(db, event_id)
            .filter(Transaction.sender_id == voter_id)
            .with_entities(Transaction.id)
            .first()
        )
    except SQLAlchemyError as exc:
        logger.error(f"Ledger read failed for voter {voter_id} in event {event_id}: {exc}")
        raise LedgerReadFailed(exc) from exc
    return row is not None


def get_spent_total(db: Session, voter_id: int, event_id: int) -> int:
    try:
        total = (
            _event_transactions_query(db, event_id)
            .filter(Transaction.sender_id == voter_id)
            .with_entities(func.coalesce(func.sum(Transaction.amount), 0))
            .scalar()
        )
    except SQLAlchemyError as exc:
        logger.error(f"Ledger read failed for voter {voter_id} in event {event_id}: {exc}")
        raise LedgerReadFailed(exc) from exc
    return int(total or 0)


def get_team_total(db: Session, team_id: int) -> int:
    try:
        total = (
            db.query(func.coalesce(func.sum(Transaction.amount), 0))
            .filter(Transaction.receiver_team_id == team_id)
            .scalar()
        )
    except SQLAlchemyError as exc:
        logger.error(f"Ledger read failed for team {team_id}: {exc}")
        raise LedgerReadFailed(exc) from exc
    return int(total or 0)


def get_team_totals(db: Session, event_id: int) -> Dict[int, int]:
    """Sum received per team of the event; teams without investments map to 0."""
    try:
        rows = (
            db.query(Team.id, func.coalesce(func.sum(Transaction.amount), 0))
            .outerjoin(Transaction, Transaction.receiver_team_id == Team.id)
            .filter(Team.event_id == event_id)
            .group_by(Team.id)
            .all()
        )
    except SQLAlchemyError as exc:
        logger.error(f"Ledger read failed for event {event_id}: {exc}")
        raise LedgerReadFailed(exc) from exc
    return {team_id: int(total or 0) for team_id, total in rows}


def get_event_transactions(db: Session, event_id: int) -> List[Transaction]:
    try:
        return _event_transactions_query(db, event_id).order_by(Transaction.id.asc()).all()
    except SQLAlchemyError as exc:
        logger.error(f"Ledger read failed for event {event_id}: {exc}")
        raise LedgerReadFailed(exc) from exc


def build_investments_overview(db: Session, event_id: int) -> dict:
    transactions = get_event_transactions(db, event_id)
    try:
        teams = db.query(Team).filter(Team.event_id == event_id).order_by(Team.id.asc()).all()
        sender_ids = sorted({tx.sender_id for tx in transactions})
        investors = db.query(Profile).filter(Profile.id.in_(sender_ids)).all() if sender_ids else []
    except SQLAlchemyError as exc:
        logger.error(f"Investments overview read failed for event {event_id}: {exc}")
        raise LedgerReadFailed(exc) from exc

    team_names = {team.id: team.name for team in teams}
    investor_names = {profile.id: profile.full_name for profile in investors}

    grouped: Dict[int, list] = {}
    team_totals: Dict[int, int] = {team.id: 0 for team in teams}
    for tx in transactions:
        grouped.setdefault(tx.sender_id, []).append({
            "team_id": tx.receiver_team_id,
            "team_name": team_names.get(tx.receiver_team_id, ""),
            "amount": tx.amount,
            "created_at": tx.created_at,
        })
        team_totals[tx.receiver_team_id] = team_totals.get(tx.receiver_team_id, 0) + tx.amount

    investor_rows = [
        {
            "investor_id": sender_id,
            "investor_name": investor_names.get(sender_id) or "Unknown",
            "investments": items,
            "total_spent": sum(item["amount"] for item in items),
        }
        for sender_id, items in grouped.items()
    ]
    investor_rows.sort(key=lambda row: (-row["total_spent"], row["investor_id"]))

    team_rows = [
        {"team_id": team_id, "team_name": team_names.get(team_id, ""), "total_received": total}
        for team_id, total in team_totals.items()
    ]
    team_rows.sort(key=lambda row: (-row["total_received"], row["team_id"]))

    return {"investors": investor_rows, "team_totals": team_rows}
