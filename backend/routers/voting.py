import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from auth import get_current_profile
from database import get_db
from models import EventStatus, Profile, Team, Transaction
from portfolio_service import get_wallet_status, submit_portfolio
from schemas import (
    EventResponse,
    PortfolioSubmitRequest,
    PortfolioSubmitResponse,
    TeamResponse,
    TransactionResponse,
    WalletStatusResponse,
)
from security import ensure_event_access, require_student
from utils import get_event_or_404
from voting_errors import VotingClosed
from wallet_ledger import get_voter_transactions

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/events/{event_id}", response_model=EventResponse)
async def get_event(
    event_id: int,
    profile: Profile = Depends(get_current_profile),
    db: Session = Depends(get_db)
):
    ensure_event_access(profile, event_id)
    return get_event_or_404(db, event_id)


@router.get("/events/{event_id}/teams", response_model=List[TeamResponse])
async def get_event_teams(
    event_id: int,
    profile: Profile = Depends(get_current_profile),
    db: Session = Depends(get_db)
):
    ensure_event_access(profile, event_id)
    get_event_or_404(db, event_id)
    return db.query(Team).filter(Team.event_id == event_id).order_by(Team.table_number.asc()).all()


@router.get("/portfolio/status", response_model=WalletStatusResponse)
async def get_portfolio_status(
    profile: Profile = Depends(require_student),
    db: Session = Depends(get_db)
):
    return get_wallet_status(db, profile.id)


@router.get("/portfolio/transactions", response_model=List[TransactionResponse])
async def get_my_transactions(
    profile: Profile = Depends(require_student),
    db: Session = Depends(get_db)
):
    if profile.event_id is None:
        return []
    return get_voter_transactions(db, profile.id, profile.event_id)


@router.post("/portfolio", response_model=PortfolioSubmitResponse)
async def post_portfolio(
    payload: PortfolioSubmitRequest,
    profile: Profile = Depends(require_student),
    db: Session = Depends(get_db)
):
    if profile.event_id is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="You are not registered for an event")
    event = get_event_or_404(db, profile.event_id)
    if event.status != EventStatus.VOTING:
        raise VotingClosed(event.id, event.status.value)

    result = submit_portfolio(db, profile.id, payload.as_allocation())

    transactions = (
        db.query(Transaction)
        .filter(Transaction.ballot_id == result.ballot_id)
        .order_by(Transaction.id.asc())
        .all()
    )
    return PortfolioSubmitResponse(
        ballot_id=result.ballot_id,
        total=result.total,
        transactions=[TransactionResponse.model_validate(tx) for tx in transactions],
    )
