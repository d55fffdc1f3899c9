import logging
import os
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from leaderboard import compute_leaderboard
from models import Profile, Team
from voting_errors import ComputationFailed, LedgerReadFailed
from wallet_ledger import get_event_transactions

logger = logging.getLogger(__name__)


def parse_multipliers(raw: Optional[str]) -> Tuple[int, ...]:
    if not raw:
        return (3, 2, 1)
    values = tuple(int(part.strip()) for part in raw.split(",") if part.strip())
    if not values or values[-1] <= 0:
        raise ValueError(f"ROI multipliers must be positive, got {raw!r}")
    if any(a <= b for a, b in zip(values, values[1:])):
        raise ValueError(f"ROI multipliers must decrease with rank, got {raw!r}")
    return values


# Index 0 is the multiplier for rank 1.
ROI_MULTIPLIERS = parse_multipliers(os.environ.get("ROI_MULTIPLIERS"))


@dataclass
class WinningInvestment:
    team_id: int
    team_name: str
    rank: int
    amount: int
    multiplier: int

    @property
    def weighted_score(self) -> int:
        return self.amount * self.multiplier


@dataclass
class TopInvestorRow:
    investor_id: int
    investor_name: str
    investor_team_id: Optional[int]
    investor_team_name: Optional[str]
    winning_investments: List[WinningInvestment] = field(default_factory=list)
    total_invested: int = 0
    rank: int = 0

    @property
    def roi_score(self) -> int:
        return sum(item.weighted_score for item in self.winning_investments)

    def to_dict(self) -> dict:
        return {
            "rank": self.rank,
            "investor_id": self.investor_id,
            "investor_name": self.investor_name,
            "investor_team_id": self.investor_team_id,
            "investor_team_name": self.investor_team_name,
            "winning_investments": [
                {
                    "team_id": item.team_id,
                    "team_name": item.team_name,
                    "rank": item.rank,
                    "amount": item.amount,
                    "multiplier": item.multiplier,
                    "weighted_score": item.weighted_score,
                }
                for item in self.winning_investments
            ],
            "total_invested": self.total_invested,
            "roi_score": self.roi_score,
        }


def compute_top_investors(
    db: Session,
    event_id: int,
    multipliers: Sequence[int] = ROI_MULTIPLIERS,
) -> List[TopInvestorRow]:
    """Rank voters by how much stake they put behind the eventual winners.

    Only the leaderboard's first ``len(multipliers)`` teams pay out; voters
    with no stake in any of them are left out entirely.
    """
    leaderboard = compute_leaderboard(db, event_id)
    winners = {row.team_id: row for row in leaderboard[:len(multipliers)]}

    try:
        transactions = get_event_transactions(db, event_id)
        sender_ids = sorted({tx.sender_id for tx in transactions})
        profiles = db.query(Profile).filter(Profile.id.in_(sender_ids)).all() if sender_ids else []
        team_ids = {p.team_id for p in profiles if p.team_id is not None}
        teams = db.query(Team).filter(Team.id.in_(team_ids)).all() if team_ids else []
    except (SQLAlchemyError, LedgerReadFailed) as exc:
        logger.error(f"Top investor computation failed for event {event_id}: {exc}")
        raise ComputationFailed("the top investors", exc) from exc

    profile_by_id = {p.id: p for p in profiles}
    team_names = {t.id: t.name for t in teams}

    investors: Dict[int, TopInvestorRow] = {}
    for tx in transactions:
        investor = investors.get(tx.sender_id)
        if investor is None:
            profile = profile_by_id.get(tx.sender_id)
            team_id = profile.team_id if profile else None
            investor = TopInvestorRow(
                investor_id=tx.sender_id,
                investor_name=(profile.full_name if profile else None) or "Unknown",
                investor_team_id=team_id,
                investor_team_name=team_names.get(team_id),
            )
            investors[tx.sender_id] = investor
        investor.total_invested += tx.amount

        winner = winners.get(tx.receiver_team_id)
        if winner is not None:
            investor.winning_investments.append(WinningInvestment(
                team_id=winner.team_id,
                team_name=winner.team_name,
                rank=winner.rank,
                amount=tx.amount,
                multiplier=multipliers[winner.rank - 1],
            ))

    ranked = [row for row in investors.values() if row.winning_investments]
    for row in ranked:
        row.winning_investments.sort(key=lambda item: item.rank)
    ranked.sort(key=lambda row: (-row.roi_score, -row.total_invested, row.investor_id))
    for index, row in enumerate(ranked):
        row.rank = index + 1
    return ranked
