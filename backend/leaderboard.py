import logging
from dataclasses import dataclass, asdict
from typing import List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from jury_aggregator import aggregate_event_scores
from models import Event, Team
from rubrics import RubricMismatch, UnknownRubric, get_rubric
from voting_errors import ComputationFailed, LedgerReadFailed
from wallet_ledger import get_team_totals

logger = logging.getLogger(__name__)

JURY_WEIGHT = 0.7
INVESTMENT_WEIGHT = 0.3


@dataclass
class LeaderboardRow:
    rank: int
    team_id: int
    team_name: str
    table_number: int
    jury_avg_score: Optional[float]
    jury_count: int
    total_investment: int
    final_score: float

    def to_dict(self) -> dict:
        return asdict(self)


def blend_score(jury_total: Optional[float], jury_max_total: int, investment: int, max_investment: int) -> float:
    """Blend the jury component and the investment component on a 0-100 scale.

    Investment is normalized against the largest team total in the event, so
    the best funded team gets the full investment share.
    """
    jury_normalized = (jury_total / jury_max_total * 100) if jury_total is not None and jury_max_total else 0.0
    investment_normalized = (investment / max_investment * 100) if max_investment > 0 else 0.0
    return round(JURY_WEIGHT * jury_normalized + INVESTMENT_WEIGHT * investment_normalized, 2)


def _sort_key(row: LeaderboardRow):
    jury = row.jury_avg_score if row.jury_avg_score is not None else -1.0
    return (-row.final_score, -jury, row.team_id)


def compute_leaderboard(db: Session, event_id: int) -> List[LeaderboardRow]:
    try:
        event = db.query(Event).filter(Event.id == event_id).first()
        if not event:
            return []
        rubric = get_rubric(event.rubric_version)
        teams = db.query(Team).filter(Team.event_id == event_id).all()
        aggregates = aggregate_event_scores(db, event, rubric)
        totals = get_team_totals(db, event_id)
    except (SQLAlchemyError, LedgerReadFailed, RubricMismatch, UnknownRubric) as exc:
        logger.error(f"Leaderboard computation failed for event {event_id}: {exc}")
        raise ComputationFailed("the leaderboard", exc) from exc

    max_investment = max(totals.values(), default=0)
    rows: List[LeaderboardRow] = []
    for team in teams:
        aggregate = aggregates.get(team.id)
        jury_total = aggregate.total if aggregate else None
        investment = totals.get(team.id, 0)
        rows.append(LeaderboardRow(
            rank=0,
            team_id=team.id,
            team_name=team.name,
            table_number=team.table_number,
            jury_avg_score=round(jury_total, 2) if jury_total is not None else None,
            jury_count=aggregate.jury_count if aggregate else 0,
            total_investment=investment,
            final_score=blend_score(jury_total, rubric.max_total, investment, max_investment),
        ))

    rows.sort(key=_sort_key)
    for index, row in enumerate(rows):
        row.rank = index + 1
    return rows


LEADERBOARD_EXPORT_HEADERS = ["Rank", "Team", "Table", "Jury Score", "Jury Count", "Total Investment", "Final Score"]


def leaderboard_rows(entries: List[LeaderboardRow]) -> List[list]:
    return [
        [
            e.rank,
            e.team_name,
            e.table_number,
            e.jury_avg_score if e.jury_avg_score is not None else "",
            e.jury_count,
            e.total_investment,
            e.final_score,
        ]
        for e in entries
    ]
