import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Mapping, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from models import Event, JuryScore, Profile, Team
from rubrics import Rubric, RubricMismatch, get_rubric
from voting_errors import InvalidJuryScore

logger = logging.getLogger(__name__)


@dataclass
class JuryAggregate:
    team_id: int
    jury_count: int
    criteria_averages: Dict[str, float] = field(default_factory=dict)

    @property
    def total(self) -> float:
        """Sum of per-criterion averages (not a further average)."""
        return sum(self.criteria_averages.values())


def row_total(scores: Mapping[str, int], rubric: Rubric) -> int:
    return sum(int(scores.get(key) or 0) for key in rubric.criteria)


def aggregate_team_scores(team_id: int, rows: Iterable[JuryScore], rubric: Rubric) -> Optional[JuryAggregate]:
    rows = list(rows)
    if not rows:
        return None
    sums = {key: 0 for key in rubric.criteria}
    for row in rows:
        scores = row.scores if isinstance(row.scores, dict) else {}
        missing = [key for key in rubric.criteria if key not in scores]
        if missing:
            raise RubricMismatch(
                f"Jury score {row.id} for team {team_id} does not match the {rubric.version} rubric "
                f"(missing {', '.join(missing)})"
            )
        for key in rubric.criteria:
            sums[key] += scores[key]
    count = len(rows)
    return JuryAggregate(
        team_id=team_id,
        jury_count=count,
        criteria_averages={key: sums[key] / count for key in rubric.criteria},
    )


def aggregate_event_scores(db: Session, event: Event, rubric: Optional[Rubric] = None) -> Dict[int, JuryAggregate]:
    """Jury component per team; teams nobody scored are absent from the result."""
    rubric = rubric or get_rubric(event.rubric_version)
    rows = (
        db.query(JuryScore)
        .join(Team, JuryScore.team_id == Team.id)
        .filter(Team.event_id == event.id)
        .order_by(JuryScore.team_id.asc(), JuryScore.id.asc())
        .all()
    )
    by_team: Dict[int, List[JuryScore]] = {}
    for row in rows:
        by_team.setdefault(row.team_id, []).append(row)
    return {
        team_id: aggregate_team_scores(team_id, team_rows, rubric)
        for team_id, team_rows in by_team.items()
    }


def validate_rubric_scores(scores: Mapping[str, object], rubric: Rubric) -> Dict[str, int]:
    unknown = sorted(set(scores) - set(rubric.criteria))
    if unknown:
        raise InvalidJuryScore(f"Unknown criteria for the {rubric.version} rubric: {', '.join(unknown)}", criteria=unknown)
    missing = [key for key in rubric.criteria if key not in scores]
    if missing:
        raise InvalidJuryScore(f"Missing criteria: {', '.join(missing)}", criteria=missing)

    cleaned: Dict[str, int] = {}
    for key in rubric.criteria:
        value = scores[key]
        if isinstance(value, bool) or not isinstance(value, int):
            raise InvalidJuryScore(f"{key} must be a whole number", criterion=key)
        if value < rubric.min_score or value > rubric.max_score:
            raise InvalidJuryScore(
                f"{key} must be between {rubric.min_score} and {rubric.max_score}",
                criterion=key,
            )
        cleaned[key] = value
    return cleaned


def _stage_jury_score(db: Session, jury_id: int, team_id: int, scores: Dict[str, int], comments: Optional[str]) -> JuryScore:
    existing = db.query(JuryScore).filter(
        JuryScore.jury_id == jury_id,
        JuryScore.team_id == team_id,
    ).first()
    if existing:
        existing.scores = scores
        existing.comments = comments
        return existing
    row = JuryScore(jury_id=jury_id, team_id=team_id, scores=scores, comments=comments)
    db.add(row)
    return row


def upsert_jury_score(
    db: Session,
    jury_id: int,
    team: Team,
    scores: Mapping[str, object],
    comments: Optional[str] = None,
    rubric: Optional[Rubric] = None,
) -> JuryScore:
    rubric = rubric or get_rubric(team.event.rubric_version)
    cleaned = validate_rubric_scores(scores, rubric)

    row = _stage_jury_score(db, jury_id, team.id, cleaned, comments)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        # A concurrent first save for this juror and team won; overwrite it.
        logger.info(f"Jury score for jury={jury_id} team={team.id} was created concurrently, updating it")
        row = _stage_jury_score(db, jury_id, team.id, cleaned, comments)
        db.commit()
    db.refresh(row)
    logger.info(f"Jury score saved: jury={jury_id} team={team.id} total={row_total(cleaned, rubric)}")
    return row


def list_jury_scores(db: Session, jury_id: int, event_id: int) -> List[JuryScore]:
    return (
        db.query(JuryScore)
        .join(Team, JuryScore.team_id == Team.id)
        .filter(JuryScore.jury_id == jury_id, Team.event_id == event_id)
        .order_by(Team.table_number.asc())
        .all()
    )


def build_jury_overview(db: Session, event: Event) -> List[dict]:
    rubric = get_rubric(event.rubric_version)
    teams = db.query(Team).filter(Team.event_id == event.id).order_by(Team.id.asc()).all()
    rows = (
        db.query(JuryScore, Profile)
        .join(Profile, JuryScore.jury_id == Profile.id)
        .join(Team, JuryScore.team_id == Team.id)
        .filter(Team.event_id == event.id)
        .order_by(JuryScore.jury_id.asc())
        .all()
    )
    aggregates = aggregate_event_scores(db, event, rubric)

    evaluations: Dict[int, List[dict]] = {}
    for score, jury in rows:
        evaluations.setdefault(score.team_id, []).append({
            "jury_id": jury.id,
            "jury_name": jury.full_name,
            "scores": {key: score.scores.get(key) for key in rubric.criteria},
            "total": row_total(score.scores, rubric),
            "comments": score.comments,
        })

    overview = []
    for team in teams:
        aggregate = aggregates.get(team.id)
        overview.append({
            "team_id": team.id,
            "team_name": team.name,
            "table_number": team.table_number,
            "evaluations": evaluations.get(team.id, []),
            "average_total": round(aggregate.total, 2) if aggregate else None,
        })
    # Scored teams first, highest average on top.
    overview.sort(key=lambda item: (item["average_total"] is None, -(item["average_total"] or 0), item["team_id"]))
    return overview
