from typing import List

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from database import get_db
from jury_aggregator import list_jury_scores, row_total, upsert_jury_score
from models import JuryScore, Profile, Team
from rubrics import get_rubric
from schemas import JuryScoreResponse, JuryScoreUpsert
from security import require_jury
from utils import get_event_or_404

router = APIRouter()


def _score_response(row: JuryScore, rubric) -> JuryScoreResponse:
    response = JuryScoreResponse.model_validate(row)
    response.total = row_total(row.scores, rubric)
    return response


@router.put("/jury/scores", response_model=JuryScoreResponse)
async def save_jury_score(
    payload: JuryScoreUpsert,
    jury: Profile = Depends(require_jury),
    db: Session = Depends(get_db)
):
    team = db.query(Team).filter(Team.id == payload.team_id).first()
    if not team or team.event_id != jury.event_id:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Team not found")

    rubric = get_rubric(team.event.rubric_version)
    row = upsert_jury_score(db, jury.id, team, payload.scores, payload.comments, rubric)
    return _score_response(row, rubric)


@router.get("/jury/scores", response_model=List[JuryScoreResponse])
async def get_my_jury_scores(
    jury: Profile = Depends(require_jury),
    db: Session = Depends(get_db)
):
    if jury.event_id is None:
        return []
    event = get_event_or_404(db, jury.event_id)
    rubric = get_rubric(event.rubric_version)
    return [_score_response(row, rubric) for row in list_jury_scores(db, jury.id, event.id)]
