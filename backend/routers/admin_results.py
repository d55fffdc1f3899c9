import csv
import io
import logging
from typing import List

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import StreamingResponse
from openpyxl import Workbook
from sqlalchemy.orm import Session

from database import get_db
from jury_aggregator import build_jury_overview
from leaderboard import LEADERBOARD_EXPORT_HEADERS, compute_leaderboard, leaderboard_rows
from models import EventStatus, Profile
from schemas import (
    EventResponse,
    EventStatusUpdate,
    InvestmentsOverviewResponse,
    LeaderboardEntry,
    TeamJuryOverview,
    TopInvestorEntry,
)
from security import ensure_event_access, require_admin
from top_investors import compute_top_investors
from utils import get_event_or_404, log_admin_action
from wallet_ledger import build_investments_overview

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/admin/events/{event_id}/leaderboard", response_model=List[LeaderboardEntry])
async def get_leaderboard(
    event_id: int,
    admin: Profile = Depends(require_admin),
    db: Session = Depends(get_db)
):
    ensure_event_access(admin, event_id)
    get_event_or_404(db, event_id)
    return [row.to_dict() for row in compute_leaderboard(db, event_id)]


@router.get("/admin/events/{event_id}/top-investors", response_model=List[TopInvestorEntry])
async def get_top_investors(
    event_id: int,
    admin: Profile = Depends(require_admin),
    db: Session = Depends(get_db)
):
    ensure_event_access(admin, event_id)
    get_event_or_404(db, event_id)
    return [row.to_dict() for row in compute_top_investors(db, event_id)]


@router.get("/admin/events/{event_id}/investments", response_model=InvestmentsOverviewResponse)
async def get_investments_overview(
    event_id: int,
    admin: Profile = Depends(require_admin),
    db: Session = Depends(get_db)
):
    ensure_event_access(admin, event_id)
    get_event_or_404(db, event_id)
    return build_investments_overview(db, event_id)


@router.get("/admin/events/{event_id}/jury-scores", response_model=List[TeamJuryOverview])
async def get_jury_scores_overview(
    event_id: int,
    admin: Profile = Depends(require_admin),
    db: Session = Depends(get_db)
):
    ensure_event_access(admin, event_id)
    event = get_event_or_404(db, event_id)
    return build_jury_overview(db, event)


@router.put("/admin/events/{event_id}/status", response_model=EventResponse)
async def update_event_status(
    event_id: int,
    payload: EventStatusUpdate,
    request: Request,
    admin: Profile = Depends(require_admin),
    db: Session = Depends(get_db)
):
    ensure_event_access(admin, event_id)
    event = get_event_or_404(db, event_id)
    previous = event.status.value
    event.status = EventStatus[payload.status.name]
    db.commit()
    db.refresh(event)
    log_admin_action(
        db,
        admin,
        "update_event_status",
        method=request.method,
        path=request.url.path,
        meta={"event_id": event_id, "from": previous, "to": event.status.value},
    )
    logger.info(f"Event {event_id} status changed {previous} -> {event.status.value}")
    return event


@router.get("/admin/events/{event_id}/export/leaderboard")
async def export_leaderboard(
    event_id: int,
    format: str = Query("csv", enum=["csv", "xlsx"]),
    admin: Profile = Depends(require_admin),
    db: Session = Depends(get_db)
):
    ensure_event_access(admin, event_id)
    get_event_or_404(db, event_id)
    rows = leaderboard_rows(compute_leaderboard(db, event_id))

    if format == "xlsx":
        wb = Workbook()
        ws = wb.active
        ws.title = "Leaderboard"
        ws.append(LEADERBOARD_EXPORT_HEADERS)
        for row in rows:
            ws.append(row)

        output = io.BytesIO()
        wb.save(output)
        output.seek(0)

        return StreamingResponse(
            output,
            media_type="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
            headers={"Content-Disposition": f"attachment; filename=leaderboard_event_{event_id}.xlsx"}
        )

    output = io.StringIO()
    writer = csv.writer(output)
    writer.writerow(LEADERBOARD_EXPORT_HEADERS)
    writer.writerows(rows)

    return StreamingResponse(
        iter([output.getvalue()]),
        media_type="text/csv",
        headers={"Content-Disposition": f"attachment; filename=leaderboard_event_{event_id}.csv"}
    )
