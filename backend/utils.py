import logging
from typing import Optional

from fastapi import HTTPException, status
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from models import AdminLog, Event, Profile
from voting_errors import VotingError

logger = logging.getLogger(__name__)


def log_admin_action(db: Session, admin: Profile, action: str, method: Optional[str] = None, path: Optional[str] = None, meta: Optional[dict] = None):
    db.add(AdminLog(
        admin_id=admin.id if admin else None,
        admin_name=(admin.full_name or "") if admin else "",
        action=action,
        method=method,
        path=path,
        meta=meta
    ))
    db.commit()


def get_event_or_404(db: Session, event_id: int) -> Event:
    event = db.query(Event).filter(Event.id == event_id).first()
    if not event:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Event not found")
    return event


def voting_error_response(exc: VotingError) -> JSONResponse:
    if exc.retryable:
        logger.warning(f"{exc.code}: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content={"success": False, "error": exc.to_dict()})
