from pathlib import Path
from types import SimpleNamespace
import os
import sys

ROOT = Path(__file__).resolve().parents[1]
BACKEND_DIR = ROOT / "backend"
if str(BACKEND_DIR) not in sys.path:
    sys.path.insert(0, str(BACKEND_DIR))

os.environ.setdefault("JWT_SECRET_KEY", "test-only-secret-key-0123456789-abcdefghij")
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("AUTO_CREATE_TABLES", "false")

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from database import Base
from models import Event, EventStatus, JuryScore, Profile, Team, UserRole


@pytest.fixture
def engine():
    engine = create_engine("sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool)
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autocommit=False, autoflush=False, expire_on_commit=False)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


def build_event(db, *, team_count=5, rubric="standard", status=EventStatus.VOTING, voters_per_team=1, wallet=1000):
    event = Event(name="Spring Ideathon", status=status, rubric_version=rubric)
    db.add(event)
    db.flush()

    teams = []
    voters = []
    for number in range(1, team_count + 1):
        team = Team(event_id=event.id, name=f"Team {chr(64 + number)}", table_number=number)
        db.add(team)
        db.flush()
        teams.append(team)
        for index in range(voters_per_team):
            voter = Profile(
                role=UserRole.STUDENT,
                full_name=f"Student {team.name} {index + 1}",
                event_id=event.id,
                team_id=team.id,
                wallet_balance=wallet,
            )
            db.add(voter)
            voters.append(voter)

    jurors = [Profile(role=UserRole.JURY, full_name=f"Juror {n}", event_id=event.id, wallet_balance=0) for n in (1, 2)]
    admin = Profile(role=UserRole.ADMIN, full_name="Admin", event_id=event.id, wallet_balance=0)
    db.add_all(jurors + [admin])
    db.commit()
    return SimpleNamespace(event=event, teams=teams, voters=voters, jurors=jurors, admin=admin)


def add_jury_score(db, jury, team, scores, comments=None):
    row = JuryScore(jury_id=jury.id, team_id=team.id, scores=dict(scores), comments=comments)
    db.add(row)
    db.commit()
    return row


def even_scores(total, criteria=("problem_understanding", "innovation", "value_impact", "feasibility", "presentation_teamwork")):
    """Spread ``total`` over the criteria as evenly as whole numbers allow."""
    base, extra = divmod(total, len(criteria))
    return {key: base + (1 if index < extra else 0) for index, key in enumerate(criteria)}


@pytest.fixture
def demo(db):
    return build_event(db)
