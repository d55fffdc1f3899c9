#!/usr/bin/env python3
"""Seed a demo ideathon event with teams, students, jurors and an admin.

Run from the repository root with ``backend`` on the path, e.g.
``PYTHONPATH=backend python backend/scripts/seed_demo_event.py --teams 6``.
Prints a bearer token per profile so the API can be exercised directly.
"""
import argparse
import logging
import random

from database import Base, SessionLocal, engine
from auth import create_access_token
from models import DEFAULT_WALLET_BALANCE, Event, EventStatus, Profile, Team, UserRole
from rubrics import RUBRICS

logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(name)s - %(levelname)s - %(message)s')
logger = logging.getLogger(__name__)


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Seed a demo ideathon event.")
    parser.add_argument("--name", default="Demo Ideathon")
    parser.add_argument("--teams", type=int, default=5)
    parser.add_argument("--students-per-team", type=int, default=3)
    parser.add_argument("--jury", type=int, default=2)
    parser.add_argument("--rubric", choices=sorted(RUBRICS), default="standard")
    parser.add_argument("--status", choices=[s.value for s in EventStatus], default=EventStatus.VOTING.value)
    parser.add_argument("--seed", type=int, default=None, help="Random seed for student names")
    return parser.parse_args()


FIRST_NAMES = ["Ada", "Linus", "Grace", "Alan", "Barbara", "Dennis", "Katherine", "Ken", "Margaret", "Tim"]


def seed(db, args) -> Event:
    rng = random.Random(args.seed)
    event = Event(name=args.name, status=EventStatus(args.status), rubric_version=args.rubric)
    db.add(event)
    db.flush()

    for number in range(1, args.teams + 1):
        team = Team(event_id=event.id, name=f"Team {number}", table_number=number)
        db.add(team)
        db.flush()
        for _ in range(args.students_per_team):
            db.add(Profile(
                role=UserRole.STUDENT,
                full_name=f"{rng.choice(FIRST_NAMES)} {team.name}",
                event_id=event.id,
                team_id=team.id,
                wallet_balance=DEFAULT_WALLET_BALANCE,
            ))

    for number in range(1, args.jury + 1):
        db.add(Profile(role=UserRole.JURY, full_name=f"Juror {number}", event_id=event.id, wallet_balance=0))
    db.add(Profile(role=UserRole.ADMIN, full_name="Event Admin", event_id=event.id, wallet_balance=0))

    db.commit()
    return event


def main():
    args = parse_args()
    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    try:
        event = seed(db, args)
        logger.info(f"Seeded event {event.id} ({event.name}) with {args.teams} teams")
        profiles = db.query(Profile).filter(Profile.event_id == event.id).order_by(Profile.id.asc()).all()
        for profile in profiles:
            print(f"{profile.role.value:8} {profile.id:5} {profile.full_name:30} {create_access_token(profile)}")
    finally:
        db.close()


if __name__ == '__main__':
    main()
