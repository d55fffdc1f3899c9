import os
import enum

from sqlalchemy import Column, Integer, String, DateTime, Enum as SQLEnum, ForeignKey, Text, JSON, UniqueConstraint, CheckConstraint, Index
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from database import Base

DEFAULT_WALLET_BALANCE = int(os.environ.get("DEFAULT_WALLET_BALANCE", 1000))


class EventStatus(enum.Enum):
    WAITING = "WAITING"
    IDEATION = "IDEATION"
    LOCKED = "LOCKED"
    PITCHING = "PITCHING"
    VOTING = "VOTING"
    COMPLETED = "COMPLETED"


class UserRole(enum.Enum):
    STUDENT = "student"
    JURY = "jury"
    ADMIN = "admin"


class Event(Base):
    __tablename__ = "events"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    status = Column(SQLEnum(EventStatus), default=EventStatus.WAITING, nullable=False)
    rubric_version = Column(String(20), default="standard", nullable=False)  # "standard" | "classic"
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    teams = relationship("Team", back_populates="event", order_by="Team.table_number")


class Team(Base):
    __tablename__ = "teams"

    id = Column(Integer, primary_key=True, index=True)
    event_id = Column(Integer, ForeignKey("events.id"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    table_number = Column(Integer, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    event = relationship("Event", back_populates="teams")

    __table_args__ = (
        UniqueConstraint("event_id", "table_number", name="uq_teams_event_table"),
    )


class Profile(Base):
    __tablename__ = "profiles"

    id = Column(Integer, primary_key=True, index=True)
    role = Column(SQLEnum(UserRole), default=UserRole.STUDENT, nullable=False)
    full_name = Column(String(255), nullable=True)
    event_id = Column(Integer, ForeignKey("events.id"), nullable=True, index=True)
    team_id = Column(Integer, ForeignKey("teams.id"), nullable=True)
    wallet_balance = Column(Integer, default=DEFAULT_WALLET_BALANCE, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    team = relationship("Team")


class BallotReceipt(Base):
    __tablename__ = "ballot_receipts"

    id = Column(Integer, primary_key=True, index=True)
    voter_id = Column(Integer, ForeignKey("profiles.id"), nullable=False)
    event_id = Column(Integer, ForeignKey("events.id"), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    transactions = relationship("Transaction", back_populates="ballot", order_by="Transaction.id")

    __table_args__ = (
        UniqueConstraint("voter_id", "event_id", name="uq_ballot_receipts_voter_event"),
    )


class Transaction(Base):
    __tablename__ = "transactions"

    id = Column(Integer, primary_key=True, index=True)
    ballot_id = Column(Integer, ForeignKey("ballot_receipts.id"), nullable=False)
    sender_id = Column(Integer, ForeignKey("profiles.id"), nullable=False, index=True)
    receiver_team_id = Column(Integer, ForeignKey("teams.id"), nullable=False, index=True)
    amount = Column(Integer, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    ballot = relationship("BallotReceipt", back_populates="transactions")

    __table_args__ = (
        UniqueConstraint("ballot_id", "receiver_team_id", name="uq_transactions_ballot_team"),
        CheckConstraint("amount > 0", name="ck_transactions_amount_positive"),
        Index("ix_transactions_sender_receiver", "sender_id", "receiver_team_id"),
    )


class JuryScore(Base):
    __tablename__ = "jury_scores"

    id = Column(Integer, primary_key=True, index=True)
    jury_id = Column(Integer, ForeignKey("profiles.id"), nullable=False)
    team_id = Column(Integer, ForeignKey("teams.id"), nullable=False, index=True)
    scores = Column(JSON, nullable=False)  # {"innovation": 15, "feasibility": 12, ...}
    comments = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    __table_args__ = (
        UniqueConstraint("jury_id", "team_id", name="uq_jury_scores_jury_team"),
    )


class AdminLog(Base):
    __tablename__ = "admin_logs"

    id = Column(Integer, primary_key=True, index=True)
    admin_id = Column(Integer, nullable=True)
    admin_name = Column(String(255), nullable=False)
    action = Column(String(255), nullable=False)
    method = Column(String(10), nullable=True)
    path = Column(String(255), nullable=True)
    meta = Column(JSON, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())


class SystemConfig(Base):
    __tablename__ = "system_config"

    id = Column(Integer, primary_key=True, index=True)
    key = Column(String(100), unique=True, nullable=False)
    value = Column(String(500), nullable=False)
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())
