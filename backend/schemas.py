from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from typing import Optional, List, Dict, Union
from enum import Enum
from datetime import datetime


class EventStatusEnum(str, Enum):
    WAITING = "WAITING"
    IDEATION = "IDEATION"
    LOCKED = "LOCKED"
    PITCHING = "PITCHING"
    VOTING = "VOTING"
    COMPLETED = "COMPLETED"


class UserRoleEnum(str, Enum):
    STUDENT = "student"
    JURY = "jury"
    ADMIN = "admin"


# Event Schemas
class EventResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    status: EventStatusEnum
    rubric_version: str
    created_at: Optional[datetime] = None

    @field_validator('status', mode='before')
    @classmethod
    def unwrap_status(cls, v):
        return getattr(v, 'value', v)


class EventStatusUpdate(BaseModel):
    status: EventStatusEnum


class TeamResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    event_id: int
    name: str
    table_number: int


# Portfolio Schemas
class PortfolioVote(BaseModel):
    team_id: int
    # Kept loose so fractional and negative amounts reach the ballot rules
    # and come back as INVALID_AMOUNT instead of a generic 422.
    amount: Union[int, float]

    @field_validator('amount', mode='before')
    @classmethod
    def reject_booleans(cls, v):
        # Lax mode would read JSON true as 1.
        if isinstance(v, bool):
            raise ValueError('amount must be a number')
        return v


class PortfolioSubmitRequest(BaseModel):
    votes: List[PortfolioVote] = Field(..., max_length=200)

    @model_validator(mode='after')
    def check_unique_teams(self):
        team_ids = [vote.team_id for vote in self.votes]
        if len(team_ids) != len(set(team_ids)):
            raise ValueError('Each team may appear only once in a portfolio')
        return self

    def as_allocation(self) -> Dict[int, Union[int, float]]:
        return {vote.team_id: vote.amount for vote in self.votes}


class TransactionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    sender_id: int
    receiver_team_id: int
    amount: int
    created_at: Optional[datetime] = None


class PortfolioSubmitResponse(BaseModel):
    success: bool = True
    ballot_id: int
    total: int
    transactions: List[TransactionResponse]


class WalletStatusResponse(BaseModel):
    voter_id: int
    event_id: int
    team_id: Optional[int] = None
    wallet_balance: int
    spent: int
    remaining: int
    has_voted: bool
    required_team_count: int


# Jury Schemas
class JuryScoreUpsert(BaseModel):
    team_id: int
    scores: Dict[str, int]
    comments: Optional[str] = Field(None, max_length=5000)

    @field_validator('comments')
    @classmethod
    def strip_comments(cls, v):
        if v is None:
            return v
        v = v.strip()
        return v or None


class JuryScoreResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    jury_id: int
    team_id: int
    scores: Dict[str, int]
    comments: Optional[str] = None
    total: int = 0
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class JuryEvaluation(BaseModel):
    jury_id: int
    jury_name: Optional[str] = None
    scores: Dict[str, Optional[int]]
    total: int
    comments: Optional[str] = None


class TeamJuryOverview(BaseModel):
    team_id: int
    team_name: str
    table_number: int
    evaluations: List[JuryEvaluation]
    average_total: Optional[float] = None


# Results Schemas
class LeaderboardEntry(BaseModel):
    rank: int
    team_id: int
    team_name: str
    table_number: int
    jury_avg_score: Optional[float] = None
    jury_count: int
    total_investment: int
    final_score: float


class WinningInvestmentResponse(BaseModel):
    team_id: int
    team_name: str
    rank: int
    amount: int
    multiplier: int
    weighted_score: int


class TopInvestorEntry(BaseModel):
    rank: int
    investor_id: int
    investor_name: str
    investor_team_id: Optional[int] = None
    investor_team_name: Optional[str] = None
    winning_investments: List[WinningInvestmentResponse]
    total_invested: int
    roi_score: int


class InvestmentItem(BaseModel):
    team_id: int
    team_name: str
    amount: int
    created_at: Optional[datetime] = None


class InvestorBreakdown(BaseModel):
    investor_id: int
    investor_name: str
    investments: List[InvestmentItem]
    total_spent: int


class TeamInvestmentTotal(BaseModel):
    team_id: int
    team_name: str
    total_received: int


class InvestmentsOverviewResponse(BaseModel):
    investors: List[InvestorBreakdown]
    team_totals: List[TeamInvestmentTotal]
