import os
from dataclasses import dataclass, field
from numbers import Real
from typing import Any, Collection, List, Mapping, Optional, Tuple

from voting_errors import (
    AlreadyVoted,
    BudgetExceeded,
    InvalidAmount,
    SelfInvestmentNotAllowed,
    UnknownTeam,
    WrongTeamCount,
)

REQUIRED_TEAM_COUNT = int(os.environ.get("PORTFOLIO_TEAM_COUNT", 3))


@dataclass
class ValidatedPortfolio:
    entries: List[Tuple[int, int]] = field(default_factory=list)

    @property
    def total(self) -> int:
        return sum(amount for _, amount in self.entries)

    @property
    def team_ids(self) -> List[int]:
        return [team_id for team_id, _ in self.entries]


def normalize_amount(team_id: Any, value: Any) -> int:
    # bool is an int subclass; a ticked checkbox is not an amount.
    if isinstance(value, bool) or not isinstance(value, Real):
        raise InvalidAmount(team_id, value)
    if isinstance(value, int):
        amount = value
    else:
        if value != value or not float(value).is_integer():
            raise InvalidAmount(team_id, value)
        amount = int(value)
    if amount < 0:
        raise InvalidAmount(team_id, value)
    return amount


def validate_portfolio(
    allocation: Mapping[Any, Any],
    *,
    wallet_balance: int,
    own_team_id: Optional[int],
    required_count: int = REQUIRED_TEAM_COUNT,
    already_voted: bool = False,
    event_team_ids: Optional[Collection[int]] = None,
) -> ValidatedPortfolio:
    """Check a draft allocation (team id -> amount) without touching storage.

    Checks run in a fixed order and the first failure is raised: amounts,
    self-investment, roster membership, budget, team count, prior ballot.
    Only entries with a positive amount count as selected teams.
    """
    amounts = {team_id: normalize_amount(team_id, value) for team_id, value in allocation.items()}
    selected = {team_id: amount for team_id, amount in amounts.items() if amount > 0}

    if own_team_id is not None and own_team_id in selected:
        raise SelfInvestmentNotAllowed(own_team_id)

    if event_team_ids is not None:
        roster = set(event_team_ids)
        for team_id in sorted(selected, key=str):
            if team_id not in roster:
                raise UnknownTeam(team_id)

    allocated = sum(amounts.values())
    if allocated > wallet_balance:
        raise BudgetExceeded(allocated=allocated, available=wallet_balance)

    if len(selected) != required_count:
        raise WrongTeamCount(actual=len(selected), required=required_count)

    if already_voted:
        raise AlreadyVoted()

    return ValidatedPortfolio(entries=sorted(selected.items()))
