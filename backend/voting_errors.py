from typing import Any, Dict, Optional


class VotingError(Exception):
    """Base class for every error the voting and scoring engine reports.

    Each subclass carries a stable ``code`` so the HTTP layer can keep the
    error kinds apart instead of collapsing them into one failure string.
    """
    code: str = "VOTING_ERROR"
    status_code: int = 400
    retryable: bool = False

    def __init__(self, message: str, **details: Any):
        self.message = message
        self.details = details
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"code": self.code, "message": self.message, "retryable": self.retryable}
        payload.update(self.details)
        return payload


# Ballot validation errors, all detected before any write.

class InvalidAmount(VotingError):
    code = "INVALID_AMOUNT"
    status_code = 422

    def __init__(self, team_id: Any, amount: Any):
        super().__init__(
            f"Investment amounts must be non-negative whole numbers (team {team_id}: {amount!r})",
            team_id=team_id,
        )


class SelfInvestmentNotAllowed(VotingError):
    code = "SELF_INVESTMENT_NOT_ALLOWED"
    status_code = 422

    def __init__(self, team_id: int):
        super().__init__("You cannot invest in your own team", team_id=team_id)


class UnknownTeam(VotingError):
    code = "UNKNOWN_TEAM"
    status_code = 422

    def __init__(self, team_id: Any):
        super().__init__(f"Team {team_id} is not part of this event", team_id=team_id)


class WrongTeamCount(VotingError):
    code = "WRONG_TEAM_COUNT"
    status_code = 422

    def __init__(self, actual: int, required: int):
        super().__init__(
            f"You must invest in exactly {required} teams (selected {actual})",
            actual=actual,
            required=required,
        )


class BudgetExceeded(VotingError):
    code = "BUDGET_EXCEEDED"
    status_code = 422

    def __init__(self, allocated: int, available: int):
        super().__init__(
            f"You can't allocate more than {available} idecoin (allocated {allocated})",
            allocated=allocated,
            available=available,
        )


class AlreadyVoted(VotingError):
    code = "ALREADY_VOTED"
    status_code = 409

    def __init__(self, voter_id: Optional[int] = None, event_id: Optional[int] = None):
        super().__init__(
            "Your portfolio has already been submitted for this event",
            ballot_exists=True,
        )
        self.voter_id = voter_id
        self.event_id = event_id


class VoterNotFound(VotingError):
    code = "VOTER_NOT_FOUND"
    status_code = 404

    def __init__(self, voter_id: int):
        super().__init__("Voter profile is missing or not assigned to an event", voter_id=voter_id)


class VotingClosed(VotingError):
    code = "VOTING_CLOSED"
    status_code = 409

    def __init__(self, event_id: int, status: str):
        super().__init__("Voting is not open", event_id=event_id, status=status)


# Submission and read-time errors.

class SubmissionFailed(VotingError):
    code = "SUBMISSION_FAILED"
    status_code = 503
    retryable = True

    def __init__(self, cause: BaseException):
        super().__init__("Failed to submit portfolio, nothing was recorded. Please retry.")
        self.cause = cause


class LedgerReadFailed(VotingError):
    code = "LEDGER_READ_FAILED"
    status_code = 503
    retryable = True

    def __init__(self, cause: BaseException):
        super().__init__("Could not read the investment ledger. Please retry.")
        self.cause = cause


class ComputationFailed(VotingError):
    code = "COMPUTATION_FAILED"
    status_code = 503
    retryable = True

    def __init__(self, what: str, cause: Optional[BaseException] = None):
        super().__init__(f"Could not compute {what}. Please retry.")
        self.cause = cause


class InvalidJuryScore(VotingError):
    code = "INVALID_JURY_SCORE"
    status_code = 422

    def __init__(self, message: str, **details: Any):
        super().__init__(message, **details)
