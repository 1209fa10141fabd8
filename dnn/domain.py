"""
Domain models defined as Pydantic models.
These are pure data structures with validation.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import List, Literal, Optional, Set

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
    model_validator,
)

from dnn.config import ZERO_ADDRESS, DnnSettings


def _validate_address(v: str) -> str:
    if not v or not v.strip():
        raise ValueError("Address cannot be empty")
    v = v.strip()
    if v == ZERO_ADDRESS:
        raise ValueError("The zero address is not a valid participant")
    return v


class ArticleStatus(str, Enum):
    """Lifecycle phase of an article. Phases only ever move forward."""

    NONE = "none"  # Unknown article id, never persisted
    WAITING_FOR_VOTERS = "waitingForVoters"
    VOTING = "voting"
    DONE = "done"

    @property
    def rank(self) -> int:
        return _ARTICLE_STATUS_ORDER.index(self)

    def can_advance_to(self, target: "ArticleStatus") -> bool:
        """True only for the single next phase in the lifecycle."""
        return target.rank == self.rank + 1


_ARTICLE_STATUS_ORDER = [
    ArticleStatus.NONE,
    ArticleStatus.WAITING_FOR_VOTERS,
    ArticleStatus.VOTING,
    ArticleStatus.DONE,
]


class VoteStatus(str, Enum):
    """Outcome tag for a vote or a completed tally."""

    NONE = "none"
    ACCEPT = "accept"
    REJECT = "reject"


class Role(str, Enum):
    WRITER = "writer"
    REVIEWER = "reviewer"
    PUBLISHER = "publisher"
    READER = "reader"
    VOTER = "voter"


class RoleAssignment(BaseModel):
    """All roles held by one address."""

    address: str
    roles: Set[Role] = Field(default_factory=set)
    updated_at: Optional[datetime] = Field(
        default_factory=lambda: datetime.now(timezone.utc)
    )

    @field_validator("address")
    @classmethod
    def address_must_be_valid(cls, v: str) -> str:
        return _validate_address(v)


class Vote(BaseModel):
    article_id: str
    voter: str
    choice: VoteStatus
    cast_at: datetime

    @field_validator("voter")
    @classmethod
    def voter_must_be_valid(cls, v: str) -> str:
        return _validate_address(v)

    @field_validator("choice")
    @classmethod
    def choice_must_be_decisive(cls, v: VoteStatus) -> VoteStatus:
        if v == VoteStatus.NONE:
            raise ValueError("A vote must either accept or reject")
        return v


class VoterAssignment(BaseModel):
    """The panel of voters drawn for one article. Immutable once set."""

    model_config = ConfigDict(frozen=True)

    article_id: str
    voters: List[str]
    pool_size: int
    seed: str

    @field_validator("voters")
    @classmethod
    def voters_must_be_distinct(cls, v: List[str]) -> List[str]:
        if not v:
            raise ValueError("Assignment must contain at least one voter")
        if len(set(v)) != len(v):
            raise ValueError("Assigned voters must be distinct")
        return [_validate_address(voter) for voter in v]

    @model_validator(mode="after")
    def pool_must_cover_panel(self) -> "VoterAssignment":
        if self.pool_size < len(self.voters):
            raise ValueError("Candidate pool smaller than the panel")
        return self

    def includes(self, address: str) -> bool:
        return address in self.voters


class VoteTally(BaseModel):
    article_id: str
    accept_count: int = 0
    reject_count: int = 0
    votes_cast: int = 0
    required_voters: int
    outcome: VoteStatus = VoteStatus.NONE


class Article(BaseModel):
    """A writer-submitted unit of content and its review state.

    The article owns its voter assignment and the votes cast on it; all
    three are stored and loaded together.
    """

    article_id: str
    writer: str
    title: Optional[str] = None
    status: ArticleStatus = ArticleStatus.WAITING_FOR_VOTERS

    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc)
    )
    voting_started_at: Optional[datetime] = None
    voting_deadline: Optional[datetime] = None

    assignment: Optional[VoterAssignment] = None
    votes: List[Vote] = Field(default_factory=list)

    resolution: VoteStatus = VoteStatus.NONE
    resolved_at: Optional[datetime] = None
    fee_transfer_id: Optional[str] = None

    @field_validator("writer")
    @classmethod
    def writer_must_be_valid(cls, v: str) -> str:
        return _validate_address(v)

    @field_validator("status")
    @classmethod
    def status_must_be_persistable(cls, v: ArticleStatus) -> ArticleStatus:
        if v == ArticleStatus.NONE:
            raise ValueError("Stored articles cannot have status 'none'")
        return v

    @model_validator(mode="after")
    def state_must_be_consistent(self) -> "Article":
        in_review = self.status in (ArticleStatus.VOTING, ArticleStatus.DONE)
        if in_review and (
            self.assignment is None or self.voting_deadline is None
        ):
            raise ValueError(
                "Articles in voting or done must have an assignment and "
                "a voting deadline"
            )
        if not in_review and (self.assignment is not None or self.votes):
            raise ValueError(
                "Articles waiting for voters cannot have voters or votes"
            )
        if (
            self.status != ArticleStatus.DONE
            and self.resolution != VoteStatus.NONE
        ):
            raise ValueError("Only done articles carry a resolution")
        voters = [vote.voter for vote in self.votes]
        if len(set(voters)) != len(voters):
            raise ValueError("At most one vote per voter")
        return self

    def has_voted(self, voter: str) -> bool:
        return any(vote.voter == voter for vote in self.votes)

    @property
    def accept_count(self) -> int:
        return sum(1 for v in self.votes if v.choice == VoteStatus.ACCEPT)

    @property
    def reject_count(self) -> int:
        return sum(1 for v in self.votes if v.choice == VoteStatus.REJECT)


class TransferArgs(BaseModel):
    """Arguments for a ledger transfer out of the platform treasury.

    transfer_id makes the call idempotent: a ledger applies a given id at
    most once.
    """

    transfer_id: str
    to: str
    amount: int
    memo: Optional[str] = None

    @field_validator("to")
    @classmethod
    def payee_must_be_valid(cls, v: str) -> str:
        return _validate_address(v)

    @field_validator("amount")
    @classmethod
    def amount_must_be_positive(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("Amount must be positive")
        return v


class LedgerEntry(BaseModel):
    transfer_id: str
    to: str
    amount: int
    status: Literal["completed", "reversed"] = "completed"
    memo: Optional[str] = None
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc)
    )


class TransferOutcome(BaseModel):
    """Result of a ledger transfer or reversal attempt."""

    status: Literal["completed", "failed", "reversed"]
    entry: Optional[LedgerEntry] = None
    reason: Optional[str] = None

    @model_validator(mode="after")
    def entry_must_be_present_unless_failed(self) -> "TransferOutcome":
        if self.status != "failed" and self.entry is None:
            raise ValueError(
                "Ledger entry must be present unless the transfer failed"
            )
        return self


class ArticleResolution(BaseModel):
    """Outcome of resolving an article's vote."""

    article_id: str
    outcome: VoteStatus
    tally: VoteTally
    paid_amount: int = 0
    fee_transfer_id: Optional[str] = None
    resolved_at: datetime


class SubmitArticleRequest(BaseModel):
    """Request model for submitting an article."""

    writer: str
    title: Optional[str] = None

    @field_validator("writer")
    @classmethod
    def writer_must_be_valid(cls, v: str) -> str:
        return _validate_address(v)


class CastVoteRequest(BaseModel):
    """Request model for casting a vote on an article."""

    voter: str
    choice: VoteStatus

    @field_validator("voter")
    @classmethod
    def voter_must_be_valid(cls, v: str) -> str:
        return _validate_address(v)

    @field_validator("choice")
    @classmethod
    def choice_must_be_decisive(cls, v: VoteStatus) -> VoteStatus:
        if v == VoteStatus.NONE:
            raise ValueError("A vote must either accept or reject")
        return v


class RegisterVoterRequest(BaseModel):
    """Request model for adding an address to the eligible voter pool."""

    address: str

    @field_validator("address")
    @classmethod
    def address_must_be_valid(cls, v: str) -> str:
        return _validate_address(v)


class ReviewArticleRequest(BaseModel):
    """Input of the article review workflow."""

    article_id: str
    settings: DnnSettings = Field(default_factory=DnnSettings)
