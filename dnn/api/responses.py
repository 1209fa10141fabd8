"""
Pydantic models for API responses.
These define the contract between the API and external clients.
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from dnn.domain import (
    Article,
    ArticleStatus,
    RoleAssignment,
    VoteStatus,
)


class HealthCheckResponse(BaseModel):
    status: str
    version: str


class ArticleResponse(BaseModel):
    """Public view of an article and its review progress"""

    article_id: str
    writer: str
    title: Optional[str] = None
    status: ArticleStatus
    created_at: datetime
    voting_deadline: Optional[datetime] = None
    voters: List[str] = Field(default_factory=list)
    votes_cast: int = 0
    resolution: VoteStatus = VoteStatus.NONE
    fee_transfer_id: Optional[str] = None

    @classmethod
    def from_article(cls, article: Article) -> "ArticleResponse":
        return cls(
            article_id=article.article_id,
            writer=article.writer,
            title=article.title,
            status=article.status,
            created_at=article.created_at,
            voting_deadline=article.voting_deadline,
            voters=(
                list(article.assignment.voters) if article.assignment else []
            ),
            votes_cast=len(article.votes),
            resolution=article.resolution,
            fee_transfer_id=article.fee_transfer_id,
        )


class VotingOpenedResponse(BaseModel):
    """Response for a voting request: the drawn panel and its deadline"""

    article_id: str
    status: ArticleStatus
    voters: List[str]
    voting_deadline: datetime
    workflow_id: str


class RoleAssignmentResponse(BaseModel):
    address: str
    roles: List[str]

    @classmethod
    def from_assignment(
        cls, assignment: RoleAssignment
    ) -> "RoleAssignmentResponse":
        return cls(
            address=assignment.address,
            roles=sorted(role.value for role in assignment.roles),
        )


class ErrorResponse(BaseModel):
    """Body returned for every platform error"""

    error: str
    detail: str
    article_id: Optional[str] = None
    address: Optional[str] = None
