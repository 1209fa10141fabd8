"""
Shared test helpers.

The async helpers drive the lifecycle into a given state. They are plain
coroutines rather than fixtures so tests can vary the number of registered
voters and the votes cast.
"""

from datetime import datetime, timedelta
from typing import Dict, List

from dnn.domain import Article, Role, VoteStatus
from dnn.usecase import AdminCapability, ArticleLifecycle

OWNER = "0xowner"
WRITER = "0xwriter"


class FakeClock:
    """Controllable replacement for utc_now."""

    def __init__(self, start: datetime) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, delta: timedelta) -> None:
        self.now = self.now + delta


async def register_participants(
    lifecycle: ArticleLifecycle,
    admin: AdminCapability,
    voters: List[str],
    writer: str = WRITER,
) -> None:
    await lifecycle.registry.grant_role(admin, writer, Role.WRITER)
    for address in voters:
        await lifecycle.registry.register_voter(admin, address)


async def open_voting(
    lifecycle: ArticleLifecycle,
    admin: AdminCapability,
    voters: List[str],
    writer: str = WRITER,
) -> Article:
    """Register participants, submit an article and open voting on it."""
    await register_participants(lifecycle, admin, voters, writer)
    article = await lifecycle.submit_article(writer, "Test article")
    return await lifecycle.request_voting(article.article_id)


async def cast_votes(
    lifecycle: ArticleLifecycle,
    article: Article,
    accept: int,
    reject: int,
) -> Dict[str, VoteStatus]:
    """Cast accept votes then reject votes from the assigned panel."""
    assert article.assignment is not None
    panel = list(article.assignment.voters)
    choices = [VoteStatus.ACCEPT] * accept + [VoteStatus.REJECT] * reject
    assert len(choices) <= len(panel)

    cast = {}
    for voter, choice in zip(panel, choices):
        await lifecycle.cast_vote(article.article_id, voter, choice)
        cast[voter] = choice
    return cast
