"""
The execution context is bound to way execution works.
In this case, we are using a temporal.io execution method,
so the use cases run against the temporal repository proxies.

One ArticleReviewWorkflow runs per article (workflow id "review-<id>") from
the moment voting is requested until the article is done. The workflow
opens voting itself, so an article only ever enters voting with a workflow
in place to receive its votes. Votes and manual resolve requests arrive as
workflow updates, so every change to a voting article goes through a
single event loop and the same per-article lock.
"""

import asyncio
from datetime import timedelta
from typing import Optional

from temporalio import workflow
from temporalio.exceptions import ActivityError, ApplicationError

with workflow.unsafe.imports_passed_through():
    from dnn.config import DnnSettings
    from dnn.domain import (
        Article,
        ArticleResolution,
        CastVoteRequest,
        ReviewArticleRequest,
        VoteTally,
    )
    from dnn.errors import (
        DnnError,
        InvalidState,
        TransferFailed,
        VotingClosed,
    )
    from dnn.repos.temporal.proxies import (
        WorkflowArticleRepositoryProxy,
        WorkflowLedgerRepositoryProxy,
        WorkflowRoleRepositoryProxy,
    )
    from dnn.usecase import ArticleLifecycle

# Slack added to the deadline timer so the deadline has strictly passed
# when the workflow wakes up to resolve.
DEADLINE_GRACE = timedelta(seconds=1)

# How long a workflow that could not open voting stays up so the caller's
# open_voting update can collect the error.
OPEN_REPORT_TIMEOUT = timedelta(minutes=1)


def workflow_id_for(article_id: str) -> str:
    return f"review-{article_id}"


def to_application_error(error: DnnError) -> ApplicationError:
    """Wrap a domain error so callers can recover its class by name."""
    return ApplicationError(
        str(error),
        error.article_id,
        error.address,
        type=type(error).__name__,
        non_retryable=True,
    )


@workflow.defn
class ArticleReviewWorkflow:
    def __init__(self) -> None:
        self.current_step = "initialized"
        self._lifecycle: Optional[ArticleLifecycle] = None
        self._article_id: Optional[str] = None
        self._required_voters = 0
        self._opened: Optional[Article] = None
        self._open_error: Optional[ApplicationError] = None
        self._open_reported = False
        self._quorum_reached = False
        self._resolution: Optional[ArticleResolution] = None

    @workflow.query
    def get_current_step(self) -> str:
        """Query method to get the current workflow step"""
        return str(self.current_step)

    def _build_lifecycle(self, settings: DnnSettings) -> ArticleLifecycle:
        # Proxies delegate to activities; the use case stays unaware of
        # Temporal and validates them against the repository Protocols.
        return ArticleLifecycle(
            article_repo=WorkflowArticleRepositoryProxy(),  # type: ignore[abstract]
            role_repo=WorkflowRoleRepositoryProxy(),  # type: ignore[abstract]
            ledger_repo=WorkflowLedgerRepositoryProxy(),  # type: ignore[abstract]
            settings=settings,
            clock=workflow.now,
        )

    def _opening_settled(self) -> bool:
        return self._opened is not None or self._open_error is not None

    async def _ready(self) -> Optional[ArticleLifecycle]:
        """Wait until voting is open. None if it could not be opened."""
        await workflow.wait_condition(self._opening_settled)
        return self._lifecycle

    @workflow.run
    async def run(self, request: ReviewArticleRequest) -> ArticleResolution:
        """
        Open voting, wait for quorum or the voting deadline, then resolve
        the article.

        If voting cannot be opened the article is left as it was and the
        workflow fails with the domain error. Once voting is open the
        workflow only completes with a resolution.
        """
        article_id = request.article_id
        self._article_id = article_id
        self._required_voters = request.settings.required_voters

        workflow.logger.info(
            "Starting article review workflow",
            extra={
                "article_id": article_id,
                "workflow_run_id": workflow.info().run_id,
            },
        )

        lifecycle = self._build_lifecycle(request.settings)
        self.current_step = "opening"
        try:
            article = await lifecycle.request_voting(article_id)
        except DnnError as e:
            await self._fail_opening(article_id, e)
            assert self._open_error is not None
            raise self._open_error from e

        self._lifecycle = lifecycle
        self._opened = article
        self.current_step = "voting"

        assert article.voting_deadline is not None
        remaining = article.voting_deadline - workflow.now()
        timeout = max(remaining, timedelta(0)) + DEADLINE_GRACE
        try:
            await workflow.wait_condition(
                lambda: self._quorum_reached or self._resolution is not None,
                timeout=timeout.total_seconds(),
            )
        except asyncio.TimeoutError:
            workflow.logger.info(
                "Voting deadline passed",
                extra={"article_id": article_id},
            )

        if self._resolution is None:
            await self._auto_resolve(lifecycle, article_id)

        await workflow.wait_condition(workflow.all_handlers_finished)

        assert self._resolution is not None
        workflow.logger.info(
            "Article review workflow completed",
            extra={
                "article_id": article_id,
                "outcome": self._resolution.outcome.value,
                "paid_amount": self._resolution.paid_amount,
            },
        )
        self.current_step = "completed"
        return self._resolution

    async def _fail_opening(self, article_id: str, error: DnnError) -> None:
        self.current_step = "failed"
        self._open_error = to_application_error(error)
        workflow.logger.warning(
            "Voting could not be opened",
            extra={
                "article_id": article_id,
                "error_type": type(error).__name__,
                "error_message": str(error),
            },
        )
        try:
            await workflow.wait_condition(
                lambda: self._open_reported,
                timeout=OPEN_REPORT_TIMEOUT.total_seconds(),
            )
        except asyncio.TimeoutError:
            workflow.logger.info(
                "Opening error was not collected",
                extra={"article_id": article_id},
            )
        await workflow.wait_condition(workflow.all_handlers_finished)

    async def _auto_resolve(
        self, lifecycle: ArticleLifecycle, article_id: str
    ) -> None:
        self.current_step = "resolving"
        try:
            self._resolution = await lifecycle.resolve(article_id)
            return
        except InvalidState:
            # A resolve update won the lock first
            pass
        except (TransferFailed, ActivityError) as e:
            self.current_step = "awaiting_resolve"
            workflow.logger.error(
                "Automatic resolution failed, waiting for a resolve request",
                extra={
                    "article_id": article_id,
                    "error_type": type(e).__name__,
                    "error_message": str(e),
                },
            )
        except DnnError as e:
            self.current_step = "failed"
            workflow.logger.error(
                "Article resolution failed",
                extra={
                    "article_id": article_id,
                    "error_type": type(e).__name__,
                    "error_message": str(e),
                },
            )
            raise to_application_error(e) from e

        await workflow.wait_condition(lambda: self._resolution is not None)

    @workflow.update
    async def open_voting(self) -> Article:
        """Report the opened article, or the reason voting did not open."""
        await workflow.wait_condition(self._opening_settled)
        self._open_reported = True
        if self._open_error is not None:
            raise self._open_error
        assert self._opened is not None
        return self._opened

    @workflow.update
    async def cast_vote(self, request: CastVoteRequest) -> VoteTally:
        lifecycle = await self._ready()
        assert self._article_id is not None
        if lifecycle is None:
            raise to_application_error(
                VotingClosed(
                    f"Voting on article {self._article_id} did not open",
                    article_id=self._article_id,
                    address=request.voter,
                )
            )
        try:
            tally = await lifecycle.cast_vote(
                self._article_id, request.voter, request.choice
            )
        except DnnError as e:
            workflow.logger.info(
                "Vote rejected",
                extra={
                    "article_id": self._article_id,
                    "voter": request.voter,
                    "error_type": type(e).__name__,
                },
            )
            raise to_application_error(e) from e

        if tally.votes_cast >= self._required_voters:
            self._quorum_reached = True
        return tally

    @workflow.update
    async def resolve(self) -> ArticleResolution:
        lifecycle = await self._ready()
        assert self._article_id is not None
        if lifecycle is None:
            raise to_application_error(
                InvalidState(
                    f"Voting on article {self._article_id} did not open",
                    article_id=self._article_id,
                )
            )
        try:
            resolution = await lifecycle.resolve(self._article_id)
        except DnnError as e:
            raise to_application_error(e) from e

        self._resolution = resolution
        return resolution
