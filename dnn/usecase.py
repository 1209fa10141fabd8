"""
Use case logic for the article review and publishing cycle.

These classes orchestrate business logic while remaining framework-agnostic.
Dependencies are injected via repository instances following the Clean
Architecture principles: in tests they are memory repositories or mocks, in
the API they are Minio repositories, and inside the review workflow they are
proxies that delegate to Temporal activities. The use cases don't know or
care which.

Every public operation on an article runs to completion while holding that
article's lock, so the status check, the mutation and the save form a single
atomic step. Failures raise a DnnError and leave stored state unchanged.
"""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional, Set

from dnn.config import DnnSettings
from dnn.domain import (
    Article,
    ArticleResolution,
    ArticleStatus,
    Role,
    RoleAssignment,
    TransferArgs,
    Vote,
    VoterAssignment,
    VoteStatus,
    VoteTally,
)
from dnn.errors import (
    AlreadyRegistered,
    AlreadyVoted,
    DnnError,
    InsufficientVoters,
    InvalidState,
    NotReady,
    TransferFailed,
    Unauthorized,
    VotingClosed,
)
from dnn.repositories import (
    ArticleRepository,
    LedgerRepository,
    RoleRepository,
)
from dnn.selection import derive_seed, draw_panel
from dnn.validation import (
    ensure_article_repository,
    ensure_ledger_repository,
    ensure_role_repository,
)

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def advance_status(article: Article, target: ArticleStatus) -> None:
    """Move article to the next lifecycle phase, or raise InvalidState."""
    if not article.status.can_advance_to(target):
        raise InvalidState(
            f"Article {article.article_id} cannot move from "
            f"{article.status.value} to {target.value}",
            article_id=article.article_id,
        )
    article.status = target


class ArticleLocks:
    """Registry of per-article locks shared by the use cases."""

    def __init__(self) -> None:
        self._locks: Dict[str, asyncio.Lock] = {}

    def for_article(self, article_id: str) -> asyncio.Lock:
        lock = self._locks.get(article_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[article_id] = lock
        return lock


class AdminCapability:
    """Proof that the caller is the platform owner.

    Issued only by RoleRegistry.authorize_admin and accepted only by the
    registry that issued it. Admin-only operations take it as an explicit
    argument instead of consulting a global owner.
    """

    __slots__ = ("owner", "_issuer")

    def __init__(self, owner: str, issuer: "RoleRegistry") -> None:
        self.owner = owner
        self._issuer = issuer

    def issued_by(self, registry: "RoleRegistry") -> bool:
        return self._issuer is registry

    def __repr__(self) -> str:
        return f"AdminCapability(owner={self.owner!r})"


class RoleRegistry:
    """
    Tracks which addresses are writers, reviewers, publishers, readers and
    eligible voters.

    Queries are open to everyone; every mutation requires an
    AdminCapability obtained from authorize_admin().
    """

    def __init__(self, role_repo: RoleRepository, owner_address: str) -> None:
        self.role_repo = ensure_role_repository(role_repo)
        self.owner_address = owner_address

    def is_owner(self, address: str) -> bool:
        return address == self.owner_address

    def authorize_admin(self, caller: str) -> AdminCapability:
        """Issue an admin capability to the owner.

        Raises:
            Unauthorized: If caller is not the platform owner
        """
        if not self.is_owner(caller):
            logger.warning(
                "Admin authorization refused",
                extra={"caller": caller},
            )
            raise Unauthorized(
                f"{caller} is not the platform owner", address=caller
            )
        return AdminCapability(caller, self)

    def _require_admin(self, admin: AdminCapability) -> None:
        if not isinstance(admin, AdminCapability) or not admin.issued_by(
            self
        ):
            raise Unauthorized("A valid admin capability is required")

    async def roles_of(self, address: str) -> Set[Role]:
        assignment = await self.role_repo.get(address)
        return set(assignment.roles) if assignment else set()

    async def has_role(self, address: str, role: Role) -> bool:
        return role in await self.roles_of(address)

    async def eligible_voters(self) -> List[str]:
        voters = await self.role_repo.list_addresses_with_role(Role.VOTER)
        return sorted(voters)

    async def register_voter(
        self, admin: AdminCapability, address: str
    ) -> RoleAssignment:
        """Add address to the eligible voter pool.

        Raises:
            Unauthorized: If admin is not a capability from this registry
            AlreadyRegistered: If address is already voter-eligible
        """
        return await self.grant_role(admin, address, Role.VOTER)

    async def grant_role(
        self, admin: AdminCapability, address: str, role: Role
    ) -> RoleAssignment:
        self._require_admin(admin)
        assignment = await self.role_repo.get(address)
        if assignment is None:
            assignment = RoleAssignment(address=address)

        if role in assignment.roles:
            if role == Role.VOTER:
                raise AlreadyRegistered(
                    f"{address} is already an eligible voter",
                    address=address,
                )
            return assignment

        assignment.roles.add(role)
        assignment.updated_at = utc_now()
        await self.role_repo.save(assignment)

        logger.info(
            "Role granted",
            extra={"address": address, "role": role.value},
        )
        return assignment

    async def revoke_role(
        self, admin: AdminCapability, address: str, role: Role
    ) -> RoleAssignment:
        self._require_admin(admin)
        assignment = await self.role_repo.get(address)
        if assignment is None:
            assignment = RoleAssignment(address=address)
        if role not in assignment.roles:
            return assignment

        assignment.roles.discard(role)
        assignment.updated_at = utc_now()
        await self.role_repo.save(assignment)

        logger.info(
            "Role revoked",
            extra={"address": address, "role": role.value},
        )
        return assignment


class VoterPoolSelector:
    """
    Draws the voter panel for an article and opens its voting period.

    The eligible pool must hold at least REQUIRED_VOTER_REQUESTS
    addresses. The panel is REQUIRED_VOTERS distinct addresses drawn from
    that pool minus the article's writer. The draw is a deterministic
    function of the selection salt, the article id and the candidates.
    """

    def __init__(
        self,
        article_repo: ArticleRepository,
        role_registry: RoleRegistry,
        settings: DnnSettings,
        clock: Clock = utc_now,
        locks: Optional[ArticleLocks] = None,
    ) -> None:
        self.article_repo = ensure_article_repository(article_repo)
        self.role_registry = role_registry
        self.settings = settings
        self.clock = clock
        self.locks = locks or ArticleLocks()

    async def preview(self, article_id: str, writer: str) -> VoterAssignment:
        """Compute the assignment for an article without storing it.

        Raises:
            InsufficientVoters: If the pool is smaller than
                required_voter_requests
        """
        pool = await self.role_registry.eligible_voters()
        if len(pool) < self.settings.required_voter_requests:
            raise InsufficientVoters(
                f"Need {self.settings.required_voter_requests} eligible "
                f"voters, only {len(pool)} available",
                article_id=article_id,
            )

        # The writer counts towards the pool but is never drawn
        candidates = [address for address in pool if address != writer]
        if len(candidates) < self.settings.required_voters:
            raise InsufficientVoters(
                f"Need {self.settings.required_voters} voters other than "
                f"the writer, only {len(candidates)} available",
                article_id=article_id,
                address=writer,
            )

        seed = derive_seed(
            self.settings.selection_salt, article_id, candidates
        )
        voters = draw_panel(candidates, self.settings.required_voters, seed)
        return VoterAssignment(
            article_id=article_id,
            voters=voters,
            pool_size=len(pool),
            seed=seed.hex(),
        )

    async def select_voters(self, article_id: str) -> VoterAssignment:
        """Assign voters to a waiting article and move it to voting.

        Raises:
            InvalidState: If the article is not waiting for voters
            InsufficientVoters: If the eligible pool is too small
        """
        async with self.locks.for_article(article_id):
            article = await self.article_repo.get(article_id)
            status = article.status if article else ArticleStatus.NONE
            if article is None or status != ArticleStatus.WAITING_FOR_VOTERS:
                raise InvalidState(
                    f"Article {article_id} is {status.value}, expected "
                    f"{ArticleStatus.WAITING_FOR_VOTERS.value}",
                    article_id=article_id,
                )

            assignment = await self.preview(article_id, article.writer)

            now = self.clock()
            advance_status(article, ArticleStatus.VOTING)
            article.assignment = assignment
            article.voting_started_at = now
            article.voting_deadline = now + self.settings.voting_period
            await self.article_repo.save(article)

            logger.info(
                "Voters assigned, voting opened",
                extra={
                    "article_id": article_id,
                    "pool_size": assignment.pool_size,
                    "panel_size": len(assignment.voters),
                    "voting_deadline": article.voting_deadline.isoformat(),
                },
            )
            return assignment


class VoteTallyEngine:
    """
    Records votes and computes the aggregate VoteStatus.

    Decision rule: accept wins only with strictly more accept than reject
    votes. Ties and timeouts with no participation resolve to reject.
    """

    def __init__(
        self,
        article_repo: ArticleRepository,
        settings: DnnSettings,
        clock: Clock = utc_now,
        locks: Optional[ArticleLocks] = None,
    ) -> None:
        self.article_repo = ensure_article_repository(article_repo)
        self.settings = settings
        self.clock = clock
        self.locks = locks or ArticleLocks()

    @staticmethod
    def decide(accept_count: int, reject_count: int) -> VoteStatus:
        if accept_count > reject_count:
            return VoteStatus.ACCEPT
        return VoteStatus.REJECT

    def is_resolvable(self, article: Article, now: datetime) -> bool:
        if article.status != ArticleStatus.VOTING:
            return False
        assert article.voting_deadline is not None
        return (
            len(article.votes) >= self.settings.required_voters
            or now > article.voting_deadline
        )

    def tally(
        self, article: Article, now: Optional[datetime] = None
    ) -> VoteTally:
        """Count the votes on article.

        The outcome is the stored resolution for done articles, the
        decision rule once a voting article is resolvable, and none
        otherwise.
        """
        accept_count = article.accept_count
        reject_count = article.reject_count

        if article.status == ArticleStatus.DONE:
            outcome = article.resolution
        elif self.is_resolvable(article, now or self.clock()):
            outcome = self.decide(accept_count, reject_count)
        else:
            outcome = VoteStatus.NONE

        return VoteTally(
            article_id=article.article_id,
            accept_count=accept_count,
            reject_count=reject_count,
            votes_cast=len(article.votes),
            required_voters=self.settings.required_voters,
            outcome=outcome,
        )

    async def cast_vote(
        self, article_id: str, voter: str, choice: VoteStatus
    ) -> VoteTally:
        """Record voter's choice on an article.

        Raises:
            VotingClosed: If the article is not voting or the deadline has
                passed
            Unauthorized: If voter is not on the article's panel
            AlreadyVoted: If voter already voted on this article
        """
        async with self.locks.for_article(article_id):
            article = await self.article_repo.get(article_id)
            status = article.status if article else ArticleStatus.NONE
            if article is None or status != ArticleStatus.VOTING:
                raise VotingClosed(
                    f"Article {article_id} is {status.value}, not voting",
                    article_id=article_id,
                    address=voter,
                )

            now = self.clock()
            assert article.voting_deadline is not None
            assert article.assignment is not None
            if now > article.voting_deadline:
                raise VotingClosed(
                    f"Voting on article {article_id} closed at "
                    f"{article.voting_deadline.isoformat()}",
                    article_id=article_id,
                    address=voter,
                )
            if not article.assignment.includes(voter):
                raise Unauthorized(
                    f"{voter} is not an assigned voter for {article_id}",
                    article_id=article_id,
                    address=voter,
                )
            if article.has_voted(voter):
                raise AlreadyVoted(
                    f"{voter} already voted on {article_id}",
                    article_id=article_id,
                    address=voter,
                )

            article.votes.append(
                Vote(
                    article_id=article_id,
                    voter=voter,
                    choice=choice,
                    cast_at=now,
                )
            )
            await self.article_repo.save(article)

            logger.info(
                "Vote recorded",
                extra={
                    "article_id": article_id,
                    "voter": voter,
                    "choice": VoteStatus(choice).value,
                    "votes_cast": len(article.votes),
                },
            )
            return self.tally(article, now)


class ArticleLifecycle:
    """
    Use case owning the article state machine:
    none -> waitingForVoters -> voting -> done.

    Composes the role registry, the voter selector and the tally engine over
    the same repositories, clock and lock registry, and pays the writer fee
    when an article is accepted.

    Architectural Notes:
    - Repository dependencies are injected via constructor and validated
      against their protocols at construction time
    - Time comes from the injected clock (workflow.now inside workflows)
    - Payout follows the saga pattern: a completed transfer is reversed if
      the article cannot be saved as done
    """

    def __init__(
        self,
        article_repo: ArticleRepository,
        role_repo: RoleRepository,
        ledger_repo: LedgerRepository,
        settings: DnnSettings,
        clock: Clock = utc_now,
        locks: Optional[ArticleLocks] = None,
    ) -> None:
        self.article_repo = ensure_article_repository(article_repo)
        self.ledger_repo = ensure_ledger_repository(ledger_repo)
        self.settings = settings
        self.clock = clock
        self.locks = locks or ArticleLocks()

        self.registry = RoleRegistry(role_repo, settings.owner_address)
        self.selector = VoterPoolSelector(
            self.article_repo, self.registry, settings, clock, self.locks
        )
        self.tally_engine = VoteTallyEngine(
            self.article_repo, settings, clock, self.locks
        )

    async def submit_article(
        self, writer: str, title: Optional[str] = None
    ) -> Article:
        """Create a new article waiting for voters.

        Raises:
            Unauthorized: If writer does not hold the writer role
        """
        if not await self.registry.has_role(writer, Role.WRITER):
            raise Unauthorized(
                f"{writer} is not a registered writer", address=writer
            )

        article_id = await self.article_repo.generate_id()
        article = Article(
            article_id=article_id,
            writer=writer,
            title=title,
            status=ArticleStatus.WAITING_FOR_VOTERS,
            created_at=self.clock(),
        )
        await self.article_repo.save(article)

        logger.info(
            "Article submitted",
            extra={"article_id": article_id, "writer": writer},
        )
        return article

    async def request_voting(self, article_id: str) -> Article:
        """Draw the voter panel and open voting.

        Raises:
            InvalidState: If the article is not waiting for voters
            InsufficientVoters: If the eligible pool is too small
        """
        await self.selector.select_voters(article_id)
        article = await self.article_repo.get(article_id)
        assert article is not None
        return article

    async def cast_vote(
        self, article_id: str, voter: str, choice: VoteStatus
    ) -> VoteTally:
        return await self.tally_engine.cast_vote(article_id, voter, choice)

    async def resolve(self, article_id: str) -> ArticleResolution:
        """Close the vote on an article and pay the writer if accepted.

        Raises:
            InvalidState: If the article is not voting (including a second
                resolve on a done article)
            NotReady: If quorum is not reached and the deadline has not
                passed
            TransferFailed: If the ledger did not pay the writer fee
        """
        async with self.locks.for_article(article_id):
            article = await self.article_repo.get(article_id)
            status = article.status if article else ArticleStatus.NONE
            if article is None or status != ArticleStatus.VOTING:
                raise InvalidState(
                    f"Article {article_id} is {status.value}, only voting "
                    "articles can be resolved",
                    article_id=article_id,
                )

            now = self.clock()
            if not self.tally_engine.is_resolvable(article, now):
                raise NotReady(
                    f"Article {article_id} has {len(article.votes)} of "
                    f"{self.settings.required_voters} votes and voting is "
                    "still open",
                    article_id=article_id,
                )

            tally = self.tally_engine.tally(article, now)

            transfer_id = None
            paid_amount = 0
            if tally.outcome == VoteStatus.ACCEPT:
                transfer_id = f"fee_{article_id}"
                await self._pay_writer(article, transfer_id)
                paid_amount = self.settings.writer_fee

            advance_status(article, ArticleStatus.DONE)
            article.resolution = tally.outcome
            article.resolved_at = now
            article.fee_transfer_id = transfer_id

            try:
                await self.article_repo.save(article)
            except Exception as e:
                logger.error(
                    "Saving resolved article failed",
                    extra={
                        "article_id": article_id,
                        "error_type": type(e).__name__,
                        "error_message": str(e),
                    },
                )
                if transfer_id is not None:
                    await self._compensate_payout(article_id, transfer_id)
                raise

            logger.info(
                "Article resolved",
                extra={
                    "article_id": article_id,
                    "outcome": tally.outcome.value,
                    "accept_count": tally.accept_count,
                    "reject_count": tally.reject_count,
                    "paid_amount": paid_amount,
                },
            )
            return ArticleResolution(
                article_id=article_id,
                outcome=tally.outcome,
                tally=tally,
                paid_amount=paid_amount,
                fee_transfer_id=transfer_id,
                resolved_at=now,
            )

    async def _pay_writer(self, article: Article, transfer_id: str) -> None:
        args = TransferArgs(
            transfer_id=transfer_id,
            to=article.writer,
            amount=self.settings.writer_fee,
            memo=f"Writer fee for article {article.article_id}",
        )
        try:
            outcome = await self.ledger_repo.transfer(args)
        except DnnError:
            raise
        except Exception as e:
            logger.error(
                "Writer fee transfer raised",
                extra={
                    "article_id": article.article_id,
                    "transfer_id": transfer_id,
                    "error_type": type(e).__name__,
                    "error_message": str(e),
                },
            )
            raise TransferFailed(
                f"Writer fee transfer for {article.article_id} failed: {e}",
                article_id=article.article_id,
                address=article.writer,
            ) from e

        if outcome.status != "completed":
            raise TransferFailed(
                f"Writer fee transfer for {article.article_id} failed: "
                f"{outcome.reason}",
                article_id=article.article_id,
                address=article.writer,
            )

    async def _compensate_payout(
        self, article_id: str, transfer_id: str
    ) -> None:
        try:
            outcome = await self.ledger_repo.reverse(transfer_id)
            logger.warning(
                "Writer fee transfer reversed",
                extra={
                    "article_id": article_id,
                    "transfer_id": transfer_id,
                    "reversal_status": outcome.status,
                },
            )
        except Exception as reverse_error:
            logger.error(
                "Writer fee reversal failed",
                extra={
                    "article_id": article_id,
                    "transfer_id": transfer_id,
                    "compensation_error_type": type(reverse_error).__name__,
                    "compensation_error_message": str(reverse_error),
                },
                exc_info=True,
            )
            # Do not mask the original failure

    async def get_article(self, article_id: str) -> Optional[Article]:
        return await self.article_repo.get(article_id)

    async def get_article_status(self, article_id: str) -> ArticleStatus:
        article = await self.article_repo.get(article_id)
        return article.status if article else ArticleStatus.NONE

    async def get_vote_tally(self, article_id: str) -> VoteTally:
        """Current vote counts for an article.

        Raises:
            InvalidState: If the article does not exist
        """
        article = await self.article_repo.get(article_id)
        if article is None:
            raise InvalidState(
                f"Article {article_id} does not exist",
                article_id=article_id,
            )
        return self.tally_engine.tally(article)
