"""
Tests for the Temporal decorators that expose repositories as activities
and implement them as workflow proxies.
"""

import pytest
from datetime import timedelta
from typing import List, Optional
from unittest.mock import AsyncMock, patch

from dnn.domain import Article, Role, TransferArgs, TransferOutcome
from dnn.repos.temporal.activities import (
    TemporalMinioArticleRepository,
    TemporalMinioLedgerRepository,
    TemporalMinioRoleRepository,
)
from dnn.repos.temporal.decorators import (
    discover_protocol_methods,
    temporal_activity_registration,
)
from dnn.repos.temporal.proxies import (
    LEDGER_RETRY_POLICY,
    WorkflowArticleRepositoryProxy,
    WorkflowLedgerRepositoryProxy,
    WorkflowRoleRepositoryProxy,
)
from dnn.repositories import ArticleRepository, LedgerRepository
from dnn.validation import ensure_article_repository
from .factories import VotingArticleFactory


def _activity_name(method: object) -> str:
    definition = getattr(method, "__temporal_activity_definition")
    return str(definition.name)


class TestDiscoverProtocolMethods:
    def test_finds_protocol_methods(self) -> None:
        methods = discover_protocol_methods(
            TemporalMinioLedgerRepository.__mro__
        )
        assert set(methods) == {"transfer", "reverse", "balance_of"}

    def test_ignores_helpers_of_implementations(self) -> None:
        methods = discover_protocol_methods(
            TemporalMinioArticleRepository.__mro__
        )
        assert "get_json_object" not in methods
        assert "ensure_buckets_exist" not in methods

    def test_falls_back_to_async_methods_without_protocol(self) -> None:
        class Plain:
            async def fetch(self) -> int:
                return 1

            def sync_helper(self) -> int:
                return 2

            async def _private(self) -> int:
                return 3

        assert list(discover_protocol_methods(Plain.__mro__)) == ["fetch"]


class TestActivityRegistration:
    @pytest.mark.parametrize(
        "repo_class,method,expected",
        [
            (
                TemporalMinioArticleRepository,
                "get",
                "dnn.article_repo.minio.get",
            ),
            (
                TemporalMinioArticleRepository,
                "generate_id",
                "dnn.article_repo.minio.generate_id",
            ),
            (
                TemporalMinioRoleRepository,
                "list_addresses_with_role",
                "dnn.role_repo.minio.list_addresses_with_role",
            ),
            (
                TemporalMinioLedgerRepository,
                "transfer",
                "dnn.ledger_repo.minio.transfer",
            ),
        ],
    )
    def test_activity_names(
        self, repo_class: type, method: str, expected: str
    ) -> None:
        assert _activity_name(getattr(repo_class, method)) == expected

    @pytest.mark.asyncio
    async def test_wrapped_method_delegates_to_implementation(self) -> None:
        class Repo(ArticleRepository):
            async def get(self, article_id: str) -> Optional[Article]:
                return None

            async def save(self, article: Article) -> None:
                return None

            async def generate_id(self) -> str:
                return "article-fixed"

        Wrapped = temporal_activity_registration("test.article_repo")(Repo)

        assert await Wrapped().generate_id() == "article-fixed"
        assert (
            _activity_name(Wrapped.generate_id)
            == "test.article_repo.generate_id"
        )


class TestWorkflowProxies:
    @pytest.mark.asyncio
    async def test_proxy_calls_activity_by_name(self) -> None:
        article = VotingArticleFactory.build()

        with patch(
            "temporalio.workflow.execute_activity",
            new_callable=AsyncMock,
            return_value=article,
        ) as mock_execute_activity, patch("temporalio.workflow.logger"):
            proxy = WorkflowArticleRepositoryProxy()  # type: ignore[abstract]
            result = await proxy.get(article.article_id)

        assert result is article
        mock_execute_activity.assert_awaited_once_with(
            "dnn.article_repo.minio.get",
            args=[article.article_id],
            start_to_close_timeout=timedelta(seconds=10),
            retry_policy=None,
            result_type=Optional[Article],
        )

    @pytest.mark.asyncio
    async def test_proxy_decodes_to_declared_return_type(self) -> None:
        with patch(
            "temporalio.workflow.execute_activity",
            new_callable=AsyncMock,
            return_value=["0xa"],
        ) as mock_execute_activity, patch("temporalio.workflow.logger"):
            proxy = WorkflowRoleRepositoryProxy()  # type: ignore[abstract]
            await proxy.list_addresses_with_role(Role.VOTER)

        kwargs = mock_execute_activity.await_args.kwargs
        assert kwargs["result_type"] == List[str]
        assert kwargs["args"] == [Role.VOTER]

    @pytest.mark.asyncio
    async def test_ledger_proxy_uses_retry_policy(self) -> None:
        outcome = TransferOutcome(status="failed", reason="no funds")
        args = TransferArgs(transfer_id="fee_a", to="0xwriter", amount=100)

        with patch(
            "temporalio.workflow.execute_activity",
            new_callable=AsyncMock,
            return_value=outcome,
        ) as mock_execute_activity, patch("temporalio.workflow.logger"):
            proxy = WorkflowLedgerRepositoryProxy()  # type: ignore[abstract]
            assert await proxy.transfer(args) is outcome

        kwargs = mock_execute_activity.await_args.kwargs
        assert kwargs["retry_policy"] is LEDGER_RETRY_POLICY
        assert kwargs["result_type"] is TransferOutcome

    @pytest.mark.asyncio
    async def test_proxy_rejects_keyword_arguments(self) -> None:
        with patch("temporalio.workflow.logger"):
            proxy = WorkflowArticleRepositoryProxy()  # type: ignore[abstract]
            with pytest.raises(ValueError, match="kwargs not supported"):
                await proxy.get(article_id="article-1")

    def test_proxies_satisfy_protocols(self) -> None:
        proxy = WorkflowArticleRepositoryProxy()  # type: ignore[abstract]
        assert ensure_article_repository(proxy) is proxy
        assert isinstance(
            WorkflowLedgerRepositoryProxy(),  # type: ignore[abstract]
            LedgerRepository,
        )
