"""
Tests for the article API endpoints.

The lifecycle runs against memory repositories and the Temporal client is
a mock, so these tests cover the HTTP layer: status codes, error bodies,
and what gets forwarded to the review workflow.
"""

import pytest
from typing import Generator, List
from unittest.mock import AsyncMock, MagicMock

from fastapi.testclient import TestClient
from temporalio.client import WorkflowUpdateFailedError
from temporalio.exceptions import (
    ApplicationError,
    WorkflowAlreadyStartedError,
)
from temporalio.service import RPCError, RPCStatusCode

from dnn.api.app import app
from dnn.api.dependencies import (
    get_article_lifecycle,
    get_settings,
    get_temporal_client,
)
from dnn.config import DnnSettings
from dnn.domain import (
    Article,
    ArticleResolution,
    CastVoteRequest,
    ReviewArticleRequest,
    VoteStatus,
    VoteTally,
)
from dnn.usecase import ArticleLifecycle
from dnn.workflow import ArticleReviewWorkflow
from ..helpers import OWNER, WRITER

OWNER_HEADERS = {"X-Caller-Address": OWNER}


@pytest.fixture
def temporal_client() -> MagicMock:
    """Mock Temporal client; updates go through a single mock handle."""
    handle = MagicMock()
    handle.execute_update = AsyncMock()
    client = MagicMock()
    client.start_workflow = AsyncMock(return_value=handle)
    client.get_workflow_handle.return_value = handle
    return client


@pytest.fixture
def client(
    lifecycle: ArticleLifecycle,
    settings: DnnSettings,
    temporal_client: MagicMock,
) -> Generator[TestClient, None, None]:
    app.dependency_overrides[get_article_lifecycle] = lambda: lifecycle
    app.dependency_overrides[get_settings] = lambda: settings
    app.dependency_overrides[get_temporal_client] = lambda: temporal_client

    with TestClient(app) as test_client:
        yield test_client

    # Clean up the overrides after the test
    app.dependency_overrides.clear()


def _register(client: TestClient, voters: List[str]) -> None:
    response = client.post(
        f"/roles/{WRITER}", json={"role": "writer"}, headers=OWNER_HEADERS
    )
    assert response.status_code == 200
    for address in voters:
        response = client.post(
            "/voters", json={"address": address}, headers=OWNER_HEADERS
        )
        assert response.status_code == 200


def _submit(client: TestClient) -> str:
    response = client.post(
        "/articles", json={"writer": WRITER, "title": "On consensus"}
    )
    assert response.status_code == 200
    return str(response.json()["article_id"])


def _update_failure(error_type: str) -> WorkflowUpdateFailedError:
    return WorkflowUpdateFailedError(
        ApplicationError("refused", type=error_type, non_retryable=True)
    )


def test_health_check(client: TestClient) -> None:
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "ok"


class TestRoleEndpoints:
    def test_owner_registers_voter(self, client: TestClient) -> None:
        response = client.post(
            "/voters", json={"address": "0xvoter"}, headers=OWNER_HEADERS
        )

        assert response.status_code == 200
        assert response.json() == {"address": "0xvoter", "roles": ["voter"]}

    def test_non_owner_cannot_register_voter(
        self, client: TestClient
    ) -> None:
        response = client.post(
            "/voters",
            json={"address": "0xvoter"},
            headers={"X-Caller-Address": "0xintruder"},
        )

        assert response.status_code == 403
        assert response.json()["error"] == "Unauthorized"

    def test_caller_header_is_required(self, client: TestClient) -> None:
        response = client.post("/voters", json={"address": "0xvoter"})
        assert response.status_code == 422

    def test_duplicate_voter_conflicts(self, client: TestClient) -> None:
        _register(client, ["0xvoter"])

        response = client.post(
            "/voters", json={"address": "0xvoter"}, headers=OWNER_HEADERS
        )

        assert response.status_code == 409
        body = response.json()
        assert body["error"] == "AlreadyRegistered"
        assert body["address"] == "0xvoter"

    def test_grant_and_revoke_role(self, client: TestClient) -> None:
        client.post(
            "/roles/0xeditor",
            json={"role": "reviewer"},
            headers=OWNER_HEADERS,
        )
        client.post(
            "/roles/0xeditor",
            json={"role": "publisher"},
            headers=OWNER_HEADERS,
        )

        response = client.delete(
            "/roles/0xeditor/reviewer", headers=OWNER_HEADERS
        )
        assert response.status_code == 200
        assert response.json()["roles"] == ["publisher"]

        response = client.get("/roles/0xeditor")
        assert response.json() == {
            "address": "0xeditor",
            "roles": ["publisher"],
        }

    def test_unknown_address_has_no_roles(self, client: TestClient) -> None:
        response = client.get("/roles/0xnobody")

        assert response.status_code == 200
        assert response.json()["roles"] == []


class TestArticleEndpoints:
    def test_submit_requires_writer_role(self, client: TestClient) -> None:
        response = client.post("/articles", json={"writer": WRITER})

        assert response.status_code == 403
        assert response.json()["address"] == WRITER

    def test_submit_and_get_article(self, client: TestClient) -> None:
        _register(client, [])
        article_id = _submit(client)

        response = client.get(f"/articles/{article_id}")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "waitingForVoters"
        assert body["title"] == "On consensus"
        assert body["voters"] == []
        assert body["resolution"] == "none"

    def test_get_unknown_article(self, client: TestClient) -> None:
        response = client.get("/articles/article-missing")
        assert response.status_code == 404

    def test_tally_of_unknown_article(self, client: TestClient) -> None:
        response = client.get("/articles/article-missing/tally")

        assert response.status_code == 409
        assert response.json()["error"] == "InvalidState"

    def test_tally_before_voting(self, client: TestClient) -> None:
        _register(client, [])
        article_id = _submit(client)

        response = client.get(f"/articles/{article_id}/tally")

        assert response.status_code == 200
        assert response.json()["votes_cast"] == 0
        assert response.json()["required_voters"] == 7


class TestRequestVoting:
    @pytest.fixture
    def review_workflow(
        self, lifecycle: ArticleLifecycle, temporal_client: MagicMock
    ) -> MagicMock:
        """Open voting through the lifecycle when the panel is asked for,
        as the running review workflow does."""
        handle = temporal_client.start_workflow.return_value

        async def execute_update(update: object) -> Article:
            request = temporal_client.start_workflow.await_args.args[1]
            return await lifecycle.request_voting(request.article_id)

        handle.execute_update.side_effect = execute_update
        return handle

    def test_opens_voting_through_workflow(
        self,
        client: TestClient,
        voter_addresses: List[str],
        settings: DnnSettings,
        temporal_client: MagicMock,
        review_workflow: MagicMock,
    ) -> None:
        _register(client, voter_addresses)
        article_id = _submit(client)

        response = client.post(f"/articles/{article_id}/voting")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "voting"
        assert body["workflow_id"] == f"review-{article_id}"
        assert len(set(body["voters"])) == 7
        assert set(body["voters"]) <= set(voter_addresses)

        temporal_client.start_workflow.assert_awaited_once_with(
            ArticleReviewWorkflow.run,
            ReviewArticleRequest(article_id=article_id, settings=settings),
            id=f"review-{article_id}",
            task_queue=settings.task_queue,
        )
        review_workflow.execute_update.assert_awaited_once_with(
            ArticleReviewWorkflow.open_voting
        )

    def test_insufficient_voters(
        self,
        client: TestClient,
        voter_addresses: List[str],
        temporal_client: MagicMock,
    ) -> None:
        _register(client, voter_addresses[:9])
        article_id = _submit(client)
        handle = temporal_client.start_workflow.return_value
        handle.execute_update.side_effect = _update_failure(
            "InsufficientVoters"
        )

        response = client.post(f"/articles/{article_id}/voting")

        assert response.status_code == 422
        assert response.json()["error"] == "InsufficientVoters"
        assert response.json()["article_id"] == article_id

    def test_request_while_review_runs_conflicts(
        self, client: TestClient, temporal_client: MagicMock
    ) -> None:
        temporal_client.start_workflow.side_effect = (
            WorkflowAlreadyStartedError(
                "review-article-1", "ArticleReviewWorkflow"
            )
        )

        response = client.post("/articles/article-1/voting")

        assert response.status_code == 409
        assert response.json()["error"] == "InvalidState"

    def test_start_failure_leaves_article_waiting_and_can_be_retried(
        self,
        client: TestClient,
        voter_addresses: List[str],
        temporal_client: MagicMock,
        review_workflow: MagicMock,
    ) -> None:
        _register(client, voter_addresses)
        article_id = _submit(client)
        temporal_client.start_workflow.side_effect = [
            RuntimeError("temporal unavailable"),
            review_workflow,
        ]

        failed = client.post(f"/articles/{article_id}/voting")

        assert failed.status_code == 500
        assert "unavailable" not in failed.json()["detail"]
        stored = client.get(f"/articles/{article_id}").json()
        assert stored["status"] == "waitingForVoters"
        assert stored["voters"] == []
        review_workflow.execute_update.assert_not_awaited()

        retried = client.post(f"/articles/{article_id}/voting")

        assert retried.status_code == 200
        assert retried.json()["status"] == "voting"
        stored = client.get(f"/articles/{article_id}").json()
        assert stored["status"] == "voting"
        assert stored["voters"] == retried.json()["voters"]
        assert temporal_client.start_workflow.await_count == 2


class TestWorkflowUpdates:
    def test_vote_is_forwarded_to_workflow(
        self, client: TestClient, temporal_client: MagicMock
    ) -> None:
        handle = temporal_client.get_workflow_handle.return_value
        handle.execute_update.return_value = VoteTally(
            article_id="article-1",
            accept_count=1,
            votes_cast=1,
            required_voters=7,
        )

        response = client.post(
            "/articles/article-1/votes",
            json={"voter": "0xvoter01", "choice": "accept"},
        )

        assert response.status_code == 200
        assert response.json()["accept_count"] == 1
        temporal_client.get_workflow_handle.assert_called_once_with(
            "review-article-1"
        )
        handle.execute_update.assert_awaited_once_with(
            ArticleReviewWorkflow.cast_vote,
            CastVoteRequest(voter="0xvoter01", choice=VoteStatus.ACCEPT),
        )

    @pytest.mark.parametrize(
        "error_type,status_code",
        [
            ("AlreadyVoted", 409),
            ("Unauthorized", 403),
            ("VotingClosed", 409),
        ],
    )
    def test_vote_refusal_maps_to_domain_error(
        self,
        client: TestClient,
        temporal_client: MagicMock,
        error_type: str,
        status_code: int,
    ) -> None:
        handle = temporal_client.get_workflow_handle.return_value
        handle.execute_update.side_effect = _update_failure(error_type)

        response = client.post(
            "/articles/article-1/votes",
            json={"voter": "0xvoter01", "choice": "reject"},
        )

        assert response.status_code == status_code
        body = response.json()
        assert body["error"] == error_type
        assert body["article_id"] == "article-1"
        assert body["address"] == "0xvoter01"

    def test_vote_without_running_review_is_closed(
        self, client: TestClient, temporal_client: MagicMock
    ) -> None:
        handle = temporal_client.get_workflow_handle.return_value
        handle.execute_update.side_effect = RPCError(
            "workflow not found", RPCStatusCode.NOT_FOUND, b""
        )

        response = client.post(
            "/articles/article-1/votes",
            json={"voter": "0xvoter01", "choice": "accept"},
        )

        assert response.status_code == 409
        assert response.json()["error"] == "VotingClosed"

    def test_invalid_choice_is_rejected(self, client: TestClient) -> None:
        response = client.post(
            "/articles/article-1/votes",
            json={"voter": "0xvoter01", "choice": "maybe"},
        )
        assert response.status_code == 422

    def test_resolve_is_forwarded_to_workflow(
        self, client: TestClient, temporal_client: MagicMock
    ) -> None:
        tally = VoteTally(
            article_id="article-1",
            accept_count=4,
            reject_count=3,
            votes_cast=7,
            required_voters=7,
            outcome=VoteStatus.ACCEPT,
        )
        handle = temporal_client.get_workflow_handle.return_value
        handle.execute_update.return_value = ArticleResolution(
            article_id="article-1",
            outcome=VoteStatus.ACCEPT,
            tally=tally,
            paid_amount=100,
            fee_transfer_id="fee_article-1",
            resolved_at="2024-03-02T12:00:00Z",
        )

        response = client.post("/articles/article-1/resolve")

        assert response.status_code == 200
        assert response.json()["paid_amount"] == 100
        handle.execute_update.assert_awaited_once_with(
            ArticleReviewWorkflow.resolve
        )

    def test_resolve_not_ready(
        self, client: TestClient, temporal_client: MagicMock
    ) -> None:
        handle = temporal_client.get_workflow_handle.return_value
        handle.execute_update.side_effect = _update_failure("NotReady")

        response = client.post("/articles/article-1/resolve")

        assert response.status_code == 409
        assert response.json()["error"] == "NotReady"

    def test_resolve_transfer_failure(
        self, client: TestClient, temporal_client: MagicMock
    ) -> None:
        handle = temporal_client.get_workflow_handle.return_value
        handle.execute_update.side_effect = _update_failure("TransferFailed")

        response = client.post("/articles/article-1/resolve")

        assert response.status_code == 502

    def test_resolve_without_running_review(
        self, client: TestClient, temporal_client: MagicMock
    ) -> None:
        handle = temporal_client.get_workflow_handle.return_value
        handle.execute_update.side_effect = RPCError(
            "workflow not found", RPCStatusCode.NOT_FOUND, b""
        )

        response = client.post("/articles/article-1/resolve")

        assert response.status_code == 409
        assert response.json()["error"] == "InvalidState"

    def test_other_rpc_errors_propagate(
        self, client: TestClient, temporal_client: MagicMock
    ) -> None:
        handle = temporal_client.get_workflow_handle.return_value
        handle.execute_update.side_effect = RPCError(
            "unavailable", RPCStatusCode.UNAVAILABLE, b""
        )

        with pytest.raises(RPCError):
            client.post("/articles/article-1/resolve")
