"""
FastAPI application for article submission, voting and resolution.

Reads, role maintenance and submission run against the Minio repositories
directly. Requesting voting starts the article's review workflow, which
opens voting itself; from then on the article belongs to that workflow and
votes and resolve requests are forwarded to it as workflow updates.
"""

import logging
from typing import Dict, Type

from fastapi import Depends, FastAPI, Header, HTTPException, Request
from fastapi.responses import JSONResponse
from temporalio.client import Client, WorkflowUpdateFailedError
from temporalio.exceptions import (
    ApplicationError,
    WorkflowAlreadyStartedError,
)
from temporalio.service import RPCError, RPCStatusCode

from dnn.config import DnnSettings, setup_logging
from dnn.domain import (
    ArticleResolution,
    CastVoteRequest,
    RegisterVoterRequest,
    ReviewArticleRequest,
    Role,
    SubmitArticleRequest,
    VoteTally,
)
from dnn.errors import (
    ERRORS_BY_NAME,
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
from dnn.api.dependencies import (
    get_article_lifecycle,
    get_settings,
    get_temporal_client,
)
from dnn.api.requests import GrantRoleRequest
from dnn.api.responses import (
    ArticleResponse,
    ErrorResponse,
    HealthCheckResponse,
    RoleAssignmentResponse,
    VotingOpenedResponse,
)
from dnn.usecase import ArticleLifecycle
from dnn.workflow import ArticleReviewWorkflow, workflow_id_for

# Setup logging when module is imported
setup_logging()
logger = logging.getLogger(__name__)

ERROR_STATUS_CODES: Dict[Type[DnnError], int] = {
    Unauthorized: 403,
    InvalidState: 409,
    AlreadyVoted: 409,
    AlreadyRegistered: 409,
    VotingClosed: 409,
    NotReady: 409,
    InsufficientVoters: 422,
    TransferFailed: 502,
}

app = FastAPI(title="DNN Publishing API")


def error_response(error: DnnError) -> JSONResponse:
    body = ErrorResponse(
        error=type(error).__name__,
        detail=str(error),
        article_id=error.article_id,
        address=error.address,
    )
    return JSONResponse(
        status_code=ERROR_STATUS_CODES.get(type(error), 400),
        content=body.model_dump(),
    )


@app.exception_handler(DnnError)
async def dnn_error_handler(request: Request, exc: DnnError) -> JSONResponse:
    logger.info(
        "Request refused",
        extra={
            "path": request.url.path,
            "error_type": type(exc).__name__,
            "error_message": str(exc),
            "article_id": exc.article_id,
        },
    )
    return error_response(exc)


def domain_error_from_update(
    error: WorkflowUpdateFailedError, article_id: str, address: str = ""
) -> Exception:
    """Recover the DnnError an update handler raised, by class name.

    Returns the original exception when the failure is not a domain error.
    """
    cause = error.cause
    if isinstance(cause, ApplicationError) and cause.type in ERRORS_BY_NAME:
        error_class = ERRORS_BY_NAME[cause.type]
        return error_class(
            cause.message,
            article_id=article_id,
            address=address or None,
        )
    return error


@app.get("/health", response_model=HealthCheckResponse)
async def health_check() -> HealthCheckResponse:
    """Health check endpoint"""
    logger.debug("Health check requested")
    return HealthCheckResponse(status="ok", version="1.0.0")


@app.post("/voters", response_model=RoleAssignmentResponse)
async def register_voter(
    request: RegisterVoterRequest,
    x_caller_address: str = Header(...),
    lifecycle: ArticleLifecycle = Depends(get_article_lifecycle),
) -> RoleAssignmentResponse:
    """Add an address to the eligible voter pool (owner only)."""
    admin = lifecycle.registry.authorize_admin(x_caller_address)
    assignment = await lifecycle.registry.register_voter(
        admin, request.address
    )
    return RoleAssignmentResponse.from_assignment(assignment)


@app.get("/roles/{address}", response_model=RoleAssignmentResponse)
async def get_roles(
    address: str,
    lifecycle: ArticleLifecycle = Depends(get_article_lifecycle),
) -> RoleAssignmentResponse:
    roles = await lifecycle.registry.roles_of(address)
    return RoleAssignmentResponse(
        address=address, roles=sorted(role.value for role in roles)
    )


@app.post("/roles/{address}", response_model=RoleAssignmentResponse)
async def grant_role(
    address: str,
    request: GrantRoleRequest,
    x_caller_address: str = Header(...),
    lifecycle: ArticleLifecycle = Depends(get_article_lifecycle),
) -> RoleAssignmentResponse:
    admin = lifecycle.registry.authorize_admin(x_caller_address)
    assignment = await lifecycle.registry.grant_role(
        admin, address, request.role
    )
    return RoleAssignmentResponse.from_assignment(assignment)


@app.delete("/roles/{address}/{role}", response_model=RoleAssignmentResponse)
async def revoke_role(
    address: str,
    role: Role,
    x_caller_address: str = Header(...),
    lifecycle: ArticleLifecycle = Depends(get_article_lifecycle),
) -> RoleAssignmentResponse:
    admin = lifecycle.registry.authorize_admin(x_caller_address)
    assignment = await lifecycle.registry.revoke_role(admin, address, role)
    return RoleAssignmentResponse.from_assignment(assignment)


@app.post("/articles", response_model=ArticleResponse)
async def submit_article(
    request: SubmitArticleRequest,
    lifecycle: ArticleLifecycle = Depends(get_article_lifecycle),
) -> ArticleResponse:
    """Submit a new article; it waits for voters until voting is
    requested."""
    logger.info(
        "Article submission requested",
        extra={"writer": request.writer},
    )
    article = await lifecycle.submit_article(request.writer, request.title)
    return ArticleResponse.from_article(article)


@app.get("/articles/{article_id}", response_model=ArticleResponse)
async def get_article(
    article_id: str,
    lifecycle: ArticleLifecycle = Depends(get_article_lifecycle),
) -> ArticleResponse:
    article = await lifecycle.get_article(article_id)
    if article is None:
        raise HTTPException(
            status_code=404, detail=f"Article {article_id} not found"
        )
    return ArticleResponse.from_article(article)


@app.get("/articles/{article_id}/tally", response_model=VoteTally)
async def get_vote_tally(
    article_id: str,
    lifecycle: ArticleLifecycle = Depends(get_article_lifecycle),
) -> VoteTally:
    return await lifecycle.get_vote_tally(article_id)


@app.post(
    "/articles/{article_id}/voting", response_model=VotingOpenedResponse
)
async def request_voting(
    article_id: str,
    settings: DnnSettings = Depends(get_settings),
    client: Client = Depends(get_temporal_client),
) -> VotingOpenedResponse:
    """
    Start the article's review workflow, which draws the voter panel and
    opens voting, and return the panel. Selection errors are reported
    synchronously. If the workflow cannot be started the article is left
    waiting for voters and the request can be retried.
    """
    workflow_id = workflow_id_for(article_id)
    try:
        handle = await client.start_workflow(
            ArticleReviewWorkflow.run,
            ReviewArticleRequest(article_id=article_id, settings=settings),
            id=workflow_id,
            task_queue=settings.task_queue,
        )
    except WorkflowAlreadyStartedError as e:
        raise InvalidState(
            f"Voting on article {article_id} was already requested",
            article_id=article_id,
        ) from e
    except Exception as e:
        logger.error(
            "Failed to start review workflow",
            extra={
                "article_id": article_id,
                "workflow_id": workflow_id,
                "error_type": type(e).__name__,
                "error_message": str(e),
            },
            exc_info=True,
        )
        # Return a generic error message to prevent information leakage
        raise HTTPException(
            status_code=500,
            detail="Failed to start the review workflow. Please retry.",
        )

    logger.info(
        "Review workflow started",
        extra={"article_id": article_id, "workflow_id": workflow_id},
    )
    try:
        article = await handle.execute_update(
            ArticleReviewWorkflow.open_voting
        )
    except WorkflowUpdateFailedError as e:
        raise domain_error_from_update(e, article_id) from e

    assert article.assignment is not None
    assert article.voting_deadline is not None
    return VotingOpenedResponse(
        article_id=article_id,
        status=article.status,
        voters=list(article.assignment.voters),
        voting_deadline=article.voting_deadline,
        workflow_id=workflow_id,
    )


@app.post("/articles/{article_id}/votes", response_model=VoteTally)
async def cast_vote(
    article_id: str,
    request: CastVoteRequest,
    client: Client = Depends(get_temporal_client),
) -> VoteTally:
    """Forward a vote to the article's review workflow."""
    handle = client.get_workflow_handle(workflow_id_for(article_id))
    try:
        return await handle.execute_update(
            ArticleReviewWorkflow.cast_vote, request
        )
    except WorkflowUpdateFailedError as e:
        raise domain_error_from_update(e, article_id, request.voter) from e
    except RPCError as e:
        if e.status != RPCStatusCode.NOT_FOUND:
            raise
        raise VotingClosed(
            f"Article {article_id} is not voting",
            article_id=article_id,
            address=request.voter,
        ) from e


@app.post(
    "/articles/{article_id}/resolve", response_model=ArticleResolution
)
async def resolve_article(
    article_id: str,
    client: Client = Depends(get_temporal_client),
) -> ArticleResolution:
    """Ask the article's review workflow to resolve it now."""
    handle = client.get_workflow_handle(workflow_id_for(article_id))
    try:
        return await handle.execute_update(ArticleReviewWorkflow.resolve)
    except WorkflowUpdateFailedError as e:
        raise domain_error_from_update(e, article_id) from e
    except RPCError as e:
        if e.status != RPCStatusCode.NOT_FOUND:
            raise
        raise InvalidState(
            f"Article {article_id} has no running review",
            article_id=article_id,
        ) from e


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "dnn.api.app:app",
        host="0.0.0.0",
        port=8000,
        log_level="info",
    )
