"""
Workflow-side implementations of the repository Protocols.

These classes are used *inside* Temporal workflows. Every method call
becomes an activity execution, so the use cases stay deterministic while
the repositories underneath remain free to do I/O.
"""

from datetime import timedelta

from temporalio.common import RetryPolicy

from dnn.repositories import (
    ArticleRepository,
    LedgerRepository,
    RoleRepository,
)
from .activity_names import (
    ARTICLE_ACTIVITY_BASE,
    LEDGER_ACTIVITY_BASE,
    ROLE_ACTIVITY_BASE,
)
from .decorators import temporal_workflow_proxy

# Ledger calls are idempotent per transfer_id, so retrying them is safe;
# a bounded number of attempts keeps a broken ledger from stalling resolve.
LEDGER_RETRY_POLICY = RetryPolicy(
    initial_interval=timedelta(seconds=1),
    backoff_coefficient=2.0,
    maximum_attempts=3,
)


@temporal_workflow_proxy(ARTICLE_ACTIVITY_BASE)
class WorkflowArticleRepositoryProxy(ArticleRepository):
    """ArticleRepository that calls article activities."""

    pass


@temporal_workflow_proxy(ROLE_ACTIVITY_BASE)
class WorkflowRoleRepositoryProxy(RoleRepository):
    """RoleRepository that calls role activities."""

    pass


@temporal_workflow_proxy(
    LEDGER_ACTIVITY_BASE, retry_policy=LEDGER_RETRY_POLICY
)
class WorkflowLedgerRepositoryProxy(LedgerRepository):
    """LedgerRepository that calls ledger activities."""

    pass
