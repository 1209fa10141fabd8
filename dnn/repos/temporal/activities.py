"""
Minio repositories registered as Temporal activities.

Only the worker imports this module.
"""

from dnn.repos.minio import (
    MinioArticleRepository,
    MinioLedgerRepository,
    MinioRoleRepository,
)
from .activity_names import (
    ARTICLE_ACTIVITY_BASE,
    LEDGER_ACTIVITY_BASE,
    ROLE_ACTIVITY_BASE,
)
from .decorators import temporal_activity_registration


@temporal_activity_registration(ARTICLE_ACTIVITY_BASE)
class TemporalMinioArticleRepository(MinioArticleRepository):
    """Temporal activity wrapper for MinioArticleRepository."""

    pass


@temporal_activity_registration(ROLE_ACTIVITY_BASE)
class TemporalMinioRoleRepository(MinioRoleRepository):
    """Temporal activity wrapper for MinioRoleRepository."""

    pass


@temporal_activity_registration(LEDGER_ACTIVITY_BASE)
class TemporalMinioLedgerRepository(MinioLedgerRepository):
    """Temporal activity wrapper for MinioLedgerRepository."""

    pass


__all__ = [
    "TemporalMinioArticleRepository",
    "TemporalMinioRoleRepository",
    "TemporalMinioLedgerRepository",
]
