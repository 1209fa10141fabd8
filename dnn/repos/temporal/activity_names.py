"""
Activity name prefixes shared by activities.py and proxies.py.

Isolated in their own module so the workflow proxies can import them
without importing the Minio-backed activity implementations.
"""

ARTICLE_ACTIVITY_BASE = "dnn.article_repo.minio"
ROLE_ACTIVITY_BASE = "dnn.role_repo.minio"
LEDGER_ACTIVITY_BASE = "dnn.ledger_repo.minio"

__all__ = [
    "ARTICLE_ACTIVITY_BASE",
    "ROLE_ACTIVITY_BASE",
    "LEDGER_ACTIVITY_BASE",
]
