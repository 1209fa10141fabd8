"""
Memory repository implementations for the DNN domain.

These implementations use Python dictionaries for storage and are ideal for
testing scenarios where external dependencies should be avoided. All
operations stay async to keep interface compatibility with the Minio
repositories and the workflow proxies.
"""

from .article import MemoryArticleRepository
from .ledger import MemoryLedgerRepository
from .role import MemoryRoleRepository

__all__ = [
    "MemoryArticleRepository",
    "MemoryLedgerRepository",
    "MemoryRoleRepository",
]
