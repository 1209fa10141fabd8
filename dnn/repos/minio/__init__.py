"""
Minio repository implementations for the DNN domain.

Each entity is stored as one JSON document, validated against its domain
model when loaded.
"""

from .article import MinioArticleRepository
from .client import MinioClient, create_minio_client
from .ledger import MinioLedgerRepository
from .role import MinioRoleRepository

__all__ = [
    "MinioArticleRepository",
    "MinioClient",
    "MinioLedgerRepository",
    "MinioRoleRepository",
    "create_minio_client",
]
