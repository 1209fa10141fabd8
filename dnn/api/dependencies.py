"""
Dependency injection for FastAPI endpoints.
"""

import logging
from typing import Any, Dict

from fastapi import Depends
from temporalio.client import Client
from temporalio.contrib.pydantic import pydantic_data_converter

from dnn.config import DnnSettings
from dnn.repos.minio import (
    MinioArticleRepository,
    MinioClient,
    MinioLedgerRepository,
    MinioRoleRepository,
    create_minio_client,
)
from dnn.repositories import (
    ArticleRepository,
    LedgerRepository,
    RoleRepository,
)
from dnn.usecase import ArticleLifecycle, ArticleLocks

logger = logging.getLogger(__name__)


class DependencyContainer:
    """
    Dependency injection container with singleton lifecycle management.
    Always creates real clients; mocks are provided by test overrides.
    """

    def __init__(self) -> None:
        self._instances: Dict[str, Any] = {}

    async def get_or_create(self, key: str, factory: Any) -> Any:
        """Get or create a singleton instance."""
        if key not in self._instances:
            self._instances[key] = await factory()
        return self._instances[key]

    async def get_settings(self) -> DnnSettings:
        settings = await self.get_or_create("settings", self._load_settings)
        return settings  # type: ignore[no-any-return]

    async def _load_settings(self) -> DnnSettings:
        return DnnSettings.from_env()

    async def get_temporal_client(self) -> Client:
        """Get or create Temporal client."""
        client = await self.get_or_create(
            "temporal_client", self._create_temporal_client
        )
        return client  # type: ignore[no-any-return]

    async def _create_temporal_client(self) -> Client:
        """Create Temporal client with proper configuration."""
        settings = await self.get_settings()
        logger.debug(
            "Creating Temporal client",
            extra={
                "endpoint": settings.temporal_endpoint,
                "namespace": "default",
            },
        )

        client = await Client.connect(
            settings.temporal_endpoint,
            namespace="default",
            data_converter=pydantic_data_converter,
        )

        logger.debug(
            "Temporal client created",
            extra={
                "endpoint": settings.temporal_endpoint,
                "data_converter_type": type(client.data_converter).__name__,
            },
        )
        return client

    async def get_minio_client(self) -> MinioClient:
        client = await self.get_or_create(
            "minio_client", self._create_minio_client
        )
        return client  # type: ignore[no-any-return]

    async def _create_minio_client(self) -> MinioClient:
        settings = await self.get_settings()
        logger.debug(
            "Creating Minio client",
            extra={"endpoint": settings.minio_endpoint},
        )
        return create_minio_client(settings)

    async def get_article_locks(self) -> ArticleLocks:
        locks = await self.get_or_create("article_locks", self._create_locks)
        return locks  # type: ignore[no-any-return]

    async def _create_locks(self) -> ArticleLocks:
        return ArticleLocks()


# Global container instance
_container = DependencyContainer()


async def get_settings() -> DnnSettings:
    """FastAPI dependency for deployment settings."""
    return await _container.get_settings()


async def get_temporal_client() -> Client:
    """FastAPI dependency for Temporal client."""
    return await _container.get_temporal_client()


async def get_minio_client() -> MinioClient:
    return await _container.get_minio_client()


async def get_article_locks() -> ArticleLocks:
    return await _container.get_article_locks()


async def get_minio_article_repository(
    client: MinioClient = Depends(get_minio_client),
) -> ArticleRepository:
    """FastAPI dependency for direct Minio ArticleRepository."""
    # Instantiated directly, bypassing Temporal proxies
    return MinioArticleRepository(client)


async def get_minio_role_repository(
    client: MinioClient = Depends(get_minio_client),
) -> RoleRepository:
    return MinioRoleRepository(client)


async def get_minio_ledger_repository(
    client: MinioClient = Depends(get_minio_client),
) -> LedgerRepository:
    return MinioLedgerRepository(client)


async def get_article_lifecycle(
    article_repo: ArticleRepository = Depends(get_minio_article_repository),
    role_repo: RoleRepository = Depends(get_minio_role_repository),
    ledger_repo: LedgerRepository = Depends(get_minio_ledger_repository),
    settings: DnnSettings = Depends(get_settings),
    locks: ArticleLocks = Depends(get_article_locks),
) -> ArticleLifecycle:
    """FastAPI dependency for ArticleLifecycle."""
    return ArticleLifecycle(
        article_repo=article_repo,
        role_repo=role_repo,
        ledger_repo=ledger_repo,
        settings=settings,
        locks=locks,
    )


# Note: votes and resolve requests for a voting article are not run
# against the lifecycle above. They are sent as updates to the article's
# review workflow, which owns the article until it is done.
