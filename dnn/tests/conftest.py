import pytest
from datetime import datetime, timezone
from typing import List

from dnn.config import DnnSettings
from dnn.repos.memory import (
    MemoryArticleRepository,
    MemoryLedgerRepository,
    MemoryRoleRepository,
)
from dnn.usecase import AdminCapability, ArticleLifecycle

from .helpers import OWNER, FakeClock


@pytest.fixture
def settings() -> DnnSettings:
    return DnnSettings(owner_address=OWNER)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc))


@pytest.fixture
def article_repo() -> MemoryArticleRepository:
    return MemoryArticleRepository()


@pytest.fixture
def role_repo() -> MemoryRoleRepository:
    return MemoryRoleRepository()


@pytest.fixture
def ledger_repo() -> MemoryLedgerRepository:
    return MemoryLedgerRepository()


@pytest.fixture
def lifecycle(
    article_repo: MemoryArticleRepository,
    role_repo: MemoryRoleRepository,
    ledger_repo: MemoryLedgerRepository,
    settings: DnnSettings,
    clock: FakeClock,
) -> ArticleLifecycle:
    return ArticleLifecycle(
        article_repo=article_repo,
        role_repo=role_repo,
        ledger_repo=ledger_repo,
        settings=settings,
        clock=clock,
    )


@pytest.fixture
def admin(lifecycle: ArticleLifecycle) -> AdminCapability:
    return lifecycle.registry.authorize_admin(OWNER)


@pytest.fixture
def voter_addresses() -> List[str]:
    return [f"0xvoter{i:02d}" for i in range(12)]
