"""
Temporal worker that runs the review workflow and repository activities.
"""

import asyncio
import logging

from temporalio.client import Client
from temporalio.contrib.pydantic import pydantic_data_converter
from temporalio.service import RPCError
from temporalio.worker import Worker

from dnn.config import DnnSettings, setup_logging
from dnn.repos.minio import create_minio_client
from dnn.repos.temporal.activities import (
    TemporalMinioArticleRepository,
    TemporalMinioLedgerRepository,
    TemporalMinioRoleRepository,
)
from dnn.workflow import ArticleReviewWorkflow

logger = logging.getLogger(__name__)


async def get_temporal_client_with_retries(
    endpoint: str, attempts: int = 10, delay: int = 5
) -> Client:
    """Attempt to connect to Temporal with retries."""
    logger.debug(
        "Attempting to connect to Temporal",
        extra={
            "endpoint": endpoint,
            "max_attempts": attempts,
            "delay_seconds": delay,
        },
    )

    for attempt in range(attempts):
        try:
            client = await Client.connect(
                endpoint,
                data_converter=pydantic_data_converter,
                namespace="default",
            )
            logger.info(
                "Successfully connected to Temporal",
                extra={"endpoint": endpoint, "attempt": attempt + 1},
            )
            return client
        except RPCError as e:
            logger.warning(
                "Failed to connect to Temporal",
                extra={
                    "endpoint": endpoint,
                    "attempt": attempt + 1,
                    "max_attempts": attempts,
                    "error": str(e),
                    "retry_in_seconds": delay,
                },
            )
            if attempt + 1 == attempts:
                logger.error(
                    "All connection attempts to Temporal failed",
                    extra={"endpoint": endpoint, "total_attempts": attempts},
                )
                raise
            await asyncio.sleep(delay)

    # Unreachable: the loop either returns or raises, but mypy needs it
    raise RuntimeError("Failed to connect to Temporal after all attempts")


async def run_worker() -> None:
    """Run the Temporal worker"""
    setup_logging()
    settings = DnnSettings.from_env()

    logger.info(
        "Starting Temporal worker",
        extra={
            "temporal_endpoint": settings.temporal_endpoint,
            "task_queue": settings.task_queue,
        },
    )
    client = await get_temporal_client_with_retries(
        settings.temporal_endpoint
    )

    minio_client = create_minio_client(settings)
    article_repo = TemporalMinioArticleRepository(minio_client)
    role_repo = TemporalMinioRoleRepository(minio_client)
    ledger_repo = TemporalMinioLedgerRepository(minio_client)

    activities = [
        article_repo.get,
        article_repo.save,
        article_repo.generate_id,
        role_repo.get,
        role_repo.save,
        role_repo.list_addresses_with_role,
        ledger_repo.transfer,
        ledger_repo.reverse,
        ledger_repo.balance_of,
    ]

    logger.info(
        "Creating Temporal worker",
        extra={
            "task_queue": settings.task_queue,
            "workflow_count": 1,
            "activity_count": len(activities),
        },
    )

    worker = Worker(
        client,
        task_queue=settings.task_queue,
        workflows=[ArticleReviewWorkflow],
        activities=activities,  # type: ignore[arg-type]
    )

    logger.info("Starting worker execution")
    await worker.run()


if __name__ == "__main__":
    asyncio.run(run_worker())
