"""
Deployment configuration and logging setup.

The voting constants are fixed when the platform is deployed: settings are
frozen and are passed explicitly to every use case (and into workflows as
part of their input), never read from ambient state at call time.
"""

import logging
import os
from datetime import timedelta

from pydantic import BaseModel, ConfigDict, field_validator, model_validator

logger = logging.getLogger(__name__)

REQUIRED_VOTER_REQUESTS = 10
REQUIRED_VOTERS = 7
WRITER_FEE = 100
VOTING_PERIOD_DURATION = timedelta(days=3)

ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"


class DnnSettings(BaseModel):
    """Platform constants plus the endpoints of the services DNN uses."""

    model_config = ConfigDict(frozen=True)

    required_voter_requests: int = REQUIRED_VOTER_REQUESTS
    required_voters: int = REQUIRED_VOTERS
    writer_fee: int = WRITER_FEE
    voting_period: timedelta = VOTING_PERIOD_DURATION
    selection_salt: str = "dnn"
    owner_address: str = "0xowner"

    temporal_endpoint: str = "temporal:7233"
    task_queue: str = "dnn-review-queue"
    minio_endpoint: str = "minio:9000"
    minio_access_key: str = "minioadmin"
    minio_secret_key: str = "minioadmin"

    @field_validator("required_voters", "required_voter_requests")
    @classmethod
    def counts_must_be_positive(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("Voter counts must be positive")
        return v

    @field_validator("writer_fee")
    @classmethod
    def fee_must_be_positive(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("Writer fee must be positive")
        return v

    @field_validator("voting_period")
    @classmethod
    def period_must_be_positive(cls, v: timedelta) -> timedelta:
        if v <= timedelta(0):
            raise ValueError("Voting period must be positive")
        return v

    @field_validator("owner_address")
    @classmethod
    def owner_must_not_be_empty(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("Owner address cannot be empty")
        return v.strip()

    @model_validator(mode="after")
    def quorum_must_fit_pool(self) -> "DnnSettings":
        if self.required_voters > self.required_voter_requests:
            raise ValueError(
                "required_voters cannot exceed required_voter_requests"
            )
        return self

    @classmethod
    def from_env(cls) -> "DnnSettings":
        """Build settings from DNN_* environment variables.

        Unset variables keep their defaults. TEMPORAL_ENDPOINT and
        MINIO_ENDPOINT are shared with the rest of the deployment and are
        read without prefix.
        """
        env = os.environ
        overrides: dict = {}
        int_fields = {
            "DNN_REQUIRED_VOTER_REQUESTS": "required_voter_requests",
            "DNN_REQUIRED_VOTERS": "required_voters",
            "DNN_WRITER_FEE": "writer_fee",
        }
        for var, field in int_fields.items():
            if var in env:
                overrides[field] = int(env[var])
        if "DNN_VOTING_PERIOD_SECONDS" in env:
            overrides["voting_period"] = timedelta(
                seconds=int(env["DNN_VOTING_PERIOD_SECONDS"])
            )
        str_fields = {
            "DNN_SELECTION_SALT": "selection_salt",
            "DNN_OWNER_ADDRESS": "owner_address",
            "DNN_TASK_QUEUE": "task_queue",
            "TEMPORAL_ENDPOINT": "temporal_endpoint",
            "MINIO_ENDPOINT": "minio_endpoint",
            "MINIO_ACCESS_KEY": "minio_access_key",
            "MINIO_SECRET_KEY": "minio_secret_key",
        }
        for var, field in str_fields.items():
            if var in env:
                overrides[field] = env[var]

        settings = cls(**overrides)
        logger.debug(
            "Loaded DNN settings from environment",
            extra={
                "overridden_fields": sorted(overrides.keys()),
                "required_voters": settings.required_voters,
                "required_voter_requests": settings.required_voter_requests,
            },
        )
        return settings


def setup_logging() -> None:
    """Configure logging based on environment variables"""
    log_level = os.environ.get("LOG_LEVEL", "INFO").upper()
    log_format = os.environ.get(
        "LOG_FORMAT", "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )

    numeric_level = getattr(logging, log_level, None)
    if not isinstance(numeric_level, int):
        print(f"Invalid log level: {log_level}, defaulting to INFO")
        numeric_level = logging.INFO

    logging.basicConfig(
        level=numeric_level,
        format=log_format,
        force=True,
    )

    logger.info(
        "Logging configured",
        extra={"log_level": log_level, "numeric_level": numeric_level},
    )
