"""
MinioClient protocol definition and shared repository helpers.

The protocol captures only the client methods the repositories use, so both
the real minio.Minio client and the fake client used in tests satisfy it.
"""

import io
import json
import logging
from typing import (
    Any,
    Dict,
    Iterable,
    List,
    Optional,
    Protocol,
    Type,
    TypeVar,
    runtime_checkable,
)

from minio import Minio  # type: ignore[import-untyped]
from minio.error import S3Error  # type: ignore[import-untyped]
from pydantic import BaseModel

from dnn.config import DnnSettings
from dnn.validation import validate_domain_model

M = TypeVar("M", bound=BaseModel)


@runtime_checkable
class MinioClient(Protocol):
    """
    Protocol defining the MinIO client interface used by the repositories.
    """

    def bucket_exists(self, bucket_name: str) -> bool: ...

    def make_bucket(self, bucket_name: str) -> None: ...

    def put_object(
        self,
        bucket_name: str,
        object_name: str,
        data: Any,
        length: int,
        content_type: str = "application/octet-stream",
        metadata: Optional[Dict[str, str]] = None,
    ) -> Any: ...

    def get_object(self, bucket_name: str, object_name: str) -> Any:
        """Retrieve an object; raises S3Error with code NoSuchKey if
        missing."""
        ...

    def list_objects(
        self,
        bucket_name: str,
        prefix: Optional[str] = None,
        recursive: bool = False,
    ) -> Iterable[Any]: ...


def create_minio_client(settings: DnnSettings) -> MinioClient:
    """Build a real Minio client from deployment settings."""
    return Minio(  # type: ignore[no-any-return]
        settings.minio_endpoint,
        access_key=settings.minio_access_key,
        secret_key=settings.minio_secret_key,
        secure=False,
    )


class MinioRepositoryMixin:
    """
    JSON-document helpers shared by the Minio repositories.

    Classes using this mixin must set self.client and self.logger.
    """

    client: MinioClient
    logger: logging.Logger

    def ensure_buckets_exist(self, bucket_names: List[str]) -> None:
        for bucket_name in bucket_names:
            try:
                if not self.client.bucket_exists(bucket_name):
                    self.logger.info(
                        "Creating bucket",
                        extra={"bucket_name": bucket_name},
                    )
                    self.client.make_bucket(bucket_name)
            except S3Error as e:
                self.logger.error(
                    "Failed to create bucket",
                    extra={"bucket_name": bucket_name, "error": str(e)},
                )
                raise

    def get_json_object(
        self,
        bucket_name: str,
        object_name: str,
        model_class: Type[M],
        extra_log_data: Optional[Dict[str, Any]] = None,
    ) -> Optional[M]:
        """Load and validate one JSON document, None if it doesn't exist."""
        try:
            response = self.client.get_object(
                bucket_name=bucket_name, object_name=object_name
            )
            try:
                data = response.read()
            finally:
                response.close()
                response.release_conn()
        except S3Error as e:
            if getattr(e, "code", None) == "NoSuchKey":
                self.logger.debug(
                    f"{model_class.__name__} not found",
                    extra=extra_log_data or {},
                )
                return None
            self.logger.error(
                f"Error retrieving {model_class.__name__}",
                extra={**(extra_log_data or {}), "error": str(e)},
            )
            raise

        return validate_domain_model(
            json.loads(data.decode("utf-8")), model_class
        )

    def put_json_object(
        self,
        bucket_name: str,
        object_name: str,
        model: BaseModel,
        extra_log_data: Optional[Dict[str, Any]] = None,
    ) -> None:
        payload = model.model_dump_json().encode("utf-8")
        try:
            self.client.put_object(
                bucket_name=bucket_name,
                object_name=object_name,
                data=io.BytesIO(payload),
                length=len(payload),
                content_type="application/json",
            )
        except S3Error as e:
            self.logger.error(
                f"Error saving {type(model).__name__}",
                extra={**(extra_log_data or {}), "error": str(e)},
            )
            raise

        self.logger.debug(
            f"{type(model).__name__} saved",
            extra={**(extra_log_data or {}), "bucket": bucket_name},
        )

    def list_object_names(self, bucket_name: str) -> List[str]:
        return [
            obj.object_name
            for obj in self.client.list_objects(
                bucket_name=bucket_name, recursive=True
            )
        ]
