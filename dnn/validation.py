"""
Runtime validation utilities for ensuring architectural contracts and data
integrity.

This module provides functions to validate:

- Repository implementations against their defined Protocols using
  @runtime_checkable.
- Stored JSON documents against Pydantic domain models.

The goal is to catch configuration and data errors early at critical
application boundaries: use case construction and loading from storage.
"""

import logging
from typing import Any, Type, TypeVar

from pydantic import BaseModel, ValidationError

logger = logging.getLogger(__name__)

P = TypeVar("P")
M = TypeVar("M", bound=BaseModel)


class RepositoryValidationError(Exception):
    """Raised when repository contract validation fails"""

    pass


class DomainValidationError(Exception):
    """Raised when domain model validation fails"""

    pass


def validate_repository_protocol(
    repository: object, protocol: Type[P]
) -> None:
    """
    Validate that a repository implementation satisfies a protocol contract.

    Args:
        repository: The repository implementation to validate
        protocol: The protocol class to validate against

    Raises:
        RepositoryValidationError: If validation fails

    Example:
        >>> from dnn.repos.memory import MemoryArticleRepository
        >>> from dnn.repositories import ArticleRepository
        >>> repo = MemoryArticleRepository()
        >>> validate_repository_protocol(repo, ArticleRepository)
    """
    logger.debug(
        "Validating repository protocol",
        extra={
            "repository_type": type(repository).__name__,
            "protocol_name": protocol.__name__,
        },
    )

    if not isinstance(repository, protocol):
        error_message = (
            f"Repository {type(repository).__name__} does not implement "
            f"{protocol.__name__} protocol. Missing or incorrect methods."
        )

        logger.error(
            "Repository protocol validation failed",
            extra={
                "repository_type": type(repository).__name__,
                "protocol_name": protocol.__name__,
            },
        )

        raise RepositoryValidationError(error_message)

    logger.debug(
        "Repository protocol validation passed",
        extra={
            "repository_type": type(repository).__name__,
            "protocol_name": protocol.__name__,
        },
    )


def ensure_repository_protocol(repository: object, protocol: Type[P]) -> P:
    """
    Validate and return a repository with proper type annotation.

    This provides both runtime validation and static type checking benefits.

    Raises:
        RepositoryValidationError: If validation fails
    """
    validate_repository_protocol(repository, protocol)
    return repository  # type: ignore[return-value]


def validate_domain_model(data: dict, model_class: Type[M]) -> M:
    """
    Validate and convert dictionary data to a domain model using Pydantic.

    Args:
        data: Dictionary data to validate
        model_class: Pydantic model class to validate against

    Returns:
        Validated domain model instance

    Raises:
        DomainValidationError: If validation fails
    """
    try:
        return model_class.model_validate(data)
    except ValidationError as e:
        logger.error(
            "Domain model validation failed",
            extra={
                "model_class": model_class.__name__,
                "validation_errors": e.errors(),
            },
        )
        raise DomainValidationError(
            f"Domain model validation failed for {model_class.__name__}: {e}"
        ) from e


# Convenience functions for common validation patterns
def ensure_article_repository(repo: object) -> Any:
    """Ensure an object satisfies the ArticleRepository protocol"""
    from dnn.repositories import ArticleRepository

    return ensure_repository_protocol(repo, ArticleRepository)  # type: ignore[type-abstract]


def ensure_role_repository(repo: object) -> Any:
    """Ensure an object satisfies the RoleRepository protocol"""
    from dnn.repositories import RoleRepository

    return ensure_repository_protocol(repo, RoleRepository)  # type: ignore[type-abstract]


def ensure_ledger_repository(repo: object) -> Any:
    """Ensure an object satisfies the LedgerRepository protocol"""
    from dnn.repositories import LedgerRepository

    return ensure_repository_protocol(repo, LedgerRepository)  # type: ignore[type-abstract]
