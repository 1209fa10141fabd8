"""
Shared behaviour for dictionary-backed repositories.

Entities are deep-copied on the way in and on the way out, so callers never
hold a reference into storage. A use case that fails half-way through an
operation therefore leaves the stored entity untouched.
"""

import logging
import uuid
from typing import Any, Dict, Generic, Optional, TypeVar

from pydantic import BaseModel

T = TypeVar("T", bound=BaseModel)


class MemoryRepositoryMixin(Generic[T]):
    """
    Mixin providing storage helpers for memory repositories.

    Classes using this mixin must set:
    - self.storage_dict: Dict[str, T]
    - self.entity_name: str, used in log messages
    - self.logger: logging.Logger
    """

    storage_dict: Dict[str, T]
    entity_name: str
    logger: logging.Logger

    def get_entity(self, entity_id: str) -> Optional[T]:
        entity = self.storage_dict.get(entity_id)
        if entity is None:
            self.logger.debug(
                f"{self.entity_name} not found",
                extra={"entity_id": entity_id},
            )
            return None
        return entity.model_copy(deep=True)

    def save_entity(self, entity: T, id_field: str) -> None:
        entity_id = getattr(entity, id_field)
        self.storage_dict[entity_id] = entity.model_copy(deep=True)

        log_data: Dict[str, Any] = {id_field: entity_id}
        self._add_entity_specific_log_data(entity, log_data)
        self.logger.debug(f"{self.entity_name} saved", extra=log_data)

    def generate_entity_id(self, prefix: str) -> str:
        return f"{prefix}-{uuid.uuid4()}"

    def _add_entity_specific_log_data(
        self, entity: T, log_data: Dict[str, Any]
    ) -> None:
        """Hook for subclasses to enrich save log entries."""
        pass
