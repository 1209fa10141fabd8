"""
Memory implementation of RoleRepository.
"""

import logging
from typing import Any, Dict, List, Optional

from dnn.domain import Role, RoleAssignment
from dnn.repositories import RoleRepository
from .base import MemoryRepositoryMixin

logger = logging.getLogger(__name__)


class MemoryRoleRepository(
    RoleRepository, MemoryRepositoryMixin[RoleAssignment]
):
    """Role assignments keyed by address."""

    def __init__(self) -> None:
        self.logger = logger
        self.entity_name = "RoleAssignment"
        self.storage_dict: Dict[str, RoleAssignment] = {}

        logger.debug("Initializing MemoryRoleRepository")

    async def get(self, address: str) -> Optional[RoleAssignment]:
        return self.get_entity(address)

    async def save(self, assignment: RoleAssignment) -> None:
        self.save_entity(assignment, "address")

    async def list_addresses_with_role(self, role: Role) -> List[str]:
        return sorted(
            address
            for address, assignment in self.storage_dict.items()
            if role in assignment.roles
        )

    def _add_entity_specific_log_data(
        self, entity: RoleAssignment, log_data: Dict[str, Any]
    ) -> None:
        log_data["roles"] = sorted(role.value for role in entity.roles)
