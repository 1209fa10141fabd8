"""
Minio implementation of RoleRepository.
"""

import logging
from typing import List, Optional

from dnn.domain import Role, RoleAssignment
from dnn.repositories import RoleRepository
from .client import MinioClient, MinioRepositoryMixin


class MinioRoleRepository(RoleRepository, MinioRepositoryMixin):
    """Role assignments persisted as JSON documents keyed by address."""

    def __init__(self, client: MinioClient) -> None:
        self.client = client
        self.logger = logging.getLogger("MinioRoleRepository")
        self.bucket_name = "roles"
        self.ensure_buckets_exist([self.bucket_name])

    async def get(self, address: str) -> Optional[RoleAssignment]:
        return self.get_json_object(
            bucket_name=self.bucket_name,
            object_name=address,
            model_class=RoleAssignment,
            extra_log_data={"address": address},
        )

    async def save(self, assignment: RoleAssignment) -> None:
        self.put_json_object(
            bucket_name=self.bucket_name,
            object_name=assignment.address,
            model=assignment,
            extra_log_data={
                "address": assignment.address,
                "roles": sorted(role.value for role in assignment.roles),
            },
        )

    async def list_addresses_with_role(self, role: Role) -> List[str]:
        addresses = []
        for object_name in self.list_object_names(self.bucket_name):
            assignment = await self.get(object_name)
            if assignment is not None and role in assignment.roles:
                addresses.append(assignment.address)
        return sorted(addresses)
