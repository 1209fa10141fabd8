"""
Pydantic models for API requests.
These define the contract between the API and external clients.
"""

from pydantic import BaseModel

from dnn.domain import Role

# SubmitArticleRequest, CastVoteRequest and RegisterVoterRequest live in
# dnn/domain.py because workflows and use cases consume them too.


class GrantRoleRequest(BaseModel):
    """Request model for granting a role to an address."""

    role: Role
