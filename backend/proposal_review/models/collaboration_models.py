"""Pydantic request/response schemas for proposal collaborators."""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from proposal_review.models.proposal import CapabilitiesResponse, ProposalResponse


class UserSummary(BaseModel):
    """Just enough of a user to label a collaborator."""

    id: int
    email: Optional[str] = None
    display_name: Optional[str] = None

    class Config:
        from_attributes = True


class CollaboratorAdd(BaseModel):
    """Request body for inviting a collaborator."""

    user_id: int = Field(..., description="Id of the user to invite")
    role: str = Field(
        "viewer",
        description="Role: viewer, commenter, editor, reviewer, or contributor",
    )


class CollaboratorRoleUpdate(BaseModel):
    role: str = Field(..., description="New collaborator role")


class CollaboratorResponse(BaseModel):
    """Collaboration record with its user and the capabilities its role grants."""

    id: int
    proposal_id: int
    user_id: int
    role: str
    invited_by: Optional[int] = None
    created_at: Optional[datetime] = None
    user: Optional[UserSummary] = None
    proposal: Optional[ProposalResponse] = None
    capabilities: CapabilitiesResponse


class CollaboratorListResponse(BaseModel):
    collaborators: List[CollaboratorResponse]
    total: int


class MyCollaborationResponse(BaseModel):
    """The caller's own standing on a proposal."""

    proposal_id: int
    role: str
    is_owner: bool
    is_admin: bool
    collaboration_id: Optional[int] = None
    capabilities: CapabilitiesResponse


class RoleOption(BaseModel):
    role: str
    description: str
    capabilities: CapabilitiesResponse


class RoleCatalogResponse(BaseModel):
    roles: List[RoleOption]
