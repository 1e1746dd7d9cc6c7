"""Pydantic request/response schemas for proposals."""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, validator

from proposal_review.permissions import Capabilities

VALID_PROPOSAL_STATUSES = {"draft", "in_progress", "completed"}


class CapabilitiesResponse(BaseModel):
    """Capability flags, named the way clients consume them."""

    canView: bool = False
    canEdit: bool = False
    canComment: bool = False
    canReview: bool = False
    canGenerateAi: bool = False

    @classmethod
    def from_capabilities(cls, capabilities: Optional[Capabilities]) -> "CapabilitiesResponse":
        if capabilities is None:
            return cls()
        return cls(**capabilities.to_dict())


class ProposalCreate(BaseModel):
    """Request body for creating a proposal."""

    title: str = Field(..., min_length=1, max_length=500)
    description: Optional[str] = Field(None, max_length=10000)
    content: Optional[Dict[str, Any]] = None


class ProposalUpdate(BaseModel):
    """Partial update; omitted fields are left unchanged."""

    title: Optional[str] = Field(None, min_length=1, max_length=500)
    description: Optional[str] = Field(None, max_length=10000)
    status: Optional[str] = Field(None, description="draft, in_progress, or completed")
    content: Optional[Dict[str, Any]] = None

    @validator("status")
    def validate_status(cls, v):
        if v is not None and v not in VALID_PROPOSAL_STATUSES:
            raise ValueError(
                f"Invalid status. Must be one of: {', '.join(sorted(VALID_PROPOSAL_STATUSES))}"
            )
        return v


class ProposalResponse(BaseModel):
    id: int
    title: str
    description: Optional[str] = None
    status: str
    content: Optional[Dict[str, Any]] = None
    owner_id: Optional[int] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class ProposalListResponse(BaseModel):
    proposals: List[ProposalResponse]
    total: int
