"""Pydantic request/response schemas for suggested answer edits."""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field, validator

from proposal_review.models.review import AnswerResponse

VALID_RESOLUTIONS = {"accepted", "rejected"}


class SuggestionCreate(BaseModel):
    suggested_text: str = Field(..., min_length=1, max_length=100000)
    note: Optional[str] = Field(None, max_length=5000)


class SuggestionResolve(BaseModel):
    status: str = Field(..., description="accepted or rejected")

    @validator("status")
    def validate_status(cls, v):
        if v not in VALID_RESOLUTIONS:
            raise ValueError("status must be 'accepted' or 'rejected'")
        return v


class SuggestionApply(BaseModel):
    expected_version: Optional[int] = Field(None, ge=0)


class SuggestionResponse(BaseModel):
    id: int
    proposal_id: int
    answer_id: int
    proposed_by: int
    proposed_by_name: str
    suggested_text: str
    note: Optional[str] = None
    status: str
    resolved_by: Optional[int] = None
    resolved_at: Optional[datetime] = None
    applied_at: Optional[datetime] = None
    applied_version: Optional[int] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class SuggestionListResponse(BaseModel):
    suggestions: List[SuggestionResponse]
    total: int


class SuggestionApplyResponse(BaseModel):
    suggestion: SuggestionResponse
    answer: AnswerResponse
