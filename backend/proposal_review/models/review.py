"""Pydantic request/response schemas for questions, answers and review."""

from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, Field, validator

VALID_STATUS_TARGETS = {"approved", "rejected", "locked", "unlocked"}
VALID_QUESTION_SOURCES = {"user", "ai", "template"}


# ---------------------------------------------------------------------------
# Questions
# ---------------------------------------------------------------------------


class QuestionCreate(BaseModel):
    text: str = Field(..., min_length=1, max_length=10000)
    display_order: Optional[int] = Field(None, ge=0)
    source: str = Field("user", description="user, ai, or template")

    @validator("source")
    def validate_source(cls, v):
        if v not in VALID_QUESTION_SOURCES:
            raise ValueError(
                f"Invalid source. Must be one of: {', '.join(sorted(VALID_QUESTION_SOURCES))}"
            )
        return v


class QuestionUpdate(BaseModel):
    text: Optional[str] = Field(None, min_length=1, max_length=10000)
    display_order: Optional[int] = Field(None, ge=0)


class QuestionResponse(BaseModel):
    id: int
    proposal_id: int
    text: str
    display_order: int
    source: str
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class QuestionListResponse(BaseModel):
    questions: List[QuestionResponse]
    total: int


# ---------------------------------------------------------------------------
# Answers
# ---------------------------------------------------------------------------


class AnswerSave(BaseModel):
    """Create or update the answer to one question.

    ``expected_version`` is the version the client last saw (0 when it saw
    no answer); a mismatch is rejected with a conflict.
    """

    question_id: int
    text: str = Field(..., max_length=100000)
    expected_version: Optional[int] = Field(None, ge=0)


class AnswerBulkSave(BaseModel):
    answers: List[AnswerSave] = Field(..., min_length=1)


class AnswerStatusUpdate(BaseModel):
    status: str = Field(..., description="approved, rejected, locked, or unlocked")

    @validator("status")
    def validate_status(cls, v):
        if v not in VALID_STATUS_TARGETS:
            raise ValueError(
                f"Invalid status. Must be one of: {', '.join(sorted(VALID_STATUS_TARGETS))}"
            )
        return v


class AnswerResponse(BaseModel):
    id: int
    question_id: int
    proposal_id: int
    text: str
    status: str
    locked: bool
    version: int
    reviewed_by: Optional[int] = None
    reviewed_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class AnswerListResponse(BaseModel):
    answers: List[AnswerResponse]
    total: int


# ---------------------------------------------------------------------------
# Review overview
# ---------------------------------------------------------------------------


class ReviewItemResponse(BaseModel):
    """A question with its effective review status (``draft`` when unanswered)."""

    question_id: int
    question: str
    display_order: int
    answer_id: Optional[int] = None
    text: Optional[str] = None
    status: str
    locked: bool = False
    version: int = 0
    updated_at: Optional[datetime] = None


class ReviewOverviewResponse(BaseModel):
    items: List[ReviewItemResponse]
    counts: Dict[str, int]
