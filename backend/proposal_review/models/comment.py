"""Pydantic request/response schemas for answer comments and proposal chat."""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field


class CommentCreate(BaseModel):
    """Request body for a comment or a reply."""

    text: str = Field(..., min_length=1, max_length=10000, description="Comment text")
    parent_id: Optional[int] = Field(
        None, description="Id of the top-level comment being replied to"
    )


class CommentResponse(BaseModel):
    id: int
    proposal_id: int
    answer_id: int
    parent_id: Optional[int] = None
    author_id: int
    author_name: str
    text: str
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class CommentThreadResponse(CommentResponse):
    replies: List[CommentResponse] = []


class CommentListResponse(BaseModel):
    comments: List[CommentThreadResponse]
    total: int


class AnswerDiscussionResponse(BaseModel):
    """Threads on one answer, labelled with its question."""

    answer_id: int
    question_id: int
    question: Optional[str] = None
    comments: List[CommentThreadResponse]


class ProposalCommentsResponse(BaseModel):
    answers: List[AnswerDiscussionResponse]
    total: int


class ChatMessageCreate(BaseModel):
    text: str = Field(..., min_length=1, max_length=10000, description="Message text")


class ChatMessageResponse(BaseModel):
    id: int
    proposal_id: int
    author_id: int
    author_name: str
    text: str
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class ChatMessageListResponse(BaseModel):
    messages: List[ChatMessageResponse]
    total: int
