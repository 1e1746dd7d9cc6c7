"""Answer comment router (threaded, append-only) and proposal team chat."""

import logging

from fastapi import APIRouter, Depends, status

from proposal_review.deps import get_current_caller, get_store
from proposal_review.models.comment import (
    AnswerDiscussionResponse,
    ChatMessageCreate,
    ChatMessageListResponse,
    ChatMessageResponse,
    CommentCreate,
    CommentListResponse,
    CommentResponse,
    CommentThreadResponse,
    ProposalCommentsResponse,
)
from proposal_review.services import comment_service
from proposal_review.services.access_control import CallerIdentity
from proposal_review.services.comment_service import CommentThread
from proposal_review.store import RecordStore

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1", tags=["comments"])


def _thread_to_response(thread: CommentThread) -> CommentThreadResponse:
    root = CommentResponse.model_validate(thread.comment)
    return CommentThreadResponse(
        **root.model_dump(),
        replies=[CommentResponse.model_validate(r) for r in thread.replies],
    )


# ---------------------------------------------------------------------------
# GET /proposals/{proposal_id}/answers/{answer_id}/comments
# ---------------------------------------------------------------------------


@router.get(
    "/proposals/{proposal_id}/answers/{answer_id}/comments",
    response_model=CommentListResponse,
)
async def list_comments(
    proposal_id: int,
    answer_id: int,
    store: RecordStore = Depends(get_store),
    caller: CallerIdentity = Depends(get_current_caller),
):
    """Root comments oldest first, each carrying its replies."""
    threads = await comment_service.list_comments(store, proposal_id, answer_id, caller)
    return CommentListResponse(
        comments=[_thread_to_response(t) for t in threads],
        total=sum(1 + len(t.replies) for t in threads),
    )


# ---------------------------------------------------------------------------
# POST /proposals/{proposal_id}/answers/{answer_id}/comments
# ---------------------------------------------------------------------------


@router.post(
    "/proposals/{proposal_id}/answers/{answer_id}/comments",
    response_model=CommentResponse,
    status_code=status.HTTP_201_CREATED,
)
async def add_comment(
    proposal_id: int,
    answer_id: int,
    body: CommentCreate,
    store: RecordStore = Depends(get_store),
    caller: CallerIdentity = Depends(get_current_caller),
):
    comment = await comment_service.add_comment(
        store, proposal_id, answer_id, body.text, caller, parent_id=body.parent_id
    )
    return CommentResponse.model_validate(comment)


# ---------------------------------------------------------------------------
# GET /proposals/{proposal_id}/comments
# ---------------------------------------------------------------------------


@router.get(
    "/proposals/{proposal_id}/comments",
    response_model=ProposalCommentsResponse,
)
async def list_proposal_comments(
    proposal_id: int,
    store: RecordStore = Depends(get_store),
    caller: CallerIdentity = Depends(get_current_caller),
):
    """All discussion on a proposal, grouped by answer in question order."""
    discussions = await comment_service.list_proposal_comments(store, proposal_id, caller)
    items = [
        AnswerDiscussionResponse(
            answer_id=d.answer.id,
            question_id=d.answer.question_id,
            question=d.question.text if d.question else None,
            comments=[_thread_to_response(t) for t in d.threads],
        )
        for d in discussions
    ]
    return ProposalCommentsResponse(answers=items, total=len(items))


# ---------------------------------------------------------------------------
# GET/POST /proposals/{proposal_id}/chat
# ---------------------------------------------------------------------------


@router.get("/proposals/{proposal_id}/chat", response_model=ChatMessageListResponse)
async def list_chat_messages(
    proposal_id: int,
    store: RecordStore = Depends(get_store),
    caller: CallerIdentity = Depends(get_current_caller),
):
    messages = await comment_service.list_chat_messages(store, proposal_id, caller)
    items = [ChatMessageResponse.model_validate(m) for m in messages]
    return ChatMessageListResponse(messages=items, total=len(items))


@router.post(
    "/proposals/{proposal_id}/chat",
    response_model=ChatMessageResponse,
    status_code=status.HTTP_201_CREATED,
)
async def post_chat_message(
    proposal_id: int,
    body: ChatMessageCreate,
    store: RecordStore = Depends(get_store),
    caller: CallerIdentity = Depends(get_current_caller),
):
    """Post to the proposal's team chat; needs comment rights."""
    message = await comment_service.post_chat_message(store, proposal_id, body.text, caller)
    return ChatMessageResponse.model_validate(message)
