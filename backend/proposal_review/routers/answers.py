"""Question, answer and review-status router."""

import logging

from fastapi import APIRouter, Depends, Request, Response, status

from proposal_review.deps import get_current_caller, get_store, rate_limit_bulk
from proposal_review.models.review import (
    AnswerBulkSave,
    AnswerListResponse,
    AnswerResponse,
    AnswerSave,
    AnswerStatusUpdate,
    QuestionCreate,
    QuestionListResponse,
    QuestionResponse,
    QuestionUpdate,
    ReviewItemResponse,
    ReviewOverviewResponse,
)
from proposal_review.services.access_control import CallerIdentity
from proposal_review.services.review_service import (
    AnswerWrite,
    ReviewItem,
    ReviewService,
)
from proposal_review.store import RecordStore

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1", tags=["review"])


def _answer_to_response(answer) -> AnswerResponse:
    return AnswerResponse.model_validate(answer)


def _review_item_to_response(item: ReviewItem) -> ReviewItemResponse:
    answer = item.answer
    return ReviewItemResponse(
        question_id=item.question.id,
        question=item.question.text,
        display_order=item.question.display_order,
        answer_id=answer.id if answer else None,
        text=answer.text if answer else None,
        status=item.status,
        locked=item.locked,
        version=answer.version if answer else 0,
        updated_at=answer.updated_at if answer else None,
    )


# ---------------------------------------------------------------------------
# Questions
# ---------------------------------------------------------------------------


@router.get("/proposals/{proposal_id}/questions", response_model=QuestionListResponse)
async def list_questions(
    proposal_id: int,
    store: RecordStore = Depends(get_store),
    caller: CallerIdentity = Depends(get_current_caller),
):
    questions = await ReviewService.list_questions(store, proposal_id, caller)
    items = [QuestionResponse.model_validate(q) for q in questions]
    return QuestionListResponse(questions=items, total=len(items))


@router.post(
    "/proposals/{proposal_id}/questions",
    response_model=QuestionResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_question(
    proposal_id: int,
    body: QuestionCreate,
    store: RecordStore = Depends(get_store),
    caller: CallerIdentity = Depends(get_current_caller),
):
    question = await ReviewService.create_question(
        store,
        proposal_id,
        body.text,
        caller,
        display_order=body.display_order,
        source=body.source,
    )
    return QuestionResponse.model_validate(question)


@router.patch(
    "/proposals/{proposal_id}/questions/{question_id}",
    response_model=QuestionResponse,
)
async def update_question(
    proposal_id: int,
    question_id: int,
    body: QuestionUpdate,
    store: RecordStore = Depends(get_store),
    caller: CallerIdentity = Depends(get_current_caller),
):
    question = await ReviewService.update_question(
        store,
        proposal_id,
        question_id,
        caller,
        text=body.text,
        display_order=body.display_order,
    )
    return QuestionResponse.model_validate(question)


@router.delete(
    "/proposals/{proposal_id}/questions/{question_id}",
    status_code=status.HTTP_204_NO_CONTENT,
)
async def delete_question(
    proposal_id: int,
    question_id: int,
    store: RecordStore = Depends(get_store),
    caller: CallerIdentity = Depends(get_current_caller),
):
    """Delete a question, its answer, and that answer's comments and suggestions."""
    await ReviewService.delete_question(store, proposal_id, question_id, caller)


# ---------------------------------------------------------------------------
# Answers
# ---------------------------------------------------------------------------


@router.get("/proposals/{proposal_id}/answers", response_model=AnswerListResponse)
async def list_answers(
    proposal_id: int,
    store: RecordStore = Depends(get_store),
    caller: CallerIdentity = Depends(get_current_caller),
):
    answers = await ReviewService.list_answers(store, proposal_id, caller)
    items = [_answer_to_response(a) for a in answers]
    return AnswerListResponse(answers=items, total=len(items))


@router.post("/proposals/{proposal_id}/answers", response_model=AnswerResponse)
async def save_answer(
    proposal_id: int,
    body: AnswerSave,
    response: Response,
    store: RecordStore = Depends(get_store),
    caller: CallerIdentity = Depends(get_current_caller),
):
    """Create (201) or update (200) the answer to one question.

    Raises:
        400: Unknown question or locked answer.
        409: ``expected_version`` is stale.
    """
    answer, created = await ReviewService.save_answer(
        store,
        proposal_id,
        body.question_id,
        body.text,
        caller,
        expected_version=body.expected_version,
    )
    if created:
        response.status_code = status.HTTP_201_CREATED
    return _answer_to_response(answer)


@router.post("/proposals/{proposal_id}/answers/bulk", response_model=AnswerListResponse)
@rate_limit_bulk()
async def bulk_save_answers(
    request: Request,
    proposal_id: int,
    body: AnswerBulkSave,
    store: RecordStore = Depends(get_store),
    caller: CallerIdentity = Depends(get_current_caller),
):
    """Save several answers; nothing is written unless every item is valid."""
    answers = await ReviewService.bulk_save_answers(
        store,
        proposal_id,
        [
            AnswerWrite(
                question_id=item.question_id,
                text=item.text,
                expected_version=item.expected_version,
            )
            for item in body.answers
        ],
        caller,
    )
    items = [_answer_to_response(a) for a in answers]
    return AnswerListResponse(answers=items, total=len(items))


# ---------------------------------------------------------------------------
# Review transitions
# ---------------------------------------------------------------------------


@router.patch(
    "/proposals/{proposal_id}/answers/{answer_id}/status",
    response_model=AnswerResponse,
)
async def set_answer_status(
    proposal_id: int,
    answer_id: int,
    body: AnswerStatusUpdate,
    store: RecordStore = Depends(get_store),
    caller: CallerIdentity = Depends(get_current_caller),
):
    """Approve, reject, lock or unlock a saved answer."""
    answer = await ReviewService.set_answer_status(
        store, proposal_id, answer_id, body.status, caller
    )
    return _answer_to_response(answer)


@router.patch(
    "/proposals/{proposal_id}/questions/{question_id}/status",
    response_model=AnswerResponse,
)
async def set_question_status(
    proposal_id: int,
    question_id: int,
    body: AnswerStatusUpdate,
    store: RecordStore = Depends(get_store),
    caller: CallerIdentity = Depends(get_current_caller),
):
    """Same transitions addressed by question; an unanswered question is a 400."""
    answer = await ReviewService.set_question_status(
        store, proposal_id, question_id, body.status, caller
    )
    return _answer_to_response(answer)


@router.get("/proposals/{proposal_id}/review", response_model=ReviewOverviewResponse)
async def review_overview(
    proposal_id: int,
    store: RecordStore = Depends(get_store),
    caller: CallerIdentity = Depends(get_current_caller),
):
    overview = await ReviewService.review_overview(store, proposal_id, caller)
    return ReviewOverviewResponse(
        items=[_review_item_to_response(item) for item in overview.items],
        counts=overview.counts,
    )
