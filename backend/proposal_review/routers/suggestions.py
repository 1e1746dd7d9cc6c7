"""Suggestion router: propose, list, resolve and apply suggested edits."""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, status

from proposal_review.deps import get_current_caller, get_store
from proposal_review.models.review import AnswerResponse
from proposal_review.models.suggestion import (
    SuggestionApply,
    SuggestionApplyResponse,
    SuggestionCreate,
    SuggestionListResponse,
    SuggestionResolve,
    SuggestionResponse,
)
from proposal_review.services.access_control import CallerIdentity
from proposal_review.services.suggestion_service import SuggestionService
from proposal_review.store import RecordStore

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1", tags=["suggestions"])


# ---------------------------------------------------------------------------
# GET /proposals/{proposal_id}/suggestions
# ---------------------------------------------------------------------------


@router.get(
    "/proposals/{proposal_id}/suggestions",
    response_model=SuggestionListResponse,
)
async def list_suggestions(
    proposal_id: int,
    status_filter: Optional[str] = Query(
        None, alias="status", description="pending, accepted, or rejected"
    ),
    answer_id: Optional[int] = Query(None),
    store: RecordStore = Depends(get_store),
    caller: CallerIdentity = Depends(get_current_caller),
):
    suggestions = await SuggestionService.list_suggestions(
        store, proposal_id, caller, status=status_filter, answer_id=answer_id
    )
    items = [SuggestionResponse.model_validate(s) for s in suggestions]
    return SuggestionListResponse(suggestions=items, total=len(items))


# ---------------------------------------------------------------------------
# POST /proposals/{proposal_id}/answers/{answer_id}/suggestions
# ---------------------------------------------------------------------------


@router.post(
    "/proposals/{proposal_id}/answers/{answer_id}/suggestions",
    response_model=SuggestionResponse,
    status_code=status.HTTP_201_CREATED,
)
async def propose_suggestion(
    proposal_id: int,
    answer_id: int,
    body: SuggestionCreate,
    store: RecordStore = Depends(get_store),
    caller: CallerIdentity = Depends(get_current_caller),
):
    suggestion = await SuggestionService.propose_suggestion(
        store, proposal_id, answer_id, body.suggested_text, caller, note=body.note
    )
    return SuggestionResponse.model_validate(suggestion)


# ---------------------------------------------------------------------------
# PATCH /proposals/{proposal_id}/suggestions/{suggestion_id}
# ---------------------------------------------------------------------------


@router.patch(
    "/proposals/{proposal_id}/suggestions/{suggestion_id}",
    response_model=SuggestionResponse,
)
async def resolve_suggestion(
    proposal_id: int,
    suggestion_id: int,
    body: SuggestionResolve,
    store: RecordStore = Depends(get_store),
    caller: CallerIdentity = Depends(get_current_caller),
):
    """Accept or reject a pending suggestion (proposal owner only).

    Accepting does not change the answer; see the ``/apply`` endpoint.
    """
    suggestion = await SuggestionService.resolve_suggestion(
        store, proposal_id, suggestion_id, body.status, caller
    )
    return SuggestionResponse.model_validate(suggestion)


# ---------------------------------------------------------------------------
# POST /proposals/{proposal_id}/suggestions/{suggestion_id}/apply
# ---------------------------------------------------------------------------


@router.post(
    "/proposals/{proposal_id}/suggestions/{suggestion_id}/apply",
    response_model=SuggestionApplyResponse,
)
async def apply_suggestion(
    proposal_id: int,
    suggestion_id: int,
    body: Optional[SuggestionApply] = None,
    store: RecordStore = Depends(get_store),
    caller: CallerIdentity = Depends(get_current_caller),
):
    """Write an accepted suggestion's text into its answer."""
    suggestion, answer = await SuggestionService.apply_suggestion(
        store,
        proposal_id,
        suggestion_id,
        caller,
        expected_version=body.expected_version if body else None,
    )
    return SuggestionApplyResponse(
        suggestion=SuggestionResponse.model_validate(suggestion),
        answer=AnswerResponse.model_validate(answer),
    )
