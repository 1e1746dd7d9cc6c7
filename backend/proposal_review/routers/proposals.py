"""Proposal router: create, list, scoped get and update."""

import logging

from fastapi import APIRouter, Depends, status

from proposal_review.deps import get_current_caller, get_store
from proposal_review.models.proposal import (
    ProposalCreate,
    ProposalListResponse,
    ProposalResponse,
    ProposalUpdate,
)
from proposal_review.services import proposal_service
from proposal_review.services.access_control import CallerIdentity
from proposal_review.store import RecordStore

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1", tags=["proposals"])


def _proposal_to_response(proposal) -> ProposalResponse:
    return ProposalResponse.model_validate(proposal)


# ---------------------------------------------------------------------------
# GET /proposals
# ---------------------------------------------------------------------------


@router.get("/proposals", response_model=ProposalListResponse)
async def list_proposals(
    store: RecordStore = Depends(get_store),
    caller: CallerIdentity = Depends(get_current_caller),
):
    """List proposals the caller owns (every proposal for admins)."""
    proposals = await proposal_service.list_proposals(store, caller)
    items = [_proposal_to_response(p) for p in proposals]
    return ProposalListResponse(proposals=items, total=len(items))


# ---------------------------------------------------------------------------
# POST /proposals
# ---------------------------------------------------------------------------


@router.post(
    "/proposals",
    response_model=ProposalResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_proposal(
    body: ProposalCreate,
    store: RecordStore = Depends(get_store),
    caller: CallerIdentity = Depends(get_current_caller),
):
    proposal = await proposal_service.create_proposal(
        store,
        caller,
        title=body.title,
        description=body.description,
        content=body.content,
    )
    return _proposal_to_response(proposal)


# ---------------------------------------------------------------------------
# GET /proposals/{proposal_id}
# ---------------------------------------------------------------------------


@router.get("/proposals/{proposal_id}", response_model=ProposalResponse)
async def get_proposal(
    proposal_id: int,
    store: RecordStore = Depends(get_store),
    caller: CallerIdentity = Depends(get_current_caller),
):
    """Fetch one proposal.

    Returns 404 when it does not exist and 403 when it exists but the
    caller may not view it.
    """
    proposal = await proposal_service.get_proposal(store, proposal_id, caller)
    return _proposal_to_response(proposal)


# ---------------------------------------------------------------------------
# PATCH /proposals/{proposal_id}
# ---------------------------------------------------------------------------


@router.patch("/proposals/{proposal_id}", response_model=ProposalResponse)
async def update_proposal(
    proposal_id: int,
    body: ProposalUpdate,
    store: RecordStore = Depends(get_store),
    caller: CallerIdentity = Depends(get_current_caller),
):
    proposal = await proposal_service.update_proposal(
        store, proposal_id, caller, **body.model_dump(exclude_unset=True)
    )
    return _proposal_to_response(proposal)
