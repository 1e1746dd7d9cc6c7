"""Collaboration router.

Provides endpoints for inviting collaborators onto a proposal, changing
their role, removing them, and for a caller to see their own standing.
"""

import logging

from fastapi import APIRouter, Depends, status
from sqlalchemy.exc import IntegrityError

from proposal_review.deps import get_current_caller, get_store
from proposal_review.exceptions import ValidationError
from proposal_review.models.collaboration_models import (
    CollaboratorAdd,
    CollaboratorListResponse,
    CollaboratorResponse,
    CollaboratorRoleUpdate,
    MyCollaborationResponse,
    RoleCatalogResponse,
    RoleOption,
    UserSummary,
)
from proposal_review.models.proposal import CapabilitiesResponse, ProposalResponse
from proposal_review.permissions import (
    COLLABORATOR_ROLES,
    ROLE_DESCRIPTIONS,
    permissions_for,
)
from proposal_review.services.access_control import CallerIdentity
from proposal_review.services.collaboration_service import (
    CollaborationService,
    CollaboratorEntry,
)
from proposal_review.store import RecordStore

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1", tags=["collaboration"])


# ---------------------------------------------------------------------------
# Helper: convert a collaborator entry to its response
# ---------------------------------------------------------------------------


def _entry_to_response(entry: CollaboratorEntry) -> CollaboratorResponse:
    collab = entry.collaboration
    user = None
    if entry.user is not None:
        user = UserSummary(
            id=entry.user.id,
            email=entry.user.email,
            display_name=entry.user.display_name,
        )
    return CollaboratorResponse(
        id=collab.id,
        proposal_id=collab.proposal_id,
        user_id=collab.user_id,
        role=collab.role,
        invited_by=collab.invited_by,
        created_at=collab.created_at,
        user=user,
        proposal=(
            ProposalResponse.model_validate(entry.proposal)
            if entry.proposal is not None
            else None
        ),
        capabilities=CapabilitiesResponse.from_capabilities(entry.capabilities),
    )


# ---------------------------------------------------------------------------
# GET /collaborator-roles
# ---------------------------------------------------------------------------


@router.get("/collaborator-roles", response_model=RoleCatalogResponse)
async def list_roles():
    """Every assignable role with the capabilities it grants."""
    return RoleCatalogResponse(
        roles=[
            RoleOption(
                role=role,
                description=ROLE_DESCRIPTIONS[role],
                capabilities=CapabilitiesResponse.from_capabilities(
                    permissions_for(role)
                ),
            )
            for role in COLLABORATOR_ROLES
        ]
    )


# ---------------------------------------------------------------------------
# GET  /proposals/{proposal_id}/collaborations
# ---------------------------------------------------------------------------


@router.get(
    "/proposals/{proposal_id}/collaborations",
    response_model=CollaboratorListResponse,
)
async def list_collaborations(
    proposal_id: int,
    store: RecordStore = Depends(get_store),
    caller: CallerIdentity = Depends(get_current_caller),
):
    entries = await CollaborationService.list_collaborations(store, proposal_id, caller)
    items = [_entry_to_response(e) for e in entries]
    return CollaboratorListResponse(collaborators=items, total=len(items))


# ---------------------------------------------------------------------------
# POST /proposals/{proposal_id}/collaborations
# ---------------------------------------------------------------------------


@router.post(
    "/proposals/{proposal_id}/collaborations",
    response_model=CollaboratorResponse,
    status_code=status.HTTP_201_CREATED,
)
async def add_collaborator(
    proposal_id: int,
    body: CollaboratorAdd,
    store: RecordStore = Depends(get_store),
    caller: CallerIdentity = Depends(get_current_caller),
):
    """Invite a user onto a proposal.

    Raises:
        400: Unknown user or role, the owner, or an existing collaborator.
        403: Caller is neither the owner nor an admin.
        404: Proposal not found.
    """
    try:
        entry = await CollaborationService.add_collaborator(
            store, proposal_id, body.user_id, body.role, caller
        )
    except IntegrityError as e:
        # Lost the race against a concurrent invite of the same user
        raise ValidationError(
            "User is already a collaborator on this proposal"
        ) from e
    return _entry_to_response(entry)


# ---------------------------------------------------------------------------
# PATCH /proposals/{proposal_id}/collaborations/{collaboration_id}
# ---------------------------------------------------------------------------


@router.patch(
    "/proposals/{proposal_id}/collaborations/{collaboration_id}",
    response_model=CollaboratorResponse,
)
async def update_collaborator_role(
    proposal_id: int,
    collaboration_id: int,
    body: CollaboratorRoleUpdate,
    store: RecordStore = Depends(get_store),
    caller: CallerIdentity = Depends(get_current_caller),
):
    entry = await CollaborationService.update_collaborator_role(
        store, proposal_id, collaboration_id, body.role, caller
    )
    return _entry_to_response(entry)


# ---------------------------------------------------------------------------
# DELETE /proposals/{proposal_id}/collaborations/{collaboration_id}
# ---------------------------------------------------------------------------


@router.delete(
    "/proposals/{proposal_id}/collaborations/{collaboration_id}",
    status_code=status.HTTP_204_NO_CONTENT,
)
async def remove_collaborator(
    proposal_id: int,
    collaboration_id: int,
    store: RecordStore = Depends(get_store),
    caller: CallerIdentity = Depends(get_current_caller),
):
    await CollaborationService.remove_collaborator(
        store, proposal_id, collaboration_id, caller
    )


# ---------------------------------------------------------------------------
# GET /proposals/{proposal_id}/my-collaboration
# ---------------------------------------------------------------------------


@router.get(
    "/proposals/{proposal_id}/my-collaboration",
    response_model=MyCollaborationResponse,
)
async def my_collaboration(
    proposal_id: int,
    store: RecordStore = Depends(get_store),
    caller: CallerIdentity = Depends(get_current_caller),
):
    """The caller's role and capability flags on one proposal."""
    mine = await CollaborationService.my_collaboration(store, proposal_id, caller)
    return MyCollaborationResponse(
        proposal_id=mine.proposal.id,
        role=mine.role,
        is_owner=mine.is_owner,
        is_admin=mine.is_admin,
        collaboration_id=mine.collaboration.id if mine.collaboration else None,
        capabilities=CapabilitiesResponse.from_capabilities(mine.capabilities),
    )


# ---------------------------------------------------------------------------
# GET /me/collaborations
# ---------------------------------------------------------------------------


@router.get("/me/collaborations", response_model=CollaboratorListResponse)
async def my_collaborations(
    store: RecordStore = Depends(get_store),
    caller: CallerIdentity = Depends(get_current_caller),
):
    """Proposals the caller has been invited onto."""
    entries = await CollaborationService.my_collaborations(store, caller)
    items = [_entry_to_response(e) for e in entries]
    return CollaboratorListResponse(collaborators=items, total=len(items))
