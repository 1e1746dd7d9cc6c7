"""Shared access-control helpers for proposal-scoped resources.

Every endpoint resolves the caller's relationship to a proposal through
:func:`resolve_access` (or one of the ``require_*`` wrappers) and nothing
else; URL shape, client hints and previous requests never grant access.
"""

import logging
from dataclasses import dataclass
from typing import Optional, Union

from proposal_review.exceptions import NotFoundError, PermissionDeniedError
from proposal_review.models.db.proposal import Proposal
from proposal_review.permissions import (
    FULL_ACCESS,
    NO_ACCESS,
    Capabilities,
    permissions_for,
)
from proposal_review.store import RecordStore

logger = logging.getLogger(__name__)

ADMIN_ROLE = "admin"


@dataclass(frozen=True)
class CallerIdentity:
    """An authenticated end user, as resolved upstream."""

    user_id: int
    role: Optional[str] = None
    display_name: Optional[str] = None

    @property
    def is_admin(self) -> bool:
        return (self.role or "").strip().lower() == ADMIN_ROLE


@dataclass(frozen=True)
class TrustedCaller:
    """Server-to-server or admin-console caller whose identity was stripped upstream.

    Granted owner and admin rights on every proposal.  Only internal code
    constructs this; the HTTP layer always produces a ``CallerIdentity``.
    """

    label: str = "internal"

    # Acting user for notification self-suppression; internal calls have none
    user_id: None = None
    display_name: Optional[str] = None


TRUSTED_CALLER = TrustedCaller()

Caller = Union[CallerIdentity, TrustedCaller]


@dataclass(frozen=True)
class ProposalAccess:
    """The caller's relationship to one proposal."""

    proposal: Optional[Proposal]
    is_admin: bool = False
    is_owner: bool = False
    capabilities: Optional[Capabilities] = None

    @property
    def found(self) -> bool:
        return self.proposal is not None

    def allows(self, capability: str) -> bool:
        return self.capabilities is not None and self.capabilities.allows(capability)


async def resolve_access(
    store: RecordStore,
    proposal_id: int,
    caller: Caller,
) -> ProposalAccess:
    """Compute what *caller* may do on *proposal_id*.

    Priority order: missing proposal, trusted caller, admin role, owner,
    collaboration row.  A caller with no collaboration row gets a
    capability set with every flag false.
    """
    proposal = await store.proposals.get(proposal_id)
    if proposal is None:
        return ProposalAccess(proposal=None)

    if isinstance(caller, TrustedCaller):
        return ProposalAccess(
            proposal=proposal, is_admin=True, is_owner=True, capabilities=FULL_ACCESS
        )

    if not isinstance(caller, CallerIdentity):
        raise TypeError(f"Unsupported caller type: {type(caller).__name__}")

    is_owner = proposal.owner_id is not None and proposal.owner_id == caller.user_id

    if caller.is_admin:
        # An admin may also own the proposal they created
        return ProposalAccess(
            proposal=proposal, is_admin=True, is_owner=is_owner, capabilities=FULL_ACCESS
        )

    if is_owner:
        return ProposalAccess(proposal=proposal, is_owner=True, capabilities=FULL_ACCESS)

    collaboration = await store.collaborations.first(
        proposal_id=proposal_id, user_id=caller.user_id
    )
    if collaboration is None:
        return ProposalAccess(proposal=proposal, capabilities=NO_ACCESS)

    return ProposalAccess(
        proposal=proposal, capabilities=permissions_for(collaboration.role)
    )


_DENIED_MESSAGES = {
    "can_view": "You do not have permission to view this proposal",
    "can_edit": "You do not have permission to edit this proposal",
    "can_comment": "You do not have permission to comment on this proposal",
    "can_review": "You do not have permission to review answers on this proposal",
    "can_generate_ai": "You do not have permission to generate content for this proposal",
}


async def require_access(
    store: RecordStore,
    proposal_id: int,
    caller: Caller,
    capability: str = "can_view",
) -> ProposalAccess:
    """Resolve access and require *capability*; return the resolved access."""
    access = await resolve_access(store, proposal_id, caller)
    if not access.found:
        raise NotFoundError("Proposal not found")
    if not access.allows(capability):
        logger.info(
            "Denied %s on proposal %s for user %s",
            capability,
            proposal_id,
            caller.user_id,
        )
        raise PermissionDeniedError(
            _DENIED_MESSAGES.get(capability, "Insufficient permissions")
        )
    return access


async def require_owner(
    store: RecordStore,
    proposal_id: int,
    caller: Caller,
) -> ProposalAccess:
    """Require the proposal owner.  Collaborator roles and admins do not qualify."""
    access = await resolve_access(store, proposal_id, caller)
    if not access.found:
        raise NotFoundError("Proposal not found")
    if not access.is_owner:
        raise PermissionDeniedError("Only the proposal owner can perform this action")
    return access


async def require_manager(
    store: RecordStore,
    proposal_id: int,
    caller: Caller,
) -> ProposalAccess:
    """Require the owner or an admin (collaborator management)."""
    access = await resolve_access(store, proposal_id, caller)
    if not access.found:
        raise NotFoundError("Proposal not found")
    if not (access.is_owner or access.is_admin):
        raise PermissionDeniedError(
            "Only the proposal owner or an administrator can manage collaborators"
        )
    return access
