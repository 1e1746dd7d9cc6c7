"""Business logic for proposals themselves (create, list, scoped get, update)."""

import logging
from typing import Any, Optional

from proposal_review.exceptions import PermissionDeniedError, ValidationError
from proposal_review.models.db.proposal import Proposal
from proposal_review.services.access_control import (
    Caller,
    CallerIdentity,
    TrustedCaller,
    require_access,
)
from proposal_review.store import RecordStore

logger = logging.getLogger(__name__)

PROPOSAL_STATUSES = ("draft", "in_progress", "completed")
UPDATABLE_FIELDS = ("title", "description", "status", "content")


def _validate_title(title: Optional[str]) -> str:
    title = (title or "").strip()
    if not title:
        raise ValidationError("Proposal title is required")
    return title


async def create_proposal(
    store: RecordStore,
    caller: Caller,
    title: str,
    description: Optional[str] = None,
    content: Optional[dict] = None,
) -> Proposal:
    """Create a draft proposal owned by the caller."""
    if caller.user_id is None:
        raise PermissionDeniedError("An owning user is required to create a proposal")

    proposal = await store.proposals.create(
        Proposal(
            title=_validate_title(title),
            description=description,
            status="draft",
            content=content,
            owner_id=caller.user_id,
        )
    )
    logger.info("Proposal %s created by user %s", proposal.id, caller.user_id)
    return proposal


async def list_proposals(store: RecordStore, caller: Caller) -> list[Proposal]:
    """Admins see every proposal; everyone else sees the ones they own."""
    if isinstance(caller, TrustedCaller) or (
        isinstance(caller, CallerIdentity) and caller.is_admin
    ):
        return await store.proposals.list(order_by=("-created_at", "-id"))
    return await store.proposals.list(
        order_by=("-created_at", "-id"), owner_id=caller.user_id
    )


async def get_proposal(store: RecordStore, proposal_id: int, caller: Caller) -> Proposal:
    access = await require_access(store, proposal_id, caller, "can_view")
    return access.proposal


async def update_proposal(
    store: RecordStore,
    proposal_id: int,
    caller: Caller,
    **fields: Any,
) -> Proposal:
    """Update title, description, status or content.

    ``None`` values are ignored so partial payloads can be passed through.
    """
    access = await require_access(store, proposal_id, caller, "can_edit")

    unknown = set(fields) - set(UPDATABLE_FIELDS)
    if unknown:
        raise ValidationError(f"Cannot update field(s): {', '.join(sorted(unknown))}")

    changes = {name: value for name, value in fields.items() if value is not None}
    if "title" in changes:
        changes["title"] = _validate_title(changes["title"])
    if "status" in changes and changes["status"] not in PROPOSAL_STATUSES:
        raise ValidationError(
            f"Invalid status '{changes['status']}'. Must be one of: {', '.join(PROPOSAL_STATUSES)}"
        )
    if not changes:
        return access.proposal

    proposal = await store.proposals.update(access.proposal, **changes)
    logger.info("Proposal %s updated (%s)", proposal_id, ", ".join(sorted(changes)))
    return proposal
