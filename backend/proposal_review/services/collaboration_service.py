"""Business logic for inviting collaborators onto a proposal."""

import logging
from dataclasses import dataclass
from typing import Optional

from proposal_review.exceptions import NotFoundError, ValidationError
from proposal_review.models.db.proposal import Collaboration, Proposal
from proposal_review.models.db.user import User
from proposal_review.permissions import (
    COLLABORATOR_ROLES,
    Capabilities,
    is_valid_role,
    normalize_role,
    permissions_for,
)
from proposal_review.services.access_control import (
    Caller,
    require_access,
    require_manager,
)
from proposal_review.store import RecordStore

logger = logging.getLogger(__name__)


@dataclass
class CollaboratorEntry:
    """A collaboration row with its user and the capabilities its role grants."""

    collaboration: Collaboration
    user: Optional[User]
    proposal: Optional[Proposal] = None

    @property
    def capabilities(self) -> Capabilities:
        return permissions_for(self.collaboration.role)


@dataclass
class MyAccess:
    """The caller's own standing on one proposal."""

    proposal: Proposal
    role: str
    is_owner: bool
    is_admin: bool
    capabilities: Capabilities
    collaboration: Optional[Collaboration] = None


def _validate_role(role: Optional[str]) -> str:
    if not is_valid_role(role):
        raise ValidationError(
            f"Invalid role '{role}'. Must be one of: {', '.join(COLLABORATOR_ROLES)}"
        )
    return normalize_role(role)


class CollaborationService:
    """Service layer for collaborator management."""

    @staticmethod
    async def list_collaborations(
        store: RecordStore, proposal_id: int, caller: Caller
    ) -> list[CollaboratorEntry]:
        await require_access(store, proposal_id, caller, "can_view")
        rows = await store.collaborations.list(
            order_by=("created_at", "id"), proposal_id=proposal_id
        )
        return [
            CollaboratorEntry(collaboration=row, user=await store.users.get(row.user_id))
            for row in rows
        ]

    @staticmethod
    async def add_collaborator(
        store: RecordStore,
        proposal_id: int,
        user_id: int,
        role: str,
        caller: Caller,
    ) -> CollaboratorEntry:
        """Invite *user_id* onto a proposal with *role*.

        Raises:
            ValidationError: Unknown role or user, the owner themself, or a
                user who already collaborates on the proposal.
        """
        access = await require_manager(store, proposal_id, caller)
        role = _validate_role(role)

        user = await store.users.get(user_id)
        if user is None:
            raise ValidationError("User not found")
        if access.proposal.owner_id == user_id:
            raise ValidationError("The proposal owner cannot be added as a collaborator")
        existing = await store.collaborations.first(
            proposal_id=proposal_id, user_id=user_id
        )
        if existing is not None:
            raise ValidationError("User is already a collaborator on this proposal")

        collaboration = await store.collaborations.create(
            Collaboration(
                proposal_id=proposal_id,
                user_id=user_id,
                role=role,
                invited_by=caller.user_id,
            )
        )
        logger.info(
            "User %s added to proposal %s as %s", user_id, proposal_id, role
        )
        return CollaboratorEntry(collaboration=collaboration, user=user)

    @staticmethod
    async def update_collaborator_role(
        store: RecordStore,
        proposal_id: int,
        collaboration_id: int,
        role: str,
        caller: Caller,
    ) -> CollaboratorEntry:
        await require_manager(store, proposal_id, caller)
        role = _validate_role(role)
        collaboration = await CollaborationService._get_collaboration(
            store, proposal_id, collaboration_id
        )
        if collaboration.role != role:
            collaboration = await store.collaborations.update(collaboration, role=role)
            logger.info(
                "Collaboration %s on proposal %s changed to %s",
                collaboration_id,
                proposal_id,
                role,
            )
        return CollaboratorEntry(
            collaboration=collaboration,
            user=await store.users.get(collaboration.user_id),
        )

    @staticmethod
    async def remove_collaborator(
        store: RecordStore,
        proposal_id: int,
        collaboration_id: int,
        caller: Caller,
    ) -> None:
        await require_manager(store, proposal_id, caller)
        collaboration = await CollaborationService._get_collaboration(
            store, proposal_id, collaboration_id
        )
        await store.collaborations.delete(collaboration)
        logger.info(
            "Collaboration %s removed from proposal %s", collaboration_id, proposal_id
        )

    @staticmethod
    async def my_collaborations(
        store: RecordStore, caller: Caller
    ) -> list[CollaboratorEntry]:
        """Every proposal the caller was invited onto, newest invitation first."""
        if caller.user_id is None:
            return []
        rows = await store.collaborations.list(
            order_by=("-created_at", "-id"), user_id=caller.user_id
        )
        entries = []
        for row in rows:
            proposal = await store.proposals.get(row.proposal_id)
            if proposal is None:
                continue
            entries.append(
                CollaboratorEntry(collaboration=row, user=None, proposal=proposal)
            )
        return entries

    @staticmethod
    async def my_collaboration(
        store: RecordStore, proposal_id: int, caller: Caller
    ) -> MyAccess:
        """The caller's role and capabilities on *proposal_id*."""
        access = await require_access(store, proposal_id, caller, "can_view")

        collaboration = None
        if access.is_owner:
            role = "owner"
        elif access.is_admin:
            role = "admin"
        else:
            collaboration = await store.collaborations.first(
                proposal_id=proposal_id, user_id=caller.user_id
            )
            role = normalize_role(collaboration.role)

        return MyAccess(
            proposal=access.proposal,
            role=role,
            is_owner=access.is_owner,
            is_admin=access.is_admin,
            capabilities=access.capabilities,
            collaboration=collaboration,
        )

    @staticmethod
    async def _get_collaboration(
        store: RecordStore, proposal_id: int, collaboration_id: int
    ) -> Collaboration:
        collaboration = await store.collaborations.get(collaboration_id)
        if collaboration is None or collaboration.proposal_id != proposal_id:
            raise NotFoundError("Collaboration not found")
        return collaboration
