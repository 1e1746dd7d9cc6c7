"""
Unit Tests for proposals and collaborator management.

Usage:
    cd backend && pytest tests/test_collaboration_service.py -v
"""

import os
import sys

import pytest

# Add backend to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from proposal_review.exceptions import (
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)
from proposal_review.permissions import FULL_ACCESS, permissions_for
from proposal_review.services import proposal_service
from proposal_review.services.access_control import resolve_access
from proposal_review.services.collaboration_service import CollaborationService

from factories import (
    ADMIN,
    EDITOR,
    OUTSIDER,
    OUTSIDER_ID,
    OWNER,
    OWNER_ID,
    REVIEWER,
    VIEWER,
    VIEWER_ID,
    run,
    seed_proposal,
)


@pytest.fixture
def bare(store):
    """A proposal with no collaborators yet."""
    return run(seed_proposal(store, with_collaborators=False))


class TestAddCollaborator:
    def test_owner_adds_collaborator(self, store, bare):
        entry = run(
            CollaborationService.add_collaborator(store, bare.proposal_id, OUTSIDER_ID, "Editor", OWNER)
        )
        assert entry.collaboration.role == "editor"
        assert entry.collaboration.invited_by == OWNER_ID
        assert entry.user.id == OUTSIDER_ID
        assert entry.capabilities == permissions_for("editor")

        access = run(resolve_access(store, bare.proposal_id, OUTSIDER))
        assert access.capabilities.can_edit is True

    def test_admin_may_add(self, store, bare):
        entry = run(
            CollaborationService.add_collaborator(store, bare.proposal_id, OUTSIDER_ID, "viewer", ADMIN)
        )
        assert entry.collaboration.invited_by == ADMIN.user_id

    def test_duplicate_rejected(self, store, bare):
        run(CollaborationService.add_collaborator(store, bare.proposal_id, OUTSIDER_ID, "viewer", OWNER))
        with pytest.raises(ValidationError):
            run(CollaborationService.add_collaborator(store, bare.proposal_id, OUTSIDER_ID, "editor", OWNER))
        rows = run(store.collaborations.list(proposal_id=bare.proposal_id))
        assert [r.role for r in rows] == ["viewer"]

    def test_unknown_role_rejected(self, store, bare):
        with pytest.raises(ValidationError):
            run(CollaborationService.add_collaborator(store, bare.proposal_id, OUTSIDER_ID, "owner", OWNER))

    def test_unknown_user_rejected(self, store, bare):
        with pytest.raises(ValidationError):
            run(CollaborationService.add_collaborator(store, bare.proposal_id, 404, "viewer", OWNER))

    def test_owner_cannot_be_added(self, store, bare):
        with pytest.raises(ValidationError):
            run(CollaborationService.add_collaborator(store, bare.proposal_id, OWNER_ID, "viewer", OWNER))

    def test_missing_proposal(self, store, bare):
        with pytest.raises(NotFoundError):
            run(CollaborationService.add_collaborator(store, 999, OUTSIDER_ID, "viewer", OWNER))

    def test_collaborator_cannot_manage(self, store, seeded):
        with pytest.raises(PermissionDeniedError):
            run(CollaborationService.add_collaborator(store, seeded.proposal_id, OUTSIDER_ID, "viewer", REVIEWER))


class TestChangeAndRemove:
    def test_role_change_changes_capabilities(self, store, seeded):
        row = run(store.collaborations.first(proposal_id=seeded.proposal_id, user_id=VIEWER_ID))
        entry = run(
            CollaborationService.update_collaborator_role(
                store, seeded.proposal_id, row.id, "commenter", OWNER
            )
        )
        assert entry.collaboration.role == "commenter"
        access = run(resolve_access(store, seeded.proposal_id, VIEWER))
        assert access.capabilities == permissions_for("commenter")

    def test_remove_revokes_access(self, store, seeded):
        row = run(store.collaborations.first(proposal_id=seeded.proposal_id, user_id=VIEWER_ID))
        run(CollaborationService.remove_collaborator(store, seeded.proposal_id, row.id, OWNER))
        with pytest.raises(PermissionDeniedError):
            run(proposal_service.get_proposal(store, seeded.proposal_id, VIEWER))

    def test_collaboration_must_belong_to_proposal(self, store, seeded):
        with pytest.raises(NotFoundError):
            run(CollaborationService.remove_collaborator(store, seeded.proposal_id, 999, OWNER))

    def test_editor_cannot_remove(self, store, seeded):
        row = run(store.collaborations.first(proposal_id=seeded.proposal_id, user_id=VIEWER_ID))
        with pytest.raises(PermissionDeniedError):
            run(CollaborationService.remove_collaborator(store, seeded.proposal_id, row.id, EDITOR))


class TestListingAndMine:
    def test_list_includes_users(self, store, seeded):
        entries = run(CollaborationService.list_collaborations(store, seeded.proposal_id, VIEWER))
        assert len(entries) == 5
        assert all(e.user is not None for e in entries)

    def test_stranger_cannot_list(self, store, seeded):
        with pytest.raises(PermissionDeniedError):
            run(CollaborationService.list_collaborations(store, seeded.proposal_id, OUTSIDER))

    def test_my_collaborations(self, store, seeded):
        entries = run(CollaborationService.my_collaborations(store, REVIEWER))
        assert [e.proposal.id for e in entries] == [seeded.proposal_id]
        assert entries[0].collaboration.role == "reviewer"

    def test_my_collaboration_for_collaborator(self, store, seeded):
        mine = run(CollaborationService.my_collaboration(store, seeded.proposal_id, REVIEWER))
        assert mine.role == "reviewer"
        assert mine.is_owner is False
        assert mine.capabilities == permissions_for("reviewer")

    def test_my_collaboration_for_owner(self, store, seeded):
        mine = run(CollaborationService.my_collaboration(store, seeded.proposal_id, OWNER))
        assert mine.role == "owner"
        assert mine.collaboration is None
        assert mine.capabilities == FULL_ACCESS


class TestProposals:
    def test_create_sets_owner_and_draft(self, store):
        proposal = run(proposal_service.create_proposal(store, OUTSIDER, "  Bridge RFP  "))
        assert proposal.owner_id == OUTSIDER_ID
        assert proposal.status == "draft"
        assert proposal.title == "Bridge RFP"

    def test_blank_title_rejected(self, store):
        with pytest.raises(ValidationError):
            run(proposal_service.create_proposal(store, OWNER, " "))

    def test_list_owned_vs_admin(self, store, seeded):
        run(proposal_service.create_proposal(store, OUTSIDER, "Other"))
        assert [p.owner_id for p in run(proposal_service.list_proposals(store, OWNER))] == [OWNER_ID]
        assert len(run(proposal_service.list_proposals(store, ADMIN))) == 2

    def test_get_missing_vs_forbidden(self, store, seeded):
        with pytest.raises(NotFoundError):
            run(proposal_service.get_proposal(store, 999, OWNER))
        with pytest.raises(PermissionDeniedError):
            run(proposal_service.get_proposal(store, seeded.proposal_id, OUTSIDER))

    def test_update_requires_edit(self, store, seeded):
        with pytest.raises(PermissionDeniedError):
            run(proposal_service.update_proposal(store, seeded.proposal_id, VIEWER, title="Nope"))

    def test_update_fields(self, store, seeded):
        proposal = run(
            proposal_service.update_proposal(
                store, seeded.proposal_id, EDITOR, status="in_progress", description=None
            )
        )
        assert proposal.status == "in_progress"

    def test_update_invalid_status(self, store, seeded):
        with pytest.raises(ValidationError):
            run(proposal_service.update_proposal(store, seeded.proposal_id, OWNER, status="archived"))
