"""
Unit Tests for proposal access resolution.

Usage:
    cd backend && pytest tests/test_access_control.py -v
"""

import os
import sys

import pytest

# Add backend to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from proposal_review.exceptions import NotFoundError, PermissionDeniedError
from proposal_review.models.db import Collaboration
from proposal_review.permissions import FULL_ACCESS, NO_ACCESS, permissions_for
from proposal_review.services import proposal_service
from proposal_review.services.access_control import (
    TRUSTED_CALLER,
    CallerIdentity,
    require_access,
    require_manager,
    require_owner,
    resolve_access,
)

from factories import (
    ADMIN,
    COMMENTER,
    OUTSIDER,
    OWNER,
    REVIEWER,
    VIEWER,
    run,
)


class TestResolveAccess:
    """Priority order: missing, trusted, admin, owner, collaboration row."""

    def test_missing_proposal_is_not_found(self, store, seeded):
        access = run(resolve_access(store, 999, OWNER))
        assert access.found is False
        assert access.capabilities is None
        assert not access.is_owner and not access.is_admin

    def test_owner_gets_full_access(self, store, seeded):
        access = run(resolve_access(store, seeded.proposal_id, OWNER))
        assert access.is_owner is True
        assert access.is_admin is False
        assert access.capabilities == FULL_ACCESS

    @pytest.mark.parametrize("role", ["admin", "Admin", "ADMIN"])
    def test_admin_gets_full_access_without_row(self, store, seeded, role):
        admin = CallerIdentity(user_id=42, role=role)
        access = run(resolve_access(store, seeded.proposal_id, admin))
        assert access.is_admin is True
        assert access.is_owner is False
        assert access.capabilities == FULL_ACCESS

    def test_owner_keeps_full_access_despite_viewer_row(self, store, seeded):
        run(
            store.collaborations.create(
                Collaboration(
                    proposal_id=seeded.proposal_id, user_id=OWNER.user_id, role="viewer"
                )
            )
        )
        access = run(resolve_access(store, seeded.proposal_id, OWNER))
        assert access.capabilities == FULL_ACCESS

    def test_collaborator_gets_role_capabilities(self, store, seeded):
        access = run(resolve_access(store, seeded.proposal_id, REVIEWER))
        assert access.capabilities == permissions_for("reviewer")
        assert not access.is_owner and not access.is_admin

    def test_unknown_collaboration_role_behaves_as_viewer(self, store, seeded):
        row = run(store.collaborations.first(proposal_id=seeded.proposal_id, user_id=REVIEWER.user_id))
        row.role = "superuser"
        access = run(resolve_access(store, seeded.proposal_id, REVIEWER))
        assert access.capabilities == permissions_for("viewer")

    def test_stranger_gets_no_capabilities(self, store, seeded):
        access = run(resolve_access(store, seeded.proposal_id, OUTSIDER))
        assert access.found is True
        assert access.capabilities == NO_ACCESS

    def test_non_admin_role_claim_grants_nothing(self, store, seeded):
        manager = CallerIdentity(user_id=OUTSIDER.user_id, role="manager")
        access = run(resolve_access(store, seeded.proposal_id, manager))
        assert access.capabilities == NO_ACCESS

    def test_trusted_caller_is_owner_and_admin(self, store, seeded):
        access = run(resolve_access(store, seeded.proposal_id, TRUSTED_CALLER))
        assert access.is_owner is True
        assert access.is_admin is True
        assert access.capabilities == FULL_ACCESS

    def test_unsupported_caller_type_rejected(self, store, seeded):
        with pytest.raises(TypeError):
            run(resolve_access(store, seeded.proposal_id, None))


class TestRequireAccess:
    def test_not_found_before_permission(self, store, seeded):
        with pytest.raises(NotFoundError):
            run(require_access(store, 999, OUTSIDER, "can_view"))

    def test_stranger_denied_view(self, store, seeded):
        with pytest.raises(PermissionDeniedError):
            run(require_access(store, seeded.proposal_id, OUTSIDER, "can_view"))

    @pytest.mark.parametrize(
        "capability", ["can_edit", "can_comment", "can_review", "can_generate_ai"]
    )
    def test_viewer_denied_every_mutation(self, store, seeded, capability):
        with pytest.raises(PermissionDeniedError):
            run(require_access(store, seeded.proposal_id, VIEWER, capability))

    def test_viewer_allowed_view(self, store, seeded):
        access = run(require_access(store, seeded.proposal_id, VIEWER, "can_view"))
        assert access.proposal.id == seeded.proposal_id


class TestRequireOwnerAndManager:
    def test_owner_passes_require_owner(self, store, seeded):
        access = run(require_owner(store, seeded.proposal_id, OWNER))
        assert access.is_owner

    @pytest.mark.parametrize("who", [ADMIN, REVIEWER, COMMENTER])
    def test_non_owner_fails_require_owner(self, store, seeded, who):
        with pytest.raises(PermissionDeniedError):
            run(require_owner(store, seeded.proposal_id, who))

    def test_trusted_caller_counts_as_owner(self, store, seeded):
        access = run(require_owner(store, seeded.proposal_id, TRUSTED_CALLER))
        assert access.is_owner

    def test_admin_who_created_the_proposal_is_its_owner(self, store, seeded):
        proposal = run(proposal_service.create_proposal(store, ADMIN, "Admin RFP"))
        access = run(require_owner(store, proposal.id, ADMIN))
        assert access.is_owner is True
        assert access.is_admin is True
        assert access.capabilities == FULL_ACCESS

    @pytest.mark.parametrize("who", [OWNER, ADMIN])
    def test_owner_and_admin_are_managers(self, store, seeded, who):
        run(require_manager(store, seeded.proposal_id, who))

    def test_reviewer_is_not_a_manager(self, store, seeded):
        with pytest.raises(PermissionDeniedError):
            run(require_manager(store, seeded.proposal_id, REVIEWER))

    def test_missing_proposal_for_manager(self, store, seeded):
        with pytest.raises(NotFoundError):
            run(require_manager(store, 999, OWNER))
