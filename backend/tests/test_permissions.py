"""
Unit Tests for the collaborator role -> capability table.

Usage:
    cd backend && pytest tests/test_permissions.py -v
"""

import os
import sys

import pytest

# Add backend to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from proposal_review.permissions import (
    COLLABORATOR_ROLES,
    FULL_ACCESS,
    NO_ACCESS,
    ROLE_DESCRIPTIONS,
    ROLE_TO_CAPABILITIES,
    Capabilities,
    is_valid_role,
    normalize_role,
    permissions_for,
)

EXPECTED_TABLE = {
    "viewer": (True, False, False, False, False),
    "commenter": (True, False, True, False, False),
    "editor": (True, True, True, False, False),
    "reviewer": (True, True, True, True, False),
    "contributor": (True, True, True, True, True),
}


def _flags(caps: Capabilities) -> tuple:
    return (
        caps.can_view,
        caps.can_edit,
        caps.can_comment,
        caps.can_review,
        caps.can_generate_ai,
    )


class TestRoleTable:
    """The canonical table and its derived constants."""

    @pytest.mark.parametrize("role,expected", sorted(EXPECTED_TABLE.items()))
    def test_each_role_matches_table(self, role, expected):
        assert _flags(permissions_for(role)) == expected

    def test_table_covers_exactly_the_collaborator_roles(self):
        assert set(ROLE_TO_CAPABILITIES) == set(COLLABORATOR_ROLES)
        assert set(ROLE_DESCRIPTIONS) == set(COLLABORATOR_ROLES)

    def test_roles_ordered_most_restrictive_first(self):
        granted = [sum(_flags(permissions_for(r))) for r in COLLABORATOR_ROLES]
        assert granted == sorted(granted)

    def test_full_access_grants_everything(self):
        assert all(_flags(FULL_ACCESS))

    def test_no_access_grants_nothing(self):
        assert not any(_flags(NO_ACCESS))

    def test_editor_cannot_generate_ai(self):
        assert permissions_for("editor").can_generate_ai is False


class TestPermissionsFor:
    """permissions_for is total over every string."""

    @pytest.mark.parametrize("role", ["owner", "admin", "", "superuser", "  ", None])
    def test_unknown_roles_behave_as_viewer(self, role):
        assert permissions_for(role) == permissions_for("viewer")

    @pytest.mark.parametrize("role", ["Reviewer", "REVIEWER", " reviewer "])
    def test_role_lookup_is_case_insensitive(self, role):
        assert permissions_for(role) == permissions_for("reviewer")

    def test_normalize_role(self):
        assert normalize_role("Editor") == "editor"
        assert normalize_role("nonsense") == "viewer"
        assert normalize_role(None) == "viewer"

    def test_is_valid_role(self):
        assert is_valid_role("commenter")
        assert is_valid_role("Contributor")
        assert not is_valid_role("owner")
        assert not is_valid_role(None)


class TestCapabilities:
    def test_allows_known_capability(self):
        caps = permissions_for("commenter")
        assert caps.allows("can_comment") is True
        assert caps.allows("can_edit") is False

    def test_allows_unknown_capability_raises(self):
        with pytest.raises(ValueError):
            FULL_ACCESS.allows("can_delete")

    def test_to_dict_uses_camel_case_flags(self):
        assert permissions_for("reviewer").to_dict() == {
            "canView": True,
            "canEdit": True,
            "canComment": True,
            "canReview": True,
            "canGenerateAi": False,
        }

    def test_capabilities_are_immutable(self):
        with pytest.raises(Exception):
            FULL_ACCESS.can_view = False
